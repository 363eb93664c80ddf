import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from tile_aggregate.context import GenerationContext
from tile_aggregate.dataset import Dataset


def test_from_rows_partitions():
    ds = Dataset.from_rows(({"x": i} for i in range(10)), num_partitions=3)
    assert ds.num_partitions == 3
    assert len(ds) == 10
    assert [r["x"] for r in ds.iter_rows()] == list(range(10))


def test_from_rows_empty():
    ds = Dataset.from_rows([], num_partitions=4)
    assert len(ds) == 0
    assert list(ds.iter_rows()) == []


def test_from_table_and_cache():
    table = pa.table({"x": [0.1, 0.2, 0.3, 0.4, 0.5], "v": [1, 2, 3, 4, None]})
    ds = Dataset.from_table(table, num_partitions=2)
    assert ds.num_partitions == 2
    assert not ds.is_cached
    assert ds.cache() is ds
    assert ds.is_cached
    rows = list(ds.iter_rows())
    assert rows[0] == {"x": 0.1, "v": 1}
    assert rows[-1]["v"] is None


def test_from_parquet_uses_row_groups(tmp_path):
    path = tmp_path / "points.parquet"
    pq.write_table(pa.table({"x": list(range(10))}), path, row_group_size=4)
    ds = Dataset.from_parquet(str(path))
    assert ds.num_partitions == 3
    assert len(ds) == 10
    assert ds.partition_rows(2) == [{"x": 8}, {"x": 9}]


def test_bad_partition_count():
    with pytest.raises(ValueError):
        Dataset.from_rows([{"x": 1}], num_partitions=0)


def test_context_runs_every_item():
    with GenerationContext(max_workers=3) as ctx:
        assert sorted(ctx.run(lambda i: i * i, range(6))) == [0, 1, 4, 9, 16, 25]
        assert ctx.run(lambda i: i, []) == []


def test_context_propagates_worker_errors():
    def boom(i):
        if i == 2:
            raise RuntimeError("worker failed")
        return i

    with GenerationContext(max_workers=2) as ctx:
        with pytest.raises(RuntimeError, match="worker failed"):
            ctx.run(boom, range(4))


def test_context_rejects_bad_sizes():
    with pytest.raises(ValueError):
        GenerationContext(max_workers=0)
    with pytest.raises(ValueError):
        GenerationContext(max_workers=2, reduce_partitions=0)
