from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

import pyarrow as pa
import pyarrow.parquet as pq

logger = logging.getLogger(__name__)

Partition = Union[pa.Table, Sequence[Mapping[str, Any]]]


class Dataset:
    """
    A partitioned, read-only collection of rows.

    Each partition is either a pyarrow Table or a sequence of row mappings.
    Workers decode one partition at a time; cache() pins the decoded rows for
    the rest of the dataset's life since generators scan every partition once
    per run.
    """

    def __init__(self, partitions: Iterable[Partition]):
        self._partitions: List[Partition] = list(partitions)
        self._rows: Optional[List[List[Dict[str, Any]]]] = None
        self._lock = threading.Lock()

    # ------------------------- constructors ------------------------- #
    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]], num_partitions: int = 1) -> "Dataset":
        rows = [dict(r) for r in rows]
        return cls(_split(rows, num_partitions))

    @classmethod
    def from_table(cls, table: pa.Table, num_partitions: int = 1) -> "Dataset":
        if num_partitions <= 0:
            raise ValueError(f"num_partitions must be positive, got {num_partitions}")
        n = table.num_rows
        size = max(1, -(-n // num_partitions))
        parts = [table.slice(off, size) for off in range(0, n, size)]
        return cls(parts)

    @classmethod
    def from_parquet(cls, path: str, columns: Optional[List[str]] = None) -> "Dataset":
        pf = pq.ParquetFile(str(path))
        num_row_groups = pf.num_row_groups
        logger.info("Dataset opened %s with %d row groups", path, num_row_groups)
        parts = []
        for i in range(num_row_groups):
            logger.debug("Reading row group %d/%d", i, num_row_groups)
            parts.append(pf.read_row_group(i, columns=columns))
        return cls(parts)

    # ------------------------- access ------------------------- #
    @property
    def num_partitions(self) -> int:
        return len(self._partitions)

    def partition_rows(self, i: int) -> List[Dict[str, Any]]:
        if self._rows is not None:
            return self._rows[i]
        return _decode(self._partitions[i])

    def iter_rows(self) -> Iterator[Dict[str, Any]]:
        for i in range(self.num_partitions):
            yield from self.partition_rows(i)

    def cache(self) -> "Dataset":
        with self._lock:
            if self._rows is None:
                self._rows = [_decode(p) for p in self._partitions]
                logger.debug("Cached %d partitions (%d rows)", self.num_partitions, len(self))
        return self

    @property
    def is_cached(self) -> bool:
        return self._rows is not None

    def __len__(self) -> int:
        return sum(p.num_rows if isinstance(p, pa.Table) else len(p) for p in self._partitions)

    def __repr__(self) -> str:
        return f"Dataset({self.num_partitions} partitions, {len(self)} rows)"


def _decode(p: Partition) -> List[Dict[str, Any]]:
    if isinstance(p, pa.Table):
        return p.to_pylist()
    return list(p)


def _split(rows: List[Dict[str, Any]], num_partitions: int) -> List[List[Dict[str, Any]]]:
    if num_partitions <= 0:
        raise ValueError(f"num_partitions must be positive, got {num_partitions}")
    if not rows:
        return [[]]
    size = max(1, -(-len(rows) // num_partitions))
    return [rows[off:off + size] for off in range(0, len(rows), size)]
