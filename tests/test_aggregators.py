import math

import pytest

from tile_aggregate.aggregators import (
    CountAggregator,
    MaxAggregator,
    MaxMinAggregator,
    MeanAggregator,
    MinAggregator,
    SumAggregator,
    TopElementsAggregator,
    aggregator_by_name,
)

ALL = [
    CountAggregator(),
    SumAggregator(),
    MeanAggregator(),
    MaxMinAggregator(),
    MinAggregator(),
    MaxAggregator(),
    TopElementsAggregator(3),
]


def _fold(agg, values):
    acc = agg.default
    for v in values:
        acc = agg.add(acc, v)
    return acc


def _random_accumulators(agg, rng, n=3):
    # Integer-valued floats keep sums exact under any merge order
    return [
        _fold(agg, [float(v) for v in rng.integers(0, 6, size=rng.integers(1, 12))])
        for _ in range(n)
    ]


@pytest.mark.parametrize("agg", ALL, ids=lambda a: type(a).__name__)
def test_add_none_is_noop(agg, rng):
    for acc in [agg.default] + _random_accumulators(agg, rng):
        assert agg.add(acc, None) == acc


@pytest.mark.parametrize("agg", ALL, ids=lambda a: type(a).__name__)
def test_merge_default_is_identity(agg, rng):
    for acc in _random_accumulators(agg, rng):
        assert agg.merge(agg.default, acc) == acc
        assert agg.merge(acc, agg.default) == acc


@pytest.mark.parametrize("agg", ALL, ids=lambda a: type(a).__name__)
def test_merge_commutative_and_associative(agg, rng):
    a, b, c = _random_accumulators(agg, rng)
    assert agg.merge(a, b) == agg.merge(b, a)
    assert agg.merge(agg.merge(a, b), c) == agg.merge(a, agg.merge(b, c))
    assert agg.finish(agg.merge(agg.merge(a, b), c)) == agg.finish(agg.merge(c, agg.merge(b, a)))


@pytest.mark.parametrize("agg", ALL, ids=lambda a: type(a).__name__)
def test_add_does_not_mutate_accumulator(agg):
    acc = agg.default
    before = agg.finish(acc)
    agg.add(acc, 2.0)
    assert agg.finish(agg.default) == before


def test_count_counts_present_values():
    agg = CountAggregator()
    assert agg.finish(_fold(agg, [1, None, "a", 0, None])) == 3


def test_mean():
    agg = MeanAggregator()
    assert agg.finish(agg.default) is None
    assert agg.finish(_fold(agg, [1.0, 2.0, 6.0])) == pytest.approx(3.0)


def test_maxmin():
    agg = MaxMinAggregator()
    assert agg.finish(agg.default) == (math.inf, -math.inf)
    assert agg.finish(_fold(agg, [3.0, -1.0, 7.5])) == (-1.0, 7.5)


def test_top_elements_breaks_ties_on_value():
    agg = TopElementsAggregator(2)
    left = _fold(agg, ["b", "a", "c"])
    right = _fold(agg, ["c", "b", "a", "a"])
    assert agg.finish(agg.merge(left, right)) == (("a", 3), ("b", 2))
    assert agg.finish(agg.merge(right, left)) == (("a", 3), ("b", 2))


def test_top_elements_rejects_bad_n():
    with pytest.raises(ValueError):
        TopElementsAggregator(0)


def test_aggregator_by_name():
    assert isinstance(aggregator_by_name("Count"), CountAggregator)
    assert isinstance(aggregator_by_name("maxmin"), MaxMinAggregator)
    with pytest.raises(ValueError, match="Unknown aggregator"):
        aggregator_by_name("median")


def test_top_elements_ties_across_unorderable_types():
    agg = TopElementsAggregator(3)
    left = _fold(agg, [1, "a"])
    right = _fold(agg, ["a", 1, None, 2.5])
    # equal counts order by type name, then repr
    expected = ((1, 2), ("a", 2), (2.5, 1))
    assert agg.finish(agg.merge(left, right)) == expected
    assert agg.finish(agg.merge(right, left)) == expected
