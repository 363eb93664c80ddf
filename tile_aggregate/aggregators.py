from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")


class Aggregator(ABC, Generic[T, U, V]):
    """
    Associative, commutative reduction over a stream of optional values.

    Implementations are stateless algebras:
      - default: identity intermediate value
      - add(acc, value): fold one optional input into acc (None is a no-op)
      - merge(a, b): combine two independent partial results
      - finish(acc): produce the visible output value

    Intermediate values are never mutated in place. The same default object
    seeds every slot of a bin array.
    """

    default: U

    @abstractmethod
    def add(self, acc: U, value: Optional[T]) -> U:
        raise NotImplementedError

    @abstractmethod
    def merge(self, a: U, b: U) -> U:
        raise NotImplementedError

    @abstractmethod
    def finish(self, acc: U) -> V:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# ---------------------------------------------------------------------------
# NUMERIC
# ---------------------------------------------------------------------------

class CountAggregator(Aggregator[Any, int, int]):
    """Counts present values."""

    default = 0

    def add(self, acc: int, value: Optional[Any]) -> int:
        if value is None:
            return acc
        return acc + 1

    def merge(self, a: int, b: int) -> int:
        return a + b

    def finish(self, acc: int) -> int:
        return acc


class SumAggregator(Aggregator[float, float, float]):
    default = 0.0

    def add(self, acc: float, value: Optional[float]) -> float:
        if value is None:
            return acc
        return acc + value

    def merge(self, a: float, b: float) -> float:
        return a + b

    def finish(self, acc: float) -> float:
        return acc


class MeanAggregator(Aggregator[float, Tuple[int, float], Optional[float]]):
    """Arithmetic mean. An empty accumulator finishes to None."""

    default = (0, 0.0)

    def add(self, acc, value):
        if value is None:
            return acc
        return (acc[0] + 1, acc[1] + value)

    def merge(self, a, b):
        return (a[0] + b[0], a[1] + b[1])

    def finish(self, acc):
        count, total = acc
        if count == 0:
            return None
        return total / count


class MaxMinAggregator(Aggregator[float, Tuple[float, float], Tuple[float, float]]):
    """Tracks (min, max). The default finishes to (inf, -inf)."""

    default = (math.inf, -math.inf)

    def add(self, acc, value):
        if value is None:
            return acc
        return (min(acc[0], value), max(acc[1], value))

    def merge(self, a, b):
        return (min(a[0], b[0]), max(a[1], b[1]))

    def finish(self, acc):
        return acc


class MinAggregator(Aggregator[float, float, float]):
    default = math.inf

    def add(self, acc: float, value: Optional[float]) -> float:
        if value is None:
            return acc
        return min(acc, value)

    def merge(self, a: float, b: float) -> float:
        return min(a, b)

    def finish(self, acc: float) -> float:
        return acc


class MaxAggregator(Aggregator[float, float, float]):
    default = -math.inf

    def add(self, acc: float, value: Optional[float]) -> float:
        if value is None:
            return acc
        return max(acc, value)

    def merge(self, a: float, b: float) -> float:
        return max(a, b)

    def finish(self, acc: float) -> float:
        return acc


# ---------------------------------------------------------------------------
# CATEGORICAL
# ---------------------------------------------------------------------------

class TopElementsAggregator(Aggregator[Any, Counter, Tuple[Tuple[Any, int], ...]]):
    """
    Most frequent values. Ties are broken on the value's type name, then its
    repr, so the finished tuple does not depend on the order partials were
    merged in and values of unorderable types can share a bin.
    """

    def __init__(self, n: int = 10):
        if n <= 0:
            raise ValueError(f"TopElementsAggregator needs n > 0, got {n}")
        self.n = n
        self.default = Counter()

    def add(self, acc: Counter, value: Optional[Any]) -> Counter:
        if value is None:
            return acc
        out = Counter(acc)
        out[value] += 1
        return out

    def merge(self, a: Counter, b: Counter) -> Counter:
        return a + b

    def finish(self, acc: Counter) -> Tuple[Tuple[Any, int], ...]:
        ranked = sorted(acc.items(), key=lambda kv: (-kv[1], type(kv[0]).__name__, repr(kv[0])))
        return tuple(ranked[: self.n])

    def __repr__(self) -> str:
        return f"TopElementsAggregator(n={self.n})"


AGGREGATORS = {
    "count": CountAggregator,
    "sum": SumAggregator,
    "mean": MeanAggregator,
    "maxmin": MaxMinAggregator,
    "min": MinAggregator,
    "max": MaxAggregator,
    "top": TopElementsAggregator,
}


def aggregator_by_name(name: str) -> Aggregator:
    try:
        return AGGREGATORS[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown aggregator '{name}', expected one of {sorted(AGGREGATORS)}"
        ) from None
