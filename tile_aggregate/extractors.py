from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

from shapely import from_wkb
from shapely.geometry import Point

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = Mapping[str, Any]


class ValueExtractor(ABC, Generic[T]):
    """Pulls an optional typed value out of a source row. None excludes the row."""

    @abstractmethod
    def row_to_value(self, row: Row) -> Optional[T]:
        raise NotImplementedError

    def __call__(self, row: Row) -> Optional[T]:
        return self.row_to_value(row)


def _missing(v) -> bool:
    return v is None or (isinstance(v, float) and math.isnan(v))


class ColumnExtractor(ValueExtractor[Any]):
    def __init__(self, column: str, cast: Optional[Callable[[Any], Any]] = None):
        self.column = column
        self.cast = cast

    def row_to_value(self, row: Row) -> Optional[Any]:
        v = row.get(self.column)
        if _missing(v):
            return None
        return self.cast(v) if self.cast is not None else v

    def __repr__(self) -> str:
        return f"ColumnExtractor({self.column!r})"


class CoordinateExtractor(ValueExtractor[Any]):
    """
    Reads one or more numeric columns as a data-space coordinate.

    A single column yields a bare float, several yield a tuple. Any missing,
    null or NaN component makes the whole coordinate absent.
    """

    def __init__(self, *columns: str):
        if not columns:
            raise ValueError("CoordinateExtractor needs at least one column")
        self.columns = columns

    def row_to_value(self, row: Row):
        values = []
        for c in self.columns:
            v = row.get(c)
            if _missing(v):
                return None
            values.append(float(v))
        if len(values) == 1:
            return values[0]
        return tuple(values)

    def __repr__(self) -> str:
        return f"CoordinateExtractor{self.columns!r}"


class GeometryExtractor(ValueExtractor[tuple]):
    """
    Decodes a WKB geometry column into an (x, y) coordinate.

    Points map to themselves, any other geometry to its centroid.
    """

    def __init__(self, column: str = "geometry"):
        self.column = column

    def row_to_value(self, row: Row):
        wkb = row.get(self.column)
        if wkb is None:
            return None
        try:
            g = from_wkb(wkb)
        except Exception as e:
            logger.debug("Invalid WKB geometry skipped: %s", e)
            return None
        if g is None or g.is_empty:
            return None
        if not isinstance(g, Point):
            g = g.centroid
        return (g.x, g.y)

    def __repr__(self) -> str:
        return f"GeometryExtractor({self.column!r})"


class ConstantExtractor(ValueExtractor[Any]):
    """Same value for every row. Pair with CountAggregator to count records."""

    def __init__(self, value: Any = 1):
        self.value = value

    def row_to_value(self, row: Row):
        return self.value

    def __repr__(self) -> str:
        return f"ConstantExtractor({self.value!r})"
