from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterable, Tuple, TypeVar

from tile_aggregate.projection import Projection

TC = TypeVar("TC")


class TileRequest(ABC, Generic[TC]):
    """
    The tiles a generation run must produce.

    Generators only project into `levels`; `in_request` then filters the
    projected tile coordinates.
    """

    @property
    @abstractmethod
    def levels(self) -> Tuple[int, ...]:
        raise NotImplementedError

    @abstractmethod
    def in_request(self, tile_coord: TC) -> bool:
        raise NotImplementedError


class TileSeqRequest(TileRequest[TC]):
    """An explicit set of tile coordinates. Levels are derived from the coordinates."""

    def __init__(self, coords: Iterable[TC], projection: Projection):
        self._coords = frozenset(coords)
        levels = set()
        for c in self._coords:
            z = projection.get_zoom_level(c)
            if not projection.has_level(z):
                raise ValueError(
                    f"Requested tile {c!r} is at level {z}, outside "
                    f"[{projection.min_zoom}, {projection.max_zoom}]"
                )
            levels.add(z)
        self._levels = tuple(sorted(levels))

    @property
    def levels(self) -> Tuple[int, ...]:
        return self._levels

    @property
    def coords(self) -> frozenset:
        return self._coords

    def in_request(self, tile_coord: TC) -> bool:
        return tile_coord in self._coords

    def __len__(self) -> int:
        return len(self._coords)

    def __repr__(self) -> str:
        return f"TileSeqRequest({len(self._coords)} tiles, levels={self._levels})"


class TileLevelRequest(TileRequest[TC]):
    """Every tile at each of the given levels."""

    def __init__(self, levels: Iterable[int], projection: Projection):
        levels = tuple(sorted(set(int(z) for z in levels)))
        for z in levels:
            if not projection.has_level(z):
                raise ValueError(
                    f"Requested level {z} outside [{projection.min_zoom}, {projection.max_zoom}]"
                )
        self._levels = levels
        self._projection = projection

    @property
    def levels(self) -> Tuple[int, ...]:
        return self._levels

    def in_request(self, tile_coord: TC) -> bool:
        return self._projection.get_zoom_level(tile_coord) in self._levels

    def __repr__(self) -> str:
        return f"TileLevelRequest(levels={self._levels})"
