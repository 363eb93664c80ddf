from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from tile_aggregate.aggregators import Aggregator
from tile_aggregate.output import TileData
from tile_aggregate.projection import Projection

logger = logging.getLogger(__name__)


def make_bins(length: int, default: Any) -> List[Any]:
    return [default] * length


def merge_bins(r1: Sequence[Any], r2: Sequence[Any], bin_aggregator: Aggregator) -> List[Any]:
    """Slot-wise merge of two partial bin arrays into a fresh array."""
    if len(r1) != len(r2):
        raise ValueError(f"Cannot merge bin arrays of length {len(r1)} and {len(r2)}")
    merge = bin_aggregator.merge
    return [merge(a, b) for a, b in zip(r1, r2)]


def finish_tile(
    coords: Any,
    bins: Sequence[Any],
    bin_aggregator: Aggregator,
    tile_aggregator: Aggregator,
    projection: Projection,
) -> TileData:
    """
    Finish every bin, count the bins that moved off the default, and fold
    every finished bin (default-valued ones included) into the tile value.

    A bin that finishes to None (an empty Mean bin, say) is passed to the tile
    aggregator like any other, but add(acc, None) is a no-op, so such bins
    never contribute to the tile value.
    """
    default_value = bin_aggregator.finish(bin_aggregator.default)
    tile = tile_aggregator.default
    bins_touched = 0
    finished = []
    for a in bins:
        b = bin_aggregator.finish(a)
        if b != default_value:
            bins_touched += 1
        tile = tile_aggregator.add(tile, b)
        finished.append(b)

    return TileData(
        coords=coords,
        bins=tuple(finished),
        bins_touched=bins_touched,
        default_value=default_value,
        tile_value=tile_aggregator.finish(tile),
        projection=projection,
    )


class TileCollection:
    """
    Lazily generated tiles.

    Nothing runs until the collection is first consumed; the result is then
    kept, so later consumers see the same tiles without recomputing.
    """

    def __init__(self, compute: Callable[[], List[TileData]], description: str = ""):
        self._compute = compute
        self._description = description
        self._tiles: Optional[List[TileData]] = None
        self._lock = threading.Lock()

    @property
    def is_materialized(self) -> bool:
        return self._tiles is not None

    def collect(self) -> List[TileData]:
        if self._tiles is None:
            with self._lock:
                if self._tiles is None:
                    self._tiles = self._compute()
        return list(self._tiles)

    def to_dict(self) -> Dict[Any, TileData]:
        return {t.coords: t for t in self.collect()}

    def __iter__(self) -> Iterator[TileData]:
        return iter(self.collect())

    def __len__(self) -> int:
        return len(self.collect())

    def __repr__(self) -> str:
        state = f"{len(self._tiles)} tiles" if self._tiles is not None else "pending"
        return f"TileCollection({self._description}, {state})"
