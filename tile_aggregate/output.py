from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

import numpy as np

from tile_aggregate.projection import Projection

TC = TypeVar("TC")
V = TypeVar("V")
X = TypeVar("X")


@dataclass(frozen=True)
class TileData(Generic[TC, V, X]):
    """
    One finished tile.

    bins are in flattened bin order (see Projection.bin_to_1d) and always hold
    bin_to_1d(tile_size, tile_size) values. bins_touched counts the bins whose
    finished value differs from default_value.
    """

    coords: TC
    bins: Tuple[V, ...]
    bins_touched: int
    default_value: V
    tile_value: X
    projection: Projection = field(repr=False, compare=False)

    @property
    def level(self) -> int:
        return self.projection.get_zoom_level(self.coords)

    def bin(self, index: int) -> V:
        return self.bins[index]

    def to_numpy(self, dtype: Optional[Any] = None) -> np.ndarray:
        return np.asarray(self.bins, dtype=dtype)

    def summary(self) -> Dict[str, Any]:
        return {
            "coords": list(self.coords) if isinstance(self.coords, tuple) else self.coords,
            "level": self.level,
            "num_bins": len(self.bins),
            "bins_touched": self.bins_touched,
            "tile_value": _jsonable(self.tile_value),
        }


def _jsonable(v):
    if isinstance(v, (tuple, list)):
        return [_jsonable(a) for a in v]
    if isinstance(v, np.generic):
        return v.item()
    if isinstance(v, float) and v in (float("inf"), float("-inf")):
        return None
    return v
