from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from tile_aggregate.context import GenerationContext

logger = logging.getLogger(__name__)

STRATEGIES = ("mapreduce", "accumulator")
PROJECTIONS = ("series", "cartesian", "mercator")


# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

@dataclass
class GenerationConfig:
    projection: str = "mercator"
    min_zoom: int = 0
    max_zoom: int = 8
    levels: List[int] = field(default_factory=lambda: [0])
    tile_size: List[int] = field(default_factory=lambda: [256, 256])
    # Data extent, used by the series and cartesian projections
    bbox: Optional[List[float]] = None
    x_column: str = "x"
    y_column: Optional[str] = "y"
    geometry_column: Optional[str] = None
    value_column: Optional[str] = None
    bin_aggregator: str = "count"
    tile_aggregator: str = "maxmin"
    strategy: str = "mapreduce"
    max_workers: int = 8
    reduce_partitions: int = 8

    def __post_init__(self):
        if self.projection not in PROJECTIONS:
            raise ValueError(f"projection must be one of {PROJECTIONS}, got {self.projection!r}")
        if self.strategy not in STRATEGIES:
            raise ValueError(f"strategy must be one of {STRATEGIES}, got {self.strategy!r}")
        if self.min_zoom < 0 or self.max_zoom < self.min_zoom:
            raise ValueError(f"Invalid zoom bounds [{self.min_zoom}, {self.max_zoom}]")
        if not self.levels:
            raise ValueError("At least one level is required")
        for z in self.levels:
            if not self.min_zoom <= z <= self.max_zoom:
                raise ValueError(f"Level {z} outside [{self.min_zoom}, {self.max_zoom}]")
        if any(int(s) <= 0 for s in self.tile_size):
            raise ValueError(f"tile_size entries must be positive, got {self.tile_size}")
        if self.projection == "series" and len(self.tile_size) != 1:
            raise ValueError("series projection takes a single tile_size value")
        if self.projection != "series" and len(self.tile_size) != 2:
            raise ValueError(f"{self.projection} projection takes tile_size as [width, height]")
        if self.projection != "mercator" and self.bbox is None:
            raise ValueError(f"{self.projection} projection needs a bbox")
        expected = {"series": 2, "cartesian": 4}.get(self.projection)
        if self.bbox is not None and expected is not None and len(self.bbox) != expected:
            raise ValueError(
                f"{self.projection} projection takes a bbox of {expected} values, got {self.bbox}"
            )
        if self.max_workers <= 0 or self.reduce_partitions <= 0:
            raise ValueError("max_workers and reduce_partitions must be positive")

    @property
    def bin_size(self) -> Union[int, Tuple[int, int]]:
        if self.projection == "series":
            return int(self.tile_size[0])
        return (int(self.tile_size[0]), int(self.tile_size[1]))

    def context(self) -> GenerationContext:
        return GenerationContext(
            max_workers=self.max_workers, reduce_partitions=self.reduce_partitions
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: Union[str, Path], **overrides: Any) -> GenerationConfig:
    """Read a JSON config file. Unknown keys are rejected."""
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: expected a JSON object")

    payload.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(GenerationConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"{path}: unknown config keys {unknown}")

    logger.debug(f"Loaded config from {path}: {payload}")
    return GenerationConfig(**payload)
