from __future__ import annotations

import math
import threading
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Tuple, TypeVar

from pyproj import Transformer

from tile_aggregate.extractors import Row, ValueExtractor

DC = TypeVar("DC")
TC = TypeVar("TC")
BC = TypeVar("BC")

# Global Web Mercator extent
LIM = 20037508.342789244
WORLD_MINX = -LIM
WORLD_MINY = -LIM
WORLD_MAXX = LIM
WORLD_MAXY = LIM
WORLD_W = WORLD_MAXX - WORLD_MINX
WORLD_H = WORLD_MAXY - WORLD_MINY

MAX_MERCATOR_LAT = 85.0511287798066


# ---------------------------------------------------------------------------
# CONTRACT
# ---------------------------------------------------------------------------

class Projection(ABC, Generic[DC, TC, BC]):
    """
    Maps data-space coordinates onto a tile/bin hierarchy.

    Projections are read-only once built and are shared by every worker of a
    generation run.

    :param min_zoom: the minimum zoom level which will be passed into project()
    :param max_zoom: the maximum zoom level which will be passed into project()
    """

    def __init__(self, min_zoom: int, max_zoom: int):
        if min_zoom < 0 or max_zoom < min_zoom:
            raise ValueError(f"Invalid zoom bounds: min_zoom={min_zoom}, max_zoom={max_zoom}")
        self._min_zoom = int(min_zoom)
        self._max_zoom = int(max_zoom)

    @property
    def min_zoom(self) -> int:
        return self._min_zoom

    @property
    def max_zoom(self) -> int:
        return self._max_zoom

    def has_level(self, z: int) -> bool:
        return self._min_zoom <= z <= self._max_zoom

    @abstractmethod
    def get_zoom_level(self, tile_coord: TC) -> int:
        raise NotImplementedError

    @abstractmethod
    def project(self, data_coord: Optional[DC], z: int, tile_size: BC) -> Optional[Tuple[TC, BC]]:
        """
        Project a data-space coordinate into the corresponding tile and bin coordinate.

        :return: (tile coordinate, bin coordinate) if the coordinate is within
                 the bounds of the projection at level z, None otherwise.
        """
        raise NotImplementedError

    @abstractmethod
    def bin_to_1d(self, bin: BC, tile_size: BC) -> int:
        """
        Flatten a bin coordinate for array storage.

        bin_to_1d(tile_size, tile_size) is the number of slots in a tile, and
        every in-bounds bin flattens below it.
        """
        raise NotImplementedError


# ---------------------------------------------------------------------------
# 1D
# ---------------------------------------------------------------------------

class SeriesProjection(Projection[float, Tuple[int, int], int]):
    """
    1D projection of [min_x, max_x]. Level z holds 2**z tiles of tile_size bins.
    Tile coordinates are (z, x).
    """

    def __init__(self, min_zoom: int, max_zoom: int, min_x: float, max_x: float):
        super().__init__(min_zoom, max_zoom)
        if not max_x > min_x:
            raise ValueError(f"SeriesProjection needs max_x > min_x, got [{min_x}, {max_x}]")
        self.min_x = float(min_x)
        self.max_x = float(max_x)

    def get_zoom_level(self, tile_coord):
        return tile_coord[0]

    def project(self, data_coord, z, tile_size):
        if data_coord is None or not self.has_level(z):
            return None
        if not (self.min_x <= data_coord <= self.max_x):
            return None

        total = (1 << z) * tile_size
        pos = (data_coord - self.min_x) / (self.max_x - self.min_x)
        i = min(int(math.floor(pos * total)), total - 1)
        return (z, i // tile_size), i % tile_size

    def bin_to_1d(self, bin, tile_size):
        return int(bin)

    def __repr__(self) -> str:
        return (
            f"SeriesProjection({self.min_zoom}, {self.max_zoom}, "
            f"min_x={self.min_x}, max_x={self.max_x})"
        )


# ---------------------------------------------------------------------------
# 2D
# ---------------------------------------------------------------------------

def _grid_bin_to_1d(bin, tile_size) -> int:
    bx, by = bin
    w, h = tile_size
    if by >= h:
        return w * h
    return by * w + bx


class CartesianProjection(Projection[Tuple[float, float], Tuple[int, int, int], Tuple[int, int]]):
    """
    2D projection of a rectangular extent.

    Tile coordinates are (z, x, y) counted from the bottom-left corner of the
    extent. Bins are (bx, by) with (0, 0) at the top left of the tile, rows
    running downwards, matching the histogram layout.
    """

    def __init__(
        self,
        min_zoom: int,
        max_zoom: int,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
    ):
        super().__init__(min_zoom, max_zoom)
        if not (max_x > min_x and max_y > min_y):
            raise ValueError(
                f"CartesianProjection needs a non-empty extent, got "
                f"({min_x}, {min_y}, {max_x}, {max_y})"
            )
        self.bbox = (float(min_x), float(min_y), float(max_x), float(max_y))

    def get_zoom_level(self, tile_coord):
        return tile_coord[0]

    def project(self, data_coord, z, tile_size):
        if data_coord is None or not self.has_level(z):
            return None
        x, y = data_coord
        minx, miny, maxx, maxy = self.bbox
        if not (minx <= x <= maxx and miny <= y <= maxy):
            return None

        w, h = tile_size
        n = 1 << z
        cols = n * w
        rows = n * h
        ix = min(int(math.floor((x - minx) / (maxx - minx) * cols)), cols - 1)
        iy = min(int(math.floor((y - miny) / (maxy - miny) * rows)), rows - 1)

        # Flip Y inside the tile so that (0,0) is top left
        return (z, ix // w, iy // h), (ix % w, h - 1 - (iy % h))

    def bin_to_1d(self, bin, tile_size):
        return _grid_bin_to_1d(bin, tile_size)

    def __repr__(self) -> str:
        return f"CartesianProjection({self.min_zoom}, {self.max_zoom}, bbox={self.bbox})"


class MercatorProjection(Projection[Tuple[float, float], Tuple[int, int, int], Tuple[int, int]]):
    """
    EPSG:4326 lon/lat reprojected to Web Mercator, XYZ tiles with a top-left
    origin. Bins use the same top-left layout as CartesianProjection.
    """

    def __init__(self, min_zoom: int = 0, max_zoom: int = 18, src_crs: str = "EPSG:4326"):
        super().__init__(min_zoom, max_zoom)
        self.src_crs = src_crs
        # Transformers are not shared between threads
        self._local = threading.local()

    def _transformer(self) -> Transformer:
        tf = getattr(self._local, "tf", None)
        if tf is None:
            tf = Transformer.from_crs(self.src_crs, "EPSG:3857", always_xy=True)
            self._local.tf = tf
        return tf

    def get_zoom_level(self, tile_coord):
        return tile_coord[0]

    def project(self, data_coord, z, tile_size):
        if data_coord is None or not self.has_level(z):
            return None
        lon, lat = data_coord
        if self.src_crs == "EPSG:4326" and not (
            -180.0 <= lon <= 180.0 and -MAX_MERCATOR_LAT <= lat <= MAX_MERCATOR_LAT
        ):
            return None

        X, Y = self._transformer().transform(lon, lat)
        if not (math.isfinite(X) and math.isfinite(Y)):
            return None

        tx = (X - WORLD_MINX) / WORLD_W
        ty = (WORLD_MAXY - Y) / WORLD_H
        if not (0.0 <= tx <= 1.0 and 0.0 <= ty <= 1.0):
            return None

        w, h = tile_size
        n = 1 << z
        cols = n * w
        rows = n * h
        ix = max(0, min(int(math.floor(tx * cols)), cols - 1))
        iy = max(0, min(int(math.floor(ty * rows)), rows - 1))
        return (z, ix // w, iy // h), (ix % w, iy % h)

    def bin_to_1d(self, bin, tile_size):
        return _grid_bin_to_1d(bin, tile_size)

    def __getstate__(self):
        state = self.__dict__.copy()
        del state["_local"]
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._local = threading.local()

    def __repr__(self) -> str:
        return f"MercatorProjection({self.min_zoom}, {self.max_zoom}, src_crs={self.src_crs!r})"


def mercator_tile_bounds(z: int, x: int, y: int):
    """Return EPSG:3857 bounds for tile (z, x, y)."""
    n = 1 << z
    tile_w = WORLD_W / n
    tile_h = WORLD_H / n

    minx = WORLD_MINX + x * tile_w
    maxx = minx + tile_w
    maxy = WORLD_MAXY - y * tile_h
    miny = maxy - tile_h

    return (minx, miny, maxx, maxy)


# ---------------------------------------------------------------------------
# ROW PROJECTION
# ---------------------------------------------------------------------------

class RowProjection(Generic[TC]):
    """
    Folds coordinate extraction into the projection: rows go straight to
    (tile coordinate, flattened bin index).
    """

    def __init__(self, projection: Projection, coord_extractor: ValueExtractor, tile_size: Any):
        self.projection = projection
        self.coord_extractor = coord_extractor
        self.tile_size = tile_size
        self.max_bins = projection.bin_to_1d(tile_size, tile_size)
        if self.max_bins <= 0:
            raise ValueError(f"Tile size {tile_size!r} gives {self.max_bins} bins per tile")

    @property
    def min_zoom(self) -> int:
        return self.projection.min_zoom

    @property
    def max_zoom(self) -> int:
        return self.projection.max_zoom

    def get_zoom_level(self, tile_coord: TC) -> int:
        return self.projection.get_zoom_level(tile_coord)

    def row_to_coords(self, row: Row, z: int) -> Optional[Tuple[TC, int]]:
        dc = self.coord_extractor.row_to_value(row)
        coords = self.projection.project(dc, z, self.tile_size)
        if coords is None:
            return None
        tc, bc = coords
        return tc, self.projection.bin_to_1d(bc, self.tile_size)

    def __repr__(self) -> str:
        return f"RowProjection({self.projection!r}, {self.coord_extractor!r}, tile_size={self.tile_size!r})"
