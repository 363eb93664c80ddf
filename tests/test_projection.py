import math
import pickle

import numpy as np
import pytest

from tile_aggregate.extractors import CoordinateExtractor
from tile_aggregate.projection import (
    CartesianProjection,
    MercatorProjection,
    RowProjection,
    SeriesProjection,
    mercator_tile_bounds,
)


class TestSeriesProjection:
    def test_project(self, series_projection):
        assert series_projection.project(0.3, 1, 2) == ((1, 0), 1)
        assert series_projection.project(0.6, 0, 2) == ((0, 0), 1)
        assert series_projection.project(0.0, 1, 2) == ((1, 0), 0)

    def test_max_is_inclusive(self, series_projection):
        assert series_projection.project(1.0, 1, 2) == ((1, 1), 1)

    def test_out_of_bounds(self, series_projection):
        assert series_projection.project(None, 0, 2) is None
        assert series_projection.project(-0.01, 0, 2) is None
        assert series_projection.project(1.01, 0, 2) is None
        assert series_projection.project(0.5, 2, 2) is None

    def test_nan_is_out_of_bounds(self, series_projection):
        assert series_projection.project(math.nan, 0, 2) is None
        assert series_projection.project(np.float32("nan"), 1, 2) is None
        assert series_projection.project(np.float64("nan"), 1, 2) is None

    def test_bin_to_1d(self, series_projection):
        assert series_projection.bin_to_1d(3, 4) == 3
        assert series_projection.bin_to_1d(4, 4) == 4

    def test_zoom_level(self, series_projection):
        assert series_projection.get_zoom_level((1, 0)) == 1

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            SeriesProjection(2, 1, 0.0, 1.0)
        with pytest.raises(ValueError):
            SeriesProjection(0, 1, 1.0, 1.0)


class TestCartesianProjection:
    def test_project_flips_bin_rows(self):
        p = CartesianProjection(0, 1, 0.0, 0.0, 10.0, 10.0)
        assert p.project((1.0, 1.0), 0, (2, 2)) == ((0, 0, 0), (0, 1))
        assert p.project((9.0, 9.0), 0, (2, 2)) == ((0, 0, 0), (1, 0))
        assert p.project((9.0, 1.0), 1, (2, 2)) == ((1, 1, 0), (1, 1))
        assert p.project((10.0, 10.0), 1, (2, 2)) == ((1, 1, 1), (1, 0))

    def test_out_of_bounds(self):
        p = CartesianProjection(0, 1, 0.0, 0.0, 10.0, 10.0)
        assert p.project((11.0, 1.0), 0, (2, 2)) is None
        assert p.project(None, 0, (2, 2)) is None

    def test_bin_to_1d_covers_every_slot(self):
        p = CartesianProjection(0, 1, 0.0, 0.0, 10.0, 10.0)
        size = (4, 3)
        n = p.bin_to_1d(size, size)
        assert n == 12
        seen = {p.bin_to_1d((x, y), size) for x in range(4) for y in range(3)}
        assert seen == set(range(n))


class TestMercatorProjection:
    def test_project_inside_tile_bounds(self):
        p = MercatorProjection(0, 4)
        tc, bc = p.project((10.0, 10.0), 1, (256, 256))
        assert tc == (1, 1, 0)
        assert 0 <= bc[0] < 256 and 0 <= bc[1] < 256

        tc, _ = p.project((-73.98, 40.75), 4, (16, 16))
        minx, miny, maxx, maxy = mercator_tile_bounds(*tc)
        X, Y = p._transformer().transform(-73.98, 40.75)
        assert minx <= X <= maxx and miny <= Y <= maxy

    def test_beyond_mercator_limit(self):
        p = MercatorProjection(0, 4)
        assert p.project((0.0, 89.0), 0, (8, 8)) is None
        assert p.project((181.0, 0.0), 0, (8, 8)) is None

    def test_pickles_without_transformer(self):
        p = MercatorProjection(0, 2)
        p.project((1.0, 1.0), 0, (4, 4))
        q = pickle.loads(pickle.dumps(p))
        assert q.project((1.0, 1.0), 0, (4, 4)) == p.project((1.0, 1.0), 0, (4, 4))


class TestRowProjection:
    def test_row_to_coords(self, series_projection):
        rp = RowProjection(series_projection, CoordinateExtractor("x"), 2)
        assert rp.max_bins == 2
        assert rp.row_to_coords({"x": 0.3}, 1) == ((1, 0), 1)
        assert rp.row_to_coords({"x": None}, 1) is None
        assert rp.row_to_coords({}, 0) is None

    def test_rejects_empty_tiles(self, series_projection):
        with pytest.raises(ValueError):
            RowProjection(series_projection, CoordinateExtractor("x"), 0)
