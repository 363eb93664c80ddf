import math

from shapely.geometry import Point, Polygon

from tile_aggregate.extractors import (
    ColumnExtractor,
    ConstantExtractor,
    CoordinateExtractor,
    GeometryExtractor,
)


def test_column_extractor():
    ex = ColumnExtractor("v", cast=int)
    assert ex({"v": "3"}) == 3
    assert ex({"v": None}) is None
    assert ex({"v": math.nan}) is None
    assert ex({}) is None


def test_coordinate_extractor():
    assert CoordinateExtractor("x")({"x": 2}) == 2.0
    assert CoordinateExtractor("x", "y")({"x": 1, "y": 2.5}) == (1.0, 2.5)
    assert CoordinateExtractor("x", "y")({"x": 1, "y": None}) is None
    assert CoordinateExtractor("x", "y")({"x": 1}) is None


def test_geometry_extractor():
    ex = GeometryExtractor("geometry")
    assert ex({"geometry": Point(3.0, 4.0).wkb}) == (3.0, 4.0)
    square = Polygon([(0, 0), (2, 0), (2, 2), (0, 2)])
    assert ex({"geometry": square.wkb}) == (1.0, 1.0)
    assert ex({"geometry": b"garbage"}) is None
    assert ex({"geometry": None}) is None


def test_constant_extractor():
    assert ConstantExtractor()({"anything": 1}) == 1
    assert ConstantExtractor("a")({}) == "a"
