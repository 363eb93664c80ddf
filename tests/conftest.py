import numpy as np
import pytest

from tile_aggregate.context import GenerationContext
from tile_aggregate.projection import CartesianProjection, SeriesProjection


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def context():
    with GenerationContext(max_workers=4, reduce_partitions=3) as ctx:
        yield ctx


@pytest.fixture
def series_projection():
    return SeriesProjection(0, 1, 0.0, 1.0)


@pytest.fixture
def cartesian_projection():
    return CartesianProjection(0, 3, 0.0, 0.0, 100.0, 100.0)


@pytest.fixture
def points(rng):
    """500 rows in [0, 100)^2 with a value column."""
    xs = rng.random(500) * 100
    ys = rng.random(500) * 100
    vs = rng.integers(0, 50, size=500)
    return [
        {"x": float(x), "y": float(y), "v": float(v)}
        for x, y, v in zip(xs, ys, vs)
    ]
