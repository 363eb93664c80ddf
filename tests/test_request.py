import pytest

from tile_aggregate.request import TileLevelRequest, TileSeqRequest


def test_seq_request_levels_and_membership(series_projection):
    req = TileSeqRequest([(0, 0), (1, 1)], series_projection)
    assert req.levels == (0, 1)
    assert req.in_request((0, 0))
    assert req.in_request((1, 1))
    assert not req.in_request((1, 0))
    assert len(req) == 2


def test_seq_request_ignores_level_when_matching(series_projection):
    req = TileSeqRequest([(1, 0)], series_projection)
    # a coordinate at another level never matches the requested set
    assert not req.in_request((0, 0))


def test_seq_request_rejects_levels_outside_projection(series_projection):
    with pytest.raises(ValueError, match="outside"):
        TileSeqRequest([(3, 0)], series_projection)


def test_level_request(cartesian_projection):
    req = TileLevelRequest([2, 0, 2], cartesian_projection)
    assert req.levels == (0, 2)
    assert req.in_request((2, 3, 1))
    assert not req.in_request((1, 0, 0))
    with pytest.raises(ValueError):
        TileLevelRequest([7], cartesian_projection)
