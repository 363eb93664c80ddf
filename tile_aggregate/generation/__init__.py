from .accumulator import AccumulatorTileGenerator
from .base import TileCollection, finish_tile
from .mapreduce import MapReduceTileGenerator, TileCombiner

__all__ = [
    "AccumulatorTileGenerator",
    "MapReduceTileGenerator",
    "TileCollection",
    "TileCombiner",
    "finish_tile",
]
