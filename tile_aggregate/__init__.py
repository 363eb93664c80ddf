"""Multi-resolution tile aggregation over large point datasets."""

from .aggregators import (
    Aggregator,
    CountAggregator,
    MaxAggregator,
    MaxMinAggregator,
    MeanAggregator,
    MinAggregator,
    SumAggregator,
    TopElementsAggregator,
)
from .context import GenerationContext
from .dataset import Dataset
from .extractors import (
    ColumnExtractor,
    ConstantExtractor,
    CoordinateExtractor,
    GeometryExtractor,
    ValueExtractor,
)
from .generation import AccumulatorTileGenerator, MapReduceTileGenerator, TileCollection
from .output import TileData
from .projection import (
    CartesianProjection,
    MercatorProjection,
    Projection,
    RowProjection,
    SeriesProjection,
)
from .request import TileLevelRequest, TileRequest, TileSeqRequest

__version__ = "0.1.0"

__all__ = [
    "AccumulatorTileGenerator",
    "Aggregator",
    "CartesianProjection",
    "ColumnExtractor",
    "ConstantExtractor",
    "CoordinateExtractor",
    "CountAggregator",
    "Dataset",
    "GenerationContext",
    "GeometryExtractor",
    "MapReduceTileGenerator",
    "MaxAggregator",
    "MaxMinAggregator",
    "MeanAggregator",
    "MercatorProjection",
    "MinAggregator",
    "Projection",
    "RowProjection",
    "SeriesProjection",
    "SumAggregator",
    "TileCollection",
    "TileData",
    "TileLevelRequest",
    "TileRequest",
    "TileSeqRequest",
    "TopElementsAggregator",
    "ValueExtractor",
]
