from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterator, List, Optional, Tuple

from tile_aggregate.aggregators import Aggregator
from tile_aggregate.context import GenerationContext, scoped_context
from tile_aggregate.dataset import Dataset
from tile_aggregate.extractors import ValueExtractor
from tile_aggregate.generation.base import TileCollection, finish_tile, make_bins, merge_bins
from tile_aggregate.output import TileData
from tile_aggregate.projection import Projection
from tile_aggregate.request import TileRequest

logger = logging.getLogger(__name__)

BinValue = Tuple[int, Optional[Any]]


class TileCombiner:
    """
    create / merge-value / merge-combiners for a combine-by-key over
    (tile coordinate, (bin index, value)) pairs.
    """

    def __init__(self, max_bins: int, bin_aggregator: Aggregator):
        self.max_bins = max_bins
        self.bin_aggregator = bin_aggregator

    def create_combiner(self, first_value: BinValue) -> List[Any]:
        agg = self.bin_aggregator
        index, value = first_value
        bins = make_bins(self.max_bins, agg.default)
        bins[index] = agg.add(agg.default, value)
        return bins

    def merge_value(self, combiner: List[Any], new_value: BinValue) -> List[Any]:
        index, value = new_value
        combiner[index] = self.bin_aggregator.add(combiner[index], value)
        return combiner

    def merge_combiners(self, r1: List[Any], r2: List[Any]) -> List[Any]:
        return merge_bins(r1, r2, self.bin_aggregator)


class MapReduceTileGenerator:
    """
    Tile generator built on a combine-by-key over the whole dataset.

    Every partition is transformed and pre-combined by its own worker, the
    partial bin arrays are shuffled into reduce buckets by tile coordinate,
    merged, and finished per bucket. The result is lazy.

    :param coord_extractor: pulls the data-space coordinate from a row
    :param projection: data space -> (tile, bin)
    :param value_extractor: pulls the value to aggregate from a row
    :param bin_aggregator: per-bin algebra
    :param tile_aggregator: per-tile algebra over finished bin values
    :param context: worker pool. When omitted each run gets its own pool,
        shut down before the run returns.
    """

    def __init__(
        self,
        coord_extractor: ValueExtractor,
        projection: Projection,
        value_extractor: ValueExtractor,
        bin_aggregator: Aggregator,
        tile_aggregator: Aggregator,
        context: Optional[GenerationContext] = None,
    ):
        self.coord_extractor = coord_extractor
        self.projection = projection
        self.value_extractor = value_extractor
        self.bin_aggregator = bin_aggregator
        self.tile_aggregator = tile_aggregator
        self.context = context

    # ---------------------------------------------------------------------------
    # TRANSFORM
    # ---------------------------------------------------------------------------

    def transform_rows(self, rows, tile_size, request: TileRequest) -> Iterator[Tuple[Any, BinValue]]:
        """
        Map rows to (tile coordinate, (bin index, optional value)), one pair
        per requested level the row projects into.
        """
        projection = self.projection
        levels = request.levels
        for row in rows:
            dc = self.coord_extractor.row_to_value(row)
            value = self.value_extractor.row_to_value(row)
            for z in levels:
                coords = projection.project(dc, z, tile_size)
                if coords is not None and request.in_request(coords[0]):
                    yield coords[0], (projection.bin_to_1d(coords[1], tile_size), value)

    # ---------------------------------------------------------------------------
    # GENERATE
    # ---------------------------------------------------------------------------

    def generate(self, data: Dataset, tile_size: Any, request: TileRequest) -> TileCollection:
        """
        :param data: the source rows
        :param tile_size: the size of a tile in bins, expressed as a bin coordinate
        :param request: tiles requested for generation
        """
        max_bins = self.projection.bin_to_1d(tile_size, tile_size)
        if max_bins <= 0:
            raise ValueError(f"Tile size {tile_size!r} gives {max_bins} bins per tile")

        combiner = TileCombiner(max_bins, self.bin_aggregator)

        def compute() -> List[TileData]:
            return self._run(data, tile_size, request, combiner)

        return TileCollection(compute, description=f"levels={request.levels}, bins={max_bins}")

    def _run(self, data: Dataset, tile_size, request: TileRequest, combiner: TileCombiner) -> List[TileData]:
        with scoped_context(self.context) as ctx:
            return self._run_in(ctx, data, tile_size, request, combiner)

    def _run_in(
        self, ctx: GenerationContext, data: Dataset, tile_size, request: TileRequest, combiner: TileCombiner
    ) -> List[TileData]:
        t0 = time.perf_counter()
        data.cache()
        logger.info(
            f"Map/reduce generation over {data.num_partitions} partitions, "
            f"levels={list(request.levels)}, bins per tile={combiner.max_bins}"
        )

        def combine_partition(i: int) -> Dict[Any, List[Any]]:
            combiners: Dict[Any, List[Any]] = {}
            for key, value in self.transform_rows(data.partition_rows(i), tile_size, request):
                bins = combiners.get(key)
                if bins is None:
                    combiners[key] = combiner.create_combiner(value)
                else:
                    combiner.merge_value(bins, value)
            return combiners

        partials = ctx.run(combine_partition, range(data.num_partitions))

        # Shuffle partial combiners into reduce buckets by tile coordinate
        n_buckets = ctx.reduce_partitions
        buckets: List[List[Tuple[Any, List[Any]]]] = [[] for _ in range(n_buckets)]
        for part in partials:
            for key, bins in part.items():
                buckets[hash(key) % n_buckets].append((key, bins))

        def reduce_bucket(bucket: List[Tuple[Any, List[Any]]]) -> List[TileData]:
            merged: Dict[Any, List[Any]] = {}
            for key, bins in bucket:
                if key in merged:
                    merged[key] = combiner.merge_combiners(merged[key], bins)
                else:
                    merged[key] = bins
            return [
                finish_tile(key, bins, self.bin_aggregator, self.tile_aggregator, self.projection)
                for key, bins in merged.items()
            ]

        tiles: List[TileData] = []
        for result in ctx.run(reduce_bucket, [b for b in buckets if b]):
            tiles.extend(result)

        logger.info(f"Generated {len(tiles)} tiles in {time.perf_counter() - t0:.2f}s")
        return tiles
