from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from tile_aggregate.aggregators import Aggregator
from tile_aggregate.context import GenerationContext, scoped_context
from tile_aggregate.dataset import Dataset
from tile_aggregate.extractors import ValueExtractor
from tile_aggregate.generation.base import finish_tile, make_bins, merge_bins
from tile_aggregate.output import TileData
from tile_aggregate.projection import RowProjection
from tile_aggregate.request import TileRequest

logger = logging.getLogger(__name__)


class AccumulatorTileGenerator:
    """
    Tile generator for batches whose tiles fit in memory on the caller.

    Each worker folds its rows into a local {tile coordinate: bin array}
    mapping, the partial mappings are merged slot-wise, and tiles are finished
    centrally. A row that fails to project or extract at some level is skipped
    for that level only.

    :param projection: rows -> (tile coordinate, bin index)
    :param extractor: pulls the value to aggregate from a row, after projection
    :param bin_aggregator: per-bin algebra
    :param tile_aggregator: per-tile algebra over finished bin values
    :param context: worker pool. When omitted each run gets its own pool,
        shut down before the run returns.
    """

    def __init__(
        self,
        projection: RowProjection,
        extractor: ValueExtractor,
        bin_aggregator: Aggregator,
        tile_aggregator: Aggregator,
        context: Optional[GenerationContext] = None,
    ):
        self.projection = projection
        self.extractor = extractor
        self.bin_aggregator = bin_aggregator
        self.tile_aggregator = tile_aggregator
        self.context = context

    def accumulate(self, rows, request: TileRequest) -> Tuple[Dict[Any, List[Any]], int]:
        """
        Fold rows into a fresh partial mapping.

        Returns the mapping and the number of (row, level) contributions that
        raised and were skipped.
        """
        projection = self.projection
        agg = self.bin_aggregator
        max_bins = projection.max_bins
        levels = request.levels
        acc: Dict[Any, List[Any]] = {}
        skipped = 0

        for row in rows:
            for z in levels:
                try:
                    coord = projection.row_to_coords(row, z)
                    if coord is None or not request.in_request(coord[0]):
                        continue
                    tc, index = coord
                    bins = acc.get(tc)
                    current = agg.default if bins is None else bins[index]
                    updated = agg.add(current, self.extractor.row_to_value(row))
                    if bins is None:
                        bins = make_bins(max_bins, agg.default)
                        acc[tc] = bins
                    bins[index] = updated
                except Exception as e:
                    skipped += 1
                    logger.debug(f"Skipped row at level {z}: {e!r}")

        return acc, skipped

    def generate(self, data: Dataset, request: TileRequest) -> List[TileData]:
        """
        :param data: the source rows
        :param request: tiles requested for generation
        """
        t0 = time.perf_counter()
        data.cache()
        logger.info(
            f"Accumulator generation over {data.num_partitions} partitions, "
            f"levels={list(request.levels)}, bins per tile={self.projection.max_bins}"
        )

        with scoped_context(self.context) as ctx:
            partials = ctx.run(
                lambda i: self.accumulate(data.partition_rows(i), request),
                range(data.num_partitions),
            )

        merged: Dict[Any, List[Any]] = {}
        skipped = 0
        for acc, n_skipped in partials:
            skipped += n_skipped
            for key, bins in acc.items():
                if key in merged:
                    merged[key] = merge_bins(merged[key], bins, self.bin_aggregator)
                else:
                    merged[key] = bins

        if skipped:
            logger.warning(f"Skipped {skipped} row contributions that failed to project or extract")

        tiles = [
            finish_tile(key, bins, self.bin_aggregator, self.tile_aggregator, self.projection.projection)
            for key, bins in merged.items()
        ]

        logger.info(f"Generated {len(tiles)} tiles in {time.perf_counter() - t0:.2f}s")
        return tiles
