from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from tile_aggregate.aggregators import aggregator_by_name
from tile_aggregate.config import PROJECTIONS, STRATEGIES, GenerationConfig, load_config
from tile_aggregate.dataset import Dataset
from tile_aggregate.extractors import ColumnExtractor, ConstantExtractor, CoordinateExtractor, GeometryExtractor
from tile_aggregate.generation import AccumulatorTileGenerator, MapReduceTileGenerator
from tile_aggregate.projection import CartesianProjection, MercatorProjection, RowProjection, SeriesProjection
from tile_aggregate.request import TileLevelRequest
from tile_aggregate.writer import write_tiles

log = logging.getLogger("tile_aggregate")


# =========================================================
# BUILDERS
# =========================================================
def build_projection(cfg: GenerationConfig):
    if cfg.projection == "series":
        min_x, max_x = cfg.bbox
        return SeriesProjection(cfg.min_zoom, cfg.max_zoom, min_x, max_x)
    if cfg.projection == "cartesian":
        return CartesianProjection(cfg.min_zoom, cfg.max_zoom, *cfg.bbox)
    return MercatorProjection(cfg.min_zoom, cfg.max_zoom)


def build_coord_extractor(cfg: GenerationConfig):
    if cfg.geometry_column:
        return GeometryExtractor(cfg.geometry_column)
    if cfg.projection == "series" or not cfg.y_column:
        return CoordinateExtractor(cfg.x_column)
    return CoordinateExtractor(cfg.x_column, cfg.y_column)


def build_value_extractor(cfg: GenerationConfig):
    if cfg.value_column:
        return ColumnExtractor(cfg.value_column)
    return ConstantExtractor(1)


def generate(cfg: GenerationConfig, data: Dataset):
    projection = build_projection(cfg)
    coord_extractor = build_coord_extractor(cfg)
    value_extractor = build_value_extractor(cfg)
    bin_aggregator = aggregator_by_name(cfg.bin_aggregator)
    tile_aggregator = aggregator_by_name(cfg.tile_aggregator)
    request = TileLevelRequest(cfg.levels, projection)

    with cfg.context() as ctx:
        if cfg.strategy == "accumulator":
            gen = AccumulatorTileGenerator(
                RowProjection(projection, coord_extractor, cfg.bin_size),
                value_extractor,
                bin_aggregator,
                tile_aggregator,
                context=ctx,
            )
            return gen.generate(data, request)

        gen = MapReduceTileGenerator(
            coord_extractor,
            projection,
            value_extractor,
            bin_aggregator,
            tile_aggregator,
            context=ctx,
        )
        return gen.generate(data, cfg.bin_size, request).collect()


# =========================================================
# ARGUMENTS
# =========================================================
def _int_list(text: str) -> List[int]:
    out = []
    for part in text.split(","):
        part = part.strip()
        if "-" in part:
            lo, hi = part.split("-", 1)
            out.extend(range(int(lo), int(hi) + 1))
        elif part:
            out.append(int(part))
    return out


def _float_list(text: str) -> List[float]:
    return [float(p) for p in text.split(",") if p.strip()]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tile-aggregate",
        description="Aggregate point data from a Parquet file into multi-level tile bins.",
    )
    parser.add_argument("input", help="Parquet file with the source rows")
    parser.add_argument("outdir", help="Directory for .npy tiles and tiles.json")
    parser.add_argument("--config", help="JSON config file; flags below override it")
    parser.add_argument("--projection", choices=PROJECTIONS)
    parser.add_argument("--levels", type=_int_list, help="e.g. 0,1,2 or 0-3")
    parser.add_argument("--min-zoom", type=int)
    parser.add_argument("--max-zoom", type=int)
    parser.add_argument("--tile-size", type=_int_list, help="bins per tile, e.g. 256,256 or 16")
    parser.add_argument("--bbox", type=_float_list, help="data extent minx,miny,maxx,maxy (or min,max)")
    parser.add_argument("--x-column")
    parser.add_argument("--y-column")
    parser.add_argument("--geometry-column")
    parser.add_argument("--value-column")
    parser.add_argument("--bin-aggregator")
    parser.add_argument("--tile-aggregator")
    parser.add_argument("--strategy", choices=STRATEGIES)
    parser.add_argument("--workers", dest="max_workers", type=int)
    parser.add_argument("--reduce-partitions", type=int)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> GenerationConfig:
    overrides = {
        k: getattr(args, k)
        for k in (
            "projection", "levels", "min_zoom", "max_zoom", "tile_size", "bbox",
            "x_column", "y_column", "geometry_column", "value_column",
            "bin_aggregator", "tile_aggregator", "strategy", "max_workers",
            "reduce_partitions",
        )
    }
    if args.config:
        return load_config(args.config, **overrides)

    cfg_kwargs = {k: v for k, v in overrides.items() if v is not None}
    if "max_zoom" not in cfg_kwargs and "levels" in cfg_kwargs:
        cfg_kwargs["max_zoom"] = max(max(cfg_kwargs["levels"]), GenerationConfig.max_zoom)
    return GenerationConfig(**cfg_kwargs)


# =========================================================
# ENTRY POINT
# =========================================================
def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(levelname)s: %(message)s",
    )

    cfg = config_from_args(args)
    log.info(f"Config: {cfg.to_dict()}")

    input_path = Path(args.input)
    if not input_path.exists():
        log.error(f"Input not found: {input_path}")
        return 1

    data = Dataset.from_parquet(str(input_path))
    if len(data) == 0:
        log.error("No rows found in input")
        return 1

    tiles = generate(cfg, data)

    shape = None
    if cfg.projection != "series":
        w, h = cfg.bin_size
        shape = (h, w)
    write_tiles(tiles, args.outdir, shape=shape)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
