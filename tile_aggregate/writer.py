from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import numpy as np

from tile_aggregate.output import TileData

logger = logging.getLogger(__name__)


def tile_path(outdir: Path, coords) -> Path:
    parts = [str(int(c)) for c in coords]
    return outdir.joinpath(*parts[:-1]) / f"{parts[-1]}.npy"


def write_tiles(
    tiles: Iterable[TileData],
    outdir: str,
    shape: Optional[Tuple[int, ...]] = None,
    dtype: str = "float64",
) -> Path:
    """
    Write each tile's bins to {z}/{x}[/{y}].npy and a tiles.json index.

    :param shape: reshape the flat bin array, e.g. (height, width) for 2D tiles
    """
    outdir_p = Path(outdir)
    outdir_p.mkdir(parents=True, exist_ok=True)

    index: List[dict] = []
    total = 0.0
    touched = 0

    for tile in tiles:
        try:
            arr = tile.to_numpy(dtype=np.dtype(dtype))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Tile {tile.coords} has non-numeric bins: {e}") from e

        if shape is not None:
            arr = arr.reshape(tuple(shape) + arr.shape[1:])

        out_path = tile_path(outdir_p, tile.coords)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        np.save(out_path, arr, allow_pickle=False)

        entry = tile.summary()
        entry["filename"] = str(out_path.relative_to(outdir_p))
        entry["shape"] = list(arr.shape)
        index.append(entry)

        total += float(np.nansum(arr))
        touched += tile.bins_touched

    index.sort(key=lambda e: e["coords"] if isinstance(e["coords"], list) else [e["coords"]])

    index_json = {
        "dtype": dtype,
        "num_tiles": len(index),
        "bins_touched": touched,
        "sum": total,
        "tiles": index,
    }
    index_path = outdir_p / "tiles.json"
    with open(index_path, "w") as f:
        json.dump(index_json, f, indent=2)

    logger.info(f"Wrote {len(index)} tiles to {outdir_p}")
    return index_path
