"""Output serialization for simulation artifacts."""

from __future__ import annotations

import json
from pathlib import Path
import shutil
from typing import Any

import numpy as np
from PIL import Image


def resolve_output_dir(
    out_root: str | Path,
    seed: int,
    size: int,
    *,
    overwrite: bool,
) -> Path:
    """Create and return the output directory for one simulation run."""

    target = Path(out_root) / f"seed-{seed}" / f"{size}x{size}"
    if target.exists() and any(target.iterdir()) and not overwrite:
        raise FileExistsError(
            f"Output directory already exists and is not empty: {target}. Use --overwrite to replace files."
        )
    target.mkdir(parents=True, exist_ok=True)
    return target


def clean_output_dir(target: Path, *, out_root: Path) -> None:
    """Delete all children of `target`, refusing to touch anything outside `out_root`."""

    target_r = target.resolve()
    target_r.relative_to(out_root.resolve())

    if not target_r.exists():
        target_r.mkdir(parents=True, exist_ok=True)
        return

    for child in target_r.iterdir():
        if child.is_symlink() or child.is_file():
            child.unlink()
        elif child.is_dir():
            shutil.rmtree(child)


def move_tree_contents(src_dir: Path, dst_dir: Path) -> None:
    for child in src_dir.iterdir():
        shutil.move(str(child), str(dst_dir / child.name))


def write_height_npy(path: str | Path, heights: np.ndarray) -> None:
    np.save(Path(path), heights.astype(np.float32), allow_pickle=False)


def write_png_u16(path: str | Path, raster_u16: np.ndarray) -> None:
    image = Image.fromarray(raster_u16.astype(np.uint16))
    image.save(Path(path))


def write_png_u8(path: str | Path, raster_u8: np.ndarray) -> None:
    image = Image.fromarray(raster_u8.astype(np.uint8))
    image.save(Path(path))


def write_png_rgb(path: str | Path, raster_rgb: np.ndarray) -> None:
    image = Image.fromarray(raster_rgb.astype(np.uint8))
    image.save(Path(path))


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True)
    Path(path).write_text(text + "\n", encoding="utf-8")
