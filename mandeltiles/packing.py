"""Conversion of rendered ARGB tiles into Pillow images."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import PIL.Image

from .renderer import RenderedTile


def tile_to_array(tile: RenderedTile) -> np.ndarray:
    """Return the tile as a ``(height, width, 4)`` RGBA ``uint8`` array.

    Raises ``ValueError`` for empty tiles or buffers whose length is not
    ``width * height``.
    """

    if tile.width <= 0 or tile.height <= 0 or tile.is_empty:
        raise ValueError("cannot pack an empty tile.")
    pixels = np.asarray(tile.pixels)
    if pixels.dtype != np.uint8 or pixels.ndim != 2 or pixels.shape[1] != 4:
        raise ValueError(f"expected a (N, 4) uint8 pixel buffer, got {pixels.shape} {pixels.dtype}.")
    if pixels.shape[0] != tile.width * tile.height:
        raise ValueError(
            f"pixel buffer holds {pixels.shape[0]} pixels, expected {tile.width} x {tile.height}."
        )
    argb = pixels.reshape(tile.height, tile.width, 4)
    # ARGB -> RGBA
    return np.ascontiguousarray(np.roll(argb, -1, axis=-1))


def tile_to_image(tile: RenderedTile) -> PIL.Image.Image:
    return PIL.Image.fromarray(tile_to_array(tile))


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def save_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write ``image`` to ``output_path``; formats without alpha get an RGB copy."""

    pil_format = _pil_format_name(image_format)
    if pil_format in {"JPEG", "BMP"} and image.mode == "RGBA":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)
