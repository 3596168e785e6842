"""Public API for Mandelbrot tile rendering."""

from .budget import budget_for_rect, select_iteration_budget, zoom_for_rect
from .packing import save_image, tile_to_array, tile_to_image
from .palette import (
    DEFAULT_CONTROL_POINTS,
    Palette,
    PaletteControlPoint,
    PixelColor,
    build_palette,
    control_points_from_colormap,
)
from .plane import ComplexPoint, PlaneRect, lerp
from .renderer import (
    DEFAULT_CONFIG,
    EscapeField,
    EscapeResult,
    RenderConfig,
    RenderedTile,
    escape_field,
    escape_time,
    render_tile,
)
from .tiling import TileGrid, fit_aspect, render_mosaic

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONTROL_POINTS",
    "ComplexPoint",
    "EscapeField",
    "EscapeResult",
    "Palette",
    "PaletteControlPoint",
    "PixelColor",
    "PlaneRect",
    "RenderConfig",
    "RenderedTile",
    "TileGrid",
    "budget_for_rect",
    "build_palette",
    "control_points_from_colormap",
    "escape_field",
    "escape_time",
    "fit_aspect",
    "lerp",
    "render_mosaic",
    "render_tile",
    "save_image",
    "select_iteration_budget",
    "tile_to_array",
    "tile_to_image",
    "zoom_for_rect",
]
