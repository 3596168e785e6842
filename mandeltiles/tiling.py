"""Tile geometry for a zoomable canvas and concurrent mosaic rendering."""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Iterator, Optional

import numpy as np

from .budget import select_iteration_budget
from .palette import Palette
from .plane import ComplexPoint, PlaneRect
from .renderer import DEFAULT_CONFIG, RenderConfig, RenderedTile, render_tile

Window = tuple[int, int, int, int]


def fit_aspect(world: PlaneRect, width: int, height: int) -> PlaneRect:
    """Grow ``world`` symmetrically along one axis to match a ``width`` x ``height`` canvas."""

    span = world.max - world.min
    if width <= 0 or height <= 0 or span.re == 0.0 or span.im == 0.0:
        return world

    canvas_ratio = width / height
    world_ratio = span.re / span.im
    if canvas_ratio < world_ratio:
        inc = ComplexPoint(0.0, (span.re / canvas_ratio - span.im) / 2.0)
    else:
        inc = ComplexPoint((canvas_ratio * span.im - span.re) / 2.0, 0.0)
    return PlaneRect(world.min - inc, world.max + inc)


@dataclass(frozen=True)
class TileGrid:
    """Square tiles covering a canvas magnified by ``zoom``.

    At zoom ``z`` the canvas measures ``canvas_width * z`` by
    ``canvas_height * z`` pixels and is cut into ``tile_size`` tiles. With
    ``flip_vertical`` pixel and tile row 0 are at the top (largest imaginary
    part), otherwise at the bottom, matching how ``render_tile`` lays out
    rows inside each tile.
    """

    world: PlaneRect
    canvas_width: int
    canvas_height: int
    tile_size: int = DEFAULT_CONFIG.tile_size
    zoom: float = 1.0
    flip_vertical: bool = DEFAULT_CONFIG.flip_vertical

    def __post_init__(self) -> None:
        if self.tile_size < 1:
            raise ValueError(f"tile_size must be positive, got {self.tile_size}.")
        if self.canvas_width < 1 or self.canvas_height < 1:
            raise ValueError("canvas dimensions must be positive.")
        if not self.zoom > 0:
            raise ValueError(f"zoom must be positive, got {self.zoom}.")

    @classmethod
    def for_canvas(
        cls,
        canvas_width: int,
        canvas_height: int,
        zoom: float = 1.0,
        config: RenderConfig = DEFAULT_CONFIG,
    ) -> TileGrid:
        world = fit_aspect(config.world, canvas_width, canvas_height)
        return cls(world, canvas_width, canvas_height, config.tile_size, zoom, config.flip_vertical)

    @property
    def scaled_width(self) -> float:
        return self.canvas_width * self.zoom

    @property
    def scaled_height(self) -> float:
        return self.canvas_height * self.zoom

    @property
    def columns(self) -> int:
        return max(1, math.ceil(self.scaled_width / self.tile_size))

    @property
    def rows(self) -> int:
        return max(1, math.ceil(self.scaled_height / self.tile_size))

    def _row_to_v(self, y: float) -> float:
        v = y / self.scaled_height
        return 1.0 - v if self.flip_vertical else v

    def pixel_to_complex(self, x: float, y: float) -> ComplexPoint:
        return self.world.point_at(x / self.scaled_width, self._row_to_v(y))

    def complex_to_pixel(self, point: ComplexPoint) -> tuple[float, float]:
        # a zero-span axis maps every point to the middle of the canvas
        width, height = self.world.width, self.world.height
        u = (point.re - self.world.min.re) / width if width != 0.0 else 0.5
        v = (point.im - self.world.min.im) / height if height != 0.0 else 0.5
        if self.flip_vertical:
            v = 1.0 - v
        return u * self.scaled_width, v * self.scaled_height

    def tile_rect(self, column: int, row: int) -> PlaneRect:
        size = self.tile_size
        u0 = column * size / self.scaled_width
        u1 = (column + 1) * size / self.scaled_width
        v_first = self._row_to_v(row * size)
        v_next = self._row_to_v((row + 1) * size)
        v_low, v_high = (v_next, v_first) if self.flip_vertical else (v_first, v_next)
        return PlaneRect(self.world.point_at(u0, v_low), self.world.point_at(u1, v_high))

    def window_around(self, center: ComplexPoint, width: int, height: int) -> Window:
        """Pixel window of ``width`` x ``height`` centred on ``center``."""

        cx, cy = self.complex_to_pixel(center)
        x0 = int(round(cx - width / 2.0))
        y0 = int(round(cy - height / 2.0))
        return x0, y0, x0 + width, y0 + height

    def tiles(self, window: Optional[Window] = None) -> Iterator[tuple[int, int]]:
        """Yield ``(column, row)`` of every tile overlapping ``window``."""

        if window is None:
            first_col, first_row, last_col, last_row = 0, 0, self.columns, self.rows
        else:
            x0, y0, x1, y1 = window
            if x1 <= x0 or y1 <= y0:
                return
            size = self.tile_size
            first_col, first_row = x0 // size, y0 // size
            last_col, last_row = -(-x1 // size), -(-y1 // size)
        for row in range(first_row, last_row):
            for column in range(first_col, last_col):
                yield column, row


def render_mosaic(
    grid: TileGrid,
    palette: Palette,
    *,
    window: Optional[Window] = None,
    config: RenderConfig = DEFAULT_CONFIG,
    max_iterations: Optional[int] = None,
    workers: Optional[int] = None,
    device: Optional[str] = None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> RenderedTile:
    """Render every tile overlapping ``window`` and stitch them into one image.

    Tiles are rendered concurrently; each one writes a disjoint region of the
    output, so the result does not depend on completion order. Rows inside
    each tile follow ``grid.flip_vertical`` so tiles line up with the grid.
    """

    if window is None:
        window = (0, 0, math.ceil(grid.scaled_width), math.ceil(grid.scaled_height))
    x0, y0, x1, y1 = window
    if max_iterations is None:
        max_iterations = select_iteration_budget(grid.zoom, config.base_iterations)
    if x1 <= x0 or y1 <= y0 or len(palette) == 0 or max_iterations < 1:
        return RenderedTile.empty()

    config = replace(config, flip_vertical=grid.flip_vertical)
    out = np.zeros((y1 - y0, x1 - x0, 4), dtype=np.uint8)
    indices = list(grid.tiles(window))
    size = grid.tile_size

    def render(index: tuple[int, int]) -> tuple[tuple[int, int], RenderedTile]:
        column, row = index
        tile = render_tile(
            grid.tile_rect(column, row),
            size,
            size,
            grid.zoom,
            palette,
            max_iterations=max_iterations,
            config=config,
            device=device,
        )
        return index, tile

    with ThreadPoolExecutor(max_workers=workers) as executor:
        for done, ((column, row), tile) in enumerate(executor.map(render, indices), start=1):
            px, py = column * size, row * size
            ax0, ax1 = max(px, x0), min(px + size, x1)
            ay0, ay1 = max(py, y0), min(py + size, y1)
            out[ay0 - y0:ay1 - y0, ax0 - x0:ax1 - x0] = tile.as_array()[ay0 - py:ay1 - py, ax0 - px:ax1 - px]
            if progress is not None:
                progress(done, len(indices))

    height, width = out.shape[:2]
    return RenderedTile(width, height, out.reshape(-1, 4), max_iterations)
