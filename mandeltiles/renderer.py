"""Escape-time iteration and tile rasterization."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import tensorflow as tf

from .budget import DEFAULT_BASE_ITERATIONS, select_iteration_budget
from .palette import Palette, PixelColor
from .plane import ComplexPoint, PlaneRect

# Larger than the sufficient radius of 2 so the smooth colouring is stable.
ESCAPE_RADIUS = 16.0
# Once |z| > 2 the orbit diverges.
DIVERGENCE_RADIUS_SQUARED = 4.0
DEFAULT_DEVICE = "/CPU:0"
WORLD = PlaneRect.from_bounds(-2.5, -1.5, 1.5, 1.5)


@dataclass(frozen=True)
class RenderConfig:
    """Tunable parameters shared by every tile render."""

    base_iterations: int = DEFAULT_BASE_ITERATIONS
    escape_radius: float = ESCAPE_RADIUS
    # Row 0 of a tile is the top edge (``rect.max.im``) when set.
    flip_vertical: bool = True
    world: PlaneRect = WORLD
    tile_size: int = 256

    def __post_init__(self) -> None:
        if self.base_iterations < 1:
            raise ValueError(f"base_iterations must be positive, got {self.base_iterations}.")
        if not self.escape_radius > 2.0:
            raise ValueError(f"escape_radius must be larger than 2, got {self.escape_radius}.")
        if self.tile_size < 1:
            raise ValueError(f"tile_size must be positive, got {self.tile_size}.")


DEFAULT_CONFIG = RenderConfig()


@dataclass(frozen=True)
class EscapeResult:
    """Outcome of iterating a single point."""

    escaped: bool
    iterations: int
    value: float


@dataclass(frozen=True)
class EscapeField:
    """Per-pixel escape data for a whole tile, each array shaped ``(height, width)``."""

    smooth: np.ndarray
    iterations: np.ndarray
    inside: np.ndarray
    max_iterations: int


@dataclass(frozen=True, eq=False)
class RenderedTile:
    """Row-major ARGB pixels of one rendered tile.

    ``pixels`` has shape ``(width * height, 4)``; ``to_bytes`` yields the
    packed alpha, red, green, blue byte stream expected by image packers.
    """

    width: int
    height: int
    pixels: np.ndarray = field(repr=False)
    max_iterations: int = 0

    @classmethod
    def empty(cls) -> RenderedTile:
        return cls(0, 0, np.zeros((0, 4), dtype=np.uint8))

    @property
    def is_empty(self) -> bool:
        return self.pixels.shape[0] == 0

    def __len__(self) -> int:
        return int(self.pixels.shape[0])

    def __getitem__(self, index: int) -> PixelColor:
        return PixelColor(*(int(channel) for channel in self.pixels[index]))

    def pixel(self, x: int, y: int) -> PixelColor:
        return self[y * self.width + x]

    def as_array(self) -> np.ndarray:
        """View the buffer as ``(height, width, 4)`` ARGB."""

        return self.pixels.reshape(self.height, self.width, 4)

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()


def smooth_value(iteration: int, length_squared: float, max_iterations: int) -> float:
    """Continuous dwell ``(n - log2(log|z|)) / max_iterations`` clamped to [0, 1]."""

    value = (iteration - math.log2(math.log(math.sqrt(length_squared)))) / max_iterations
    if math.isnan(value):
        return 0.0
    return min(max(value, 0.0), 1.0)


def escape_time(c: ComplexPoint, max_iterations: int, escape_radius: float = ESCAPE_RADIUS) -> EscapeResult:
    """Iterate ``z <- z*z + c`` from ``z = 0`` for at most ``max_iterations`` steps.

    The first step ``n`` (0-indexed) at which ``|z|^2`` is no longer below
    ``escape_radius^2`` ends the loop; NaN counts as escaped. If the budget
    runs out while ``|z| > 2`` the point is still reported escaped, at the
    last step, since its orbit provably diverges. Points that never escape
    are inside the set and get the value 1.0.
    """

    bailout = escape_radius * escape_radius
    z = ComplexPoint()
    for n in range(max_iterations):
        z = z.square() + c
        length_squared = z.length_squared()
        if not length_squared < bailout:
            return EscapeResult(True, n, smooth_value(n, length_squared, max_iterations))

    length_squared = z.length_squared()
    if max_iterations > 0 and length_squared > DIVERGENCE_RADIUS_SQUARED:
        n = max_iterations - 1
        return EscapeResult(True, n, smooth_value(n, length_squared, max_iterations))
    return EscapeResult(False, max_iterations, 1.0)


@tf.function(reduce_retracing=True)
def _escape_step(
    re: tf.Tensor,
    im: tf.Tensor,
    c_re: tf.Tensor,
    c_im: tf.Tensor,
    ns: tf.Tensor,
    active: tf.Tensor,
    step: tf.Tensor,
    bailout: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every still-active point by one iteration and record new escapes."""

    new_re = re * re - im * im + c_re
    new_im = 2.0 * re * im + c_im
    re = tf.where(active, new_re, re)
    im = tf.where(active, new_im, im)
    bounded = re * re + im * im < bailout
    escaped_now = tf.logical_and(active, tf.logical_not(bounded))
    ns = tf.where(escaped_now, step, ns)
    return re, im, ns, tf.logical_and(active, bounded)


@tf.function(reduce_retracing=True)
def _escape_run(
    c_re: tf.Tensor,
    c_im: tf.Tensor,
    max_iterations: tf.Tensor,
    bailout: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Iterate the whole grid with a TensorFlow while loop."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    re = tf.zeros_like(c_re)
    im = tf.zeros_like(c_im)
    ns = tf.fill(tf.shape(c_re), max_iterations)
    active = tf.ones_like(c_re, tf.bool)

    def cond(i, re, im, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, re, im, ns, active):
        re, im, ns, active = _escape_step(re, im, c_re, c_im, ns, active, i, bailout)
        return i + 1, re, im, ns, active

    return tf.while_loop(cond, body, (i, re, im, ns, active))


def _plane_axes(rect: PlaneRect, width: int, height: int, flip_vertical: bool) -> tuple[np.ndarray, np.ndarray]:
    u = np.arange(width, dtype=np.float64) / width
    v = np.arange(height, dtype=np.float64) / height
    if flip_vertical:
        v = 1.0 - v
    re = rect.min.re + u * (rect.max.re - rect.min.re)
    im = rect.min.im + v * (rect.max.im - rect.min.im)
    return re, im


def escape_field(
    rect: PlaneRect,
    width: int,
    height: int,
    max_iterations: int,
    *,
    flip_vertical: bool = True,
    escape_radius: float = ESCAPE_RADIUS,
    device: Optional[str] = None,
) -> EscapeField:
    """Run the escape-time iteration for every pixel of a tile.

    Pixel ``(x, y)`` samples ``lerp(rect.min, rect.max, (x / width, v))`` with
    ``v = 1 - y / height`` when ``flip_vertical`` and ``y / height`` otherwise.
    Results match :func:`escape_time` point for point.
    """

    re_axis, im_axis = _plane_axes(rect, width, height, flip_vertical)
    c_re_np, c_im_np = np.meshgrid(re_axis, im_axis)

    with tf.device(device if device is not None else DEFAULT_DEVICE):
        c_re = tf.convert_to_tensor(c_re_np, dtype=tf.float64)
        c_im = tf.convert_to_tensor(c_im_np, dtype=tf.float64)
        limit = tf.constant(max_iterations, dtype=tf.int32)
        bailout = tf.constant(escape_radius * escape_radius, dtype=tf.float64)

        _, re, im, ns, active = _escape_run(c_re, c_im, limit, bailout)

        length_squared = re * re + im * im
        late = tf.logical_and(
            tf.logical_and(active, limit > 0),
            length_squared > tf.constant(DIVERGENCE_RADIUS_SQUARED, dtype=tf.float64),
        )
        ns = tf.where(late, limit - 1, ns)
        inside = tf.logical_and(active, tf.logical_not(late))

        log2 = tf.constant(math.log(2.0), dtype=tf.float64)
        log_log = tf.math.log(tf.math.log(tf.sqrt(length_squared))) / log2
        scale = tf.cast(tf.maximum(limit, 1), tf.float64)
        smooth = (tf.cast(ns, tf.float64) - log_log) / scale
        smooth = tf.where(tf.math.is_nan(smooth), tf.zeros_like(smooth), smooth)
        smooth = tf.clip_by_value(smooth, 0.0, 1.0)
        smooth = tf.where(inside, tf.ones_like(smooth), smooth)

    return EscapeField(
        smooth=smooth.numpy(),
        iterations=ns.numpy(),
        inside=inside.numpy(),
        max_iterations=max_iterations,
    )


def render_tile(
    rect: PlaneRect,
    pixel_width: int,
    pixel_height: int,
    zoom_hint: float,
    palette: Palette,
    *,
    max_iterations: Optional[int] = None,
    config: RenderConfig = DEFAULT_CONFIG,
    device: Optional[str] = None,
) -> RenderedTile:
    """Render ``rect`` into a ``pixel_width`` x ``pixel_height`` ARGB tile.

    The iteration budget comes from ``zoom_hint`` and ``config.base_iterations``
    unless ``max_iterations`` is given. Non-positive dimensions, an empty
    palette or a non-positive budget produce an empty tile without rendering.
    The output depends only on the arguments, so repeated calls are
    byte-identical.
    """

    if pixel_width <= 0 or pixel_height <= 0 or len(palette) == 0:
        return RenderedTile.empty()
    if max_iterations is None:
        max_iterations = select_iteration_budget(zoom_hint, config.base_iterations)
    if max_iterations < 1:
        return RenderedTile.empty()

    result = escape_field(
        rect,
        pixel_width,
        pixel_height,
        max_iterations,
        flip_vertical=config.flip_vertical,
        escape_radius=config.escape_radius,
        device=device,
    )
    pixels = palette.lookup(result.smooth.reshape(-1))
    return RenderedTile(
        width=pixel_width,
        height=pixel_height,
        pixels=np.ascontiguousarray(pixels, dtype=np.uint8),
        max_iterations=max_iterations,
    )
