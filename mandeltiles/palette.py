"""Colour palette construction from sparse control points."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, NamedTuple, Sequence, Union

import numpy as np
from matplotlib import colormaps as _mpl_colormaps

DEFAULT_PALETTE_SIZE = 512
INTERPOLATIONS = ("cubic", "linear")


class PixelColor(NamedTuple):
    """One opaque pixel in (alpha, red, green, blue) byte order."""

    alpha: int
    red: int
    green: int
    blue: int


@dataclass(frozen=True)
class PaletteControlPoint:
    """A keyframe of the gradient: ``position`` in [0, 1], ``color`` as RGB in [0, 255]."""

    position: float
    color: tuple[float, float, float]


ControlPointLike = Union[PaletteControlPoint, tuple[float, Sequence[float]]]


DEFAULT_CONTROL_POINTS: tuple[PaletteControlPoint, ...] = (
    PaletteControlPoint(0.0, (0, 7, 100)),
    PaletteControlPoint(0.16, (32, 107, 203)),
    PaletteControlPoint(0.42, (237, 255, 255)),
    PaletteControlPoint(0.6425, (255, 170, 0)),
    PaletteControlPoint(0.8575, (0, 2, 0)),
)


@dataclass(frozen=True, eq=False)
class Palette:
    """Dense, read-only lookup table of ARGB colours.

    ``colors`` has shape ``(N, 4)`` and dtype ``uint8``. The buffer is marked
    non-writeable so one palette can be shared by concurrent renders.
    """

    colors: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        colors = np.array(self.colors, dtype=np.uint8, copy=True).reshape(-1, 4)
        colors.setflags(write=False)
        object.__setattr__(self, "colors", colors)

    def __len__(self) -> int:
        return int(self.colors.shape[0])

    def __getitem__(self, index: int) -> PixelColor:
        return PixelColor(*(int(channel) for channel in self.colors[index]))

    def __repr__(self) -> str:
        return f"Palette(size={len(self)})"

    def indices(self, values: np.ndarray) -> np.ndarray:
        """Map smooth values in [0, 1] to palette slots via ``floor(t * (N - 1))``."""

        scaled = np.floor(np.asarray(values, dtype=np.float64) * (len(self) - 1))
        return np.clip(scaled, 0, len(self) - 1).astype(np.int64)

    def lookup(self, values: np.ndarray) -> np.ndarray:
        """Return the ARGB colours for ``values``; the output gains a trailing axis of 4."""

        return np.take(self.colors, self.indices(values), axis=0)


def _normalize_control_points(control_points: Iterable[ControlPointLike]) -> tuple[np.ndarray, np.ndarray]:
    positions: list[float] = []
    colors: list[tuple[float, float, float]] = []
    for point in control_points:
        if isinstance(point, PaletteControlPoint):
            position, color = point.position, point.color
        else:
            position, color = point
        if len(color) != 3:
            raise ValueError(f"control point colours need 3 channels, got {len(color)}.")
        positions.append(float(position))
        colors.append(tuple(float(channel) for channel in color))
    return np.array(positions, dtype=np.float64), np.array(colors, dtype=np.float64).reshape(-1, 3)


def monotone_cubic_interpolant(xs: np.ndarray, ys: np.ndarray) -> Callable[[np.ndarray], np.ndarray]:
    """Build a Fritsch-Carlson monotone cubic Hermite interpolant.

    ``xs`` holds ``K >= 2`` strictly increasing knots and ``ys`` the values at
    those knots with shape ``(K,)`` or ``(K, C)``; every column is interpolated
    independently. Interior tangents use the weighted harmonic mean of the
    neighbouring secants (zero where the data changes direction), end tangents
    use the one-sided secant. The returned function evaluates the spline at an
    array of positions; positions before the first knot or at/after the last
    knot return the respective knot value exactly.
    """

    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    squeeze = ys.ndim == 1
    if squeeze:
        ys = ys[:, None]
    if xs.shape[0] < 2 or xs.shape[0] != ys.shape[0]:
        raise ValueError("monotone cubic interpolation needs at least two knots with matching values.")

    with np.errstate(divide="ignore", invalid="ignore"):
        dxs = np.diff(xs)[:, None]
        ms = np.diff(ys, axis=0) / dxs

        c1s = np.empty_like(ys)
        c1s[0] = ms[0]
        c1s[-1] = ms[-1]
        if ys.shape[0] > 2:
            m_prev, m_next = ms[:-1], ms[1:]
            d_prev, d_next = dxs[:-1], dxs[1:]
            total = d_prev + d_next
            harmonic = 3.0 * total / ((total + d_next) / m_prev + (total + d_prev) / m_next)
            c1s[1:-1] = np.where(m_prev * m_next <= 0, 0.0, harmonic)

        inv_dx = 1.0 / dxs
        common = c1s[:-1] + c1s[1:] - ms - ms
        c2s = (ms - c1s[:-1] - common) * inv_dx
        c3s = common * inv_dx * inv_dx

    last = xs.shape[0] - 1

    def interpolate(x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        i = np.clip(np.searchsorted(xs, x, side="right") - 1, 0, last - 1)
        diff = (x - xs[i])[..., None]
        diff_sq = diff * diff
        with np.errstate(invalid="ignore", over="ignore"):
            result = ys[i] + c1s[i] * diff + c2s[i] * diff_sq + c3s[i] * diff * diff_sq
        result = np.where((x >= xs[last])[..., None], ys[last], result)
        result = np.where((x < xs[0])[..., None], ys[0], result)
        return result[..., 0] if squeeze else result

    return interpolate


def linear_interpolant(xs: np.ndarray, ys: np.ndarray) -> Callable[[np.ndarray], np.ndarray]:
    """Piecewise-linear counterpart of :func:`monotone_cubic_interpolant`."""

    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64).reshape(xs.shape[0], -1)

    def interpolate(x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        return np.stack([np.interp(x, xs, ys[:, k]) for k in range(ys.shape[1])], axis=-1)

    return interpolate


def _pack_argb(rgb: np.ndarray) -> np.ndarray:
    rgb = np.clip(np.nan_to_num(rgb, nan=0.0), 0.0, 255.0)
    argb = np.empty(rgb.shape[:-1] + (4,), dtype=np.uint8)
    argb[..., 0] = 255
    # truncation, matching an integer cast of the clamped channel
    argb[..., 1:] = rgb.astype(np.uint8)
    return argb


def build_palette(
    control_points: Iterable[ControlPointLike] = DEFAULT_CONTROL_POINTS,
    size: int = DEFAULT_PALETTE_SIZE,
    *,
    interpolation: str = "cubic",
) -> Palette:
    """Sample a gradient defined by ``control_points`` into ``size`` ARGB colours.

    Control points must be sorted by strictly increasing position; that is not
    checked. With no control points every slot is black, with one every slot
    has that colour. ``size == 0`` yields an empty palette, which renders as an
    empty tile.
    """

    if size < 0:
        raise ValueError(f"palette size must be non-negative, got {size}.")
    if interpolation not in INTERPOLATIONS:
        raise ValueError(f"Unknown interpolation '{interpolation}'. Valid choices: {', '.join(INTERPOLATIONS)}.")

    positions, colors = _normalize_control_points(control_points)
    samples = np.linspace(0.0, 1.0, size, dtype=np.float64) if size > 1 else np.zeros(size, dtype=np.float64)

    if positions.size == 0:
        rgb = np.zeros((size, 3), dtype=np.float64)
    elif positions.size == 1:
        rgb = np.repeat(colors, size, axis=0)
    elif interpolation == "linear":
        rgb = linear_interpolant(positions, colors)(samples)
    else:
        rgb = monotone_cubic_interpolant(positions, colors)(samples)

    return Palette(_pack_argb(rgb.reshape(size, 3)))


def control_points_from_colormap(name: str, count: int = 8) -> tuple[PaletteControlPoint, ...]:
    """Sample a matplotlib colormap at ``count`` evenly spaced control points."""

    if count < 1:
        raise ValueError(f"colormap control point count must be positive, got {count}.")
    try:
        cmap = _mpl_colormaps[name]
    except KeyError as exc:
        raise ValueError(f"Unknown matplotlib colormap '{name}'.") from exc

    positions = np.linspace(0.0, 1.0, count) if count > 1 else np.zeros(1)
    rgba = np.asarray(cmap(positions), dtype=np.float64)
    return tuple(
        PaletteControlPoint(float(position), tuple(float(channel) * 255.0 for channel in row[:3]))
        for position, row in zip(positions, rgba)
    )
