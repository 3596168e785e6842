"""Complex plane value types used by the tile renderer."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class ComplexPoint:
    """A point ``re + im*i`` of the complex plane stored as two float64 values."""

    re: float = 0.0
    im: float = 0.0

    def add(self, other: ComplexPoint) -> ComplexPoint:
        return ComplexPoint(self.re + other.re, self.im + other.im)

    def __add__(self, other: ComplexPoint) -> ComplexPoint:
        return self.add(other)

    def __sub__(self, other: ComplexPoint) -> ComplexPoint:
        return ComplexPoint(self.re - other.re, self.im - other.im)

    def square(self) -> ComplexPoint:
        # z*z without a general complex multiply
        return ComplexPoint(self.re * self.re - self.im * self.im, 2.0 * self.re * self.im)

    def length_squared(self) -> float:
        return self.re * self.re + self.im * self.im

    def length(self) -> float:
        return math.sqrt(self.length_squared())


def lerp(minimum: ComplexPoint, maximum: ComplexPoint, t: tuple[float, float]) -> ComplexPoint:
    """Interpolate ``minimum`` -> ``maximum`` independently on each axis.

    ``t`` is a ``(u, v)`` pair; ``u`` drives the real axis and ``v`` the
    imaginary axis. Values outside ``[0, 1]`` extrapolate.
    """

    u, v = t
    return ComplexPoint(
        minimum.re + u * (maximum.re - minimum.re),
        minimum.im + v * (maximum.im - minimum.im),
    )


@dataclass(frozen=True)
class PlaneRect:
    """Axis-aligned rectangle of the complex plane.

    ``min`` is not required to be below ``max``; an inverted rectangle simply
    produces a mirrored mapping and a degenerate one maps every sample onto
    the same point.
    """

    min: ComplexPoint
    max: ComplexPoint

    @classmethod
    def from_bounds(cls, re_min: float, im_min: float, re_max: float, im_max: float) -> PlaneRect:
        return cls(ComplexPoint(re_min, im_min), ComplexPoint(re_max, im_max))

    @classmethod
    def from_center(cls, center: ComplexPoint, width: float, height: float) -> PlaneRect:
        half = ComplexPoint(width / 2.0, height / 2.0)
        return cls(center - half, center + half)

    @property
    def width(self) -> float:
        return self.max.re - self.min.re

    @property
    def height(self) -> float:
        return self.max.im - self.min.im

    @property
    def center(self) -> ComplexPoint:
        return lerp(self.min, self.max, (0.5, 0.5))

    def diagonal(self) -> float:
        return math.hypot(self.width, self.height)

    def point_at(self, u: float, v: float) -> ComplexPoint:
        return lerp(self.min, self.max, (u, v))
