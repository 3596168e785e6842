import math

import pytest

from mandeltiles import ComplexPoint, PlaneRect, lerp


def test_square_matches_builtin_complex():
    z = ComplexPoint(1.5, -0.75)
    expected = complex(1.5, -0.75) ** 2
    squared = z.square()
    assert squared.re == pytest.approx(expected.real)
    assert squared.im == pytest.approx(expected.imag)


def test_add_and_operators():
    a = ComplexPoint(1.0, 2.0)
    b = ComplexPoint(-0.5, 0.25)
    assert a.add(b) == ComplexPoint(0.5, 2.25)
    assert a + b == a.add(b)
    assert a - b == ComplexPoint(1.5, 1.75)


def test_lengths():
    z = ComplexPoint(3.0, 4.0)
    assert z.length_squared() == 25.0
    assert z.length() == 5.0


def test_overflow_is_tolerated():
    z = ComplexPoint(1e200, 1e200)
    assert math.isinf(z.length_squared())
    assert math.isinf(z.square().re) or math.isnan(z.square().re)


def test_lerp_is_componentwise():
    low = ComplexPoint(-2.0, -1.0)
    high = ComplexPoint(2.0, 3.0)
    assert lerp(low, high, (0.0, 0.0)) == low
    assert lerp(low, high, (1.0, 1.0)) == high
    assert lerp(low, high, (0.25, 0.5)) == ComplexPoint(-1.0, 1.0)


def test_inverted_rect_mirrors_mapping():
    rect = PlaneRect.from_bounds(1.0, 1.0, -1.0, -1.0)
    assert rect.point_at(0.0, 0.0) == ComplexPoint(1.0, 1.0)
    assert rect.point_at(1.0, 1.0) == ComplexPoint(-1.0, -1.0)
    assert rect.width == -2.0


def test_degenerate_rect_maps_to_single_point():
    point = ComplexPoint(-0.5, 0.25)
    rect = PlaneRect(point, point)
    assert rect.diagonal() == 0.0
    assert rect.point_at(0.3, 0.9) == point


def test_from_center():
    rect = PlaneRect.from_center(ComplexPoint(-0.75, 0.0), 4.0, 3.0)
    assert rect.min == ComplexPoint(-2.75, -1.5)
    assert rect.max == ComplexPoint(1.25, 1.5)
    assert rect.center == ComplexPoint(-0.75, 0.0)
    assert rect.diagonal() == pytest.approx(5.0)
