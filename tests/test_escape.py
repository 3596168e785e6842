import math

import numpy as np
import pytest

from mandeltiles import ComplexPoint, escape_time
from mandeltiles.renderer import smooth_value


@pytest.mark.parametrize("max_iterations", [1, 2, 10, 100, 1000])
def test_origin_is_inside(max_iterations):
    result = escape_time(ComplexPoint(0.0, 0.0), max_iterations)
    assert not result.escaped
    assert result.iterations == max_iterations
    assert result.value == 1.0


@pytest.mark.parametrize("c", [(-1.0, 0.0), (0.25, 0.0), (-2.0, 0.0), (-0.1, 0.5)])
def test_known_interior_points(c):
    assert not escape_time(ComplexPoint(*c), 200).escaped


def test_points_outside_radius_two_always_escape():
    rng = np.random.default_rng(1234)
    for _ in range(500):
        radius = rng.uniform(2.0001, 50.0)
        angle = rng.uniform(0.0, 2.0 * math.pi)
        c = ComplexPoint(radius * math.cos(angle), radius * math.sin(angle))
        if c.length_squared() <= 4.0:
            continue
        result = escape_time(c, int(rng.integers(1, 20)))
        assert result.escaped


def test_smooth_value_is_always_in_unit_interval():
    rng = np.random.default_rng(42)
    points = rng.uniform(-3.0, 3.0, size=(1000, 2))
    budgets = rng.integers(1, 300, size=1000)
    for (re, im), budget in zip(points, budgets):
        value = escape_time(ComplexPoint(float(re), float(im)), int(budget)).value
        assert 0.0 <= value <= 1.0


def test_known_escape_step():
    c = complex(-2.5, 0.0)
    z = 0j
    for _ in range(4):
        z = z * z + c
    result = escape_time(ComplexPoint(-2.5, 0.0), 100)
    assert result.escaped
    assert result.iterations == 3
    assert result.value == pytest.approx((3 - math.log2(math.log(abs(z)))) / 100)


def test_single_iteration_budget():
    far = escape_time(ComplexPoint(20.0, 0.0), 1)
    assert far.escaped and far.iterations == 0
    near = escape_time(ComplexPoint(3.0, 0.0), 1)
    assert near.escaped and near.iterations == 0
    inside = escape_time(ComplexPoint(0.1, 0.1), 1)
    assert not inside.escaped and inside.iterations == 1


def test_overflow_is_clamped_not_raised():
    result = escape_time(ComplexPoint(1e200, 1e200), 50)
    assert result.escaped
    assert result.iterations == 0
    assert result.value == 0.0


def test_nan_counts_as_escaped():
    result = escape_time(ComplexPoint(float("nan"), 0.0), 10)
    assert result.escaped
    assert result.value == 0.0


def test_smooth_value_handles_infinity():
    assert smooth_value(5, float("inf"), 10) == 0.0
    assert smooth_value(9, 300.0, 10) == pytest.approx((9 - math.log2(math.log(math.sqrt(300.0)))) / 10)


def test_custom_escape_radius():
    # with radius 2.5, c = 3 escapes immediately
    result = escape_time(ComplexPoint(3.0, 0.0), 10, escape_radius=2.5)
    assert result.iterations == 0
