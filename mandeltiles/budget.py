"""Zoom-dependent iteration budgets.

Deeper zoom levels need more iterations before points close to the boundary
of the set can be told apart, while shallow views waste time on a large
budget. The policy here is a heuristic: ``base * max(1, log2(zoom))``, with
``base`` a tunable constant. It has no upper cap; callers that need one clamp
the result themselves.
"""

from __future__ import annotations

import math

from .plane import PlaneRect

DEFAULT_BASE_ITERATIONS = 48
MIN_ITERATIONS = 1


def select_iteration_budget(zoom: float, base_iterations: int = DEFAULT_BASE_ITERATIONS) -> int:
    """Return the maximum iteration count for a view magnified by ``zoom``."""

    if not math.isfinite(zoom) or zoom <= 0:
        zoom = 1.0
    scale = max(1.0, math.log2(zoom))
    return max(MIN_ITERATIONS, int(base_iterations * scale))


def zoom_for_rect(rect: PlaneRect, world: PlaneRect) -> float:
    """Magnification of ``rect`` relative to ``world``, measured on the diagonals."""

    diagonal = rect.diagonal()
    if not math.isfinite(diagonal) or diagonal == 0.0:
        return 1.0
    return world.diagonal() / diagonal


def budget_for_rect(rect: PlaneRect, world: PlaneRect, base_iterations: int = DEFAULT_BASE_ITERATIONS) -> int:
    return select_iteration_budget(zoom_for_rect(rect, world), base_iterations)
