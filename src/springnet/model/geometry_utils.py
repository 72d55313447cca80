from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Tuple

from math import acos, degrees, hypot
import numpy as np

if TYPE_CHECKING:
    from numpy import typing as npt

from springnet.model.entities import Atom


def distance(a: Atom, b: Atom) -> float:
    return hypot(a.x - b.x, a.y - b.y)


def angle_theta(i: Atom, j: Atom, k: Atom) -> float:
    """
    Angle i-j-k in radians, measured at the centre atom ``j``.

    The cosine is clamped to [-1, 1] so rounding noise never leaves the domain
    of acos. A zero-length arm counts as length 1, which makes a collapsed
    angle come out as 90 degrees instead of raising.
    """
    v1x, v1y = i.x - j.x, i.y - j.y
    v2x, v2y = k.x - j.x, k.y - j.y
    dot = v1x * v2x + v1y * v2y
    n1 = hypot(v1x, v1y) or 1.0
    n2 = hypot(v2x, v2y) or 1.0
    cosine = min(1.0, max(-1.0, dot / (n1 * n2)))
    return acos(cosine)


def angle_theta_degrees(i: Atom, j: Atom, k: Atom) -> float:
    return degrees(angle_theta(i, j, k))


def snap_to_grid(value: float, grid_size: float) -> float:
    """round(v / grid) * grid; a non-positive grid disables snapping."""
    if grid_size <= 0.0:
        return value
    return round(value / grid_size) * grid_size


def points_array(atoms: Iterable[Atom]) -> npt.NDArray[np.float64]:
    """Stack atom coordinates into an (N, 2) array."""
    coords = [(a.x, a.y) for a in atoms]
    if not coords:
        return np.empty((0, 2), dtype=np.float64)
    return np.asarray(coords, dtype=np.float64)


def padded_bounds(
    points: npt.NDArray[np.float64],
    padding: float,
) -> Tuple[float, float, float, float]:
    """
    Axis-aligned bounds of an (N, 2) point set, expanded by ``padding``.

    Returns:
        (x_min, x_max, y_min, y_max). An empty set gives a box of half-width
        ``padding`` around the origin.
    """
    if points.size == 0:
        return -padding, padding, -padding, padding
    x_min, y_min = points.min(axis=0)
    x_max, y_max = points.max(axis=0)
    return (
        float(x_min) - padding,
        float(x_max) + padding,
        float(y_min) - padding,
        float(y_max) + padding,
    )


def rect_from_corners(
    x0: float, y0: float, x1: float, y1: float
) -> Tuple[float, float, float, float]:
    """Normalise two opposite corners into (x_min, x_max, y_min, y_max)."""
    return min(x0, x1), max(x0, x1), min(y0, y1), max(y0, y1)
