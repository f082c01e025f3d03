"""
Geometric primitives on the flat torus.

All functions in this module are pure and never raise on malformed input:
they return the documented sentinel instead (``inf`` for distances, ``0`` for
areas, ``None`` for centroids, the origin for wrapped points).
"""

import math
from typing import List, NamedTuple, Optional, Sequence

import numpy as np

# Below this absolute signed area a polygon is treated as collinear
DEGENERATE_AREA = 1e-12

# Ordering of the 3x3 ghost grid: dx outer, dy inner
GHOST_SHIFTS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)]
IDENTITY_GHOST = GHOST_SHIFTS.index((0, 0))


class GhostPoints(NamedTuple):
    """Translated copies of the generator points."""
    all_points: np.ndarray        # (9N, 2) ghost coordinates
    original_indices: np.ndarray  # (9N,) source point of each ghost
    offsets: np.ndarray           # (9N, 2) translation applied to each ghost


def _coerce_point(point) -> Optional[tuple]:
    """Return ``(x, y)`` floats for a well-formed finite pair, else None."""
    if point is None or isinstance(point, (str, bytes, dict)):
        return None
    try:
        if len(point) != 2:
            return None
        x = float(point[0])
        y = float(point[1])
    except (TypeError, ValueError, KeyError, IndexError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return x, y


def is_valid_point(point) -> bool:
    return _coerce_point(point) is not None


def toroidal_distance_sq(p1, p2, width: float, height: float) -> float:
    """
    Squared shortest distance between two points on the torus.

    Args:
        p1, p2: Points as ``[x, y]`` pairs
        width: Domain width
        height: Domain height

    Returns:
        ``dx**2 + dy**2`` using the wrapped per-axis deltas, or ``inf`` if
        either point is malformed
    """
    a = _coerce_point(p1)
    b = _coerce_point(p2)
    if a is None or b is None:
        return math.inf

    dx = abs(a[0] - b[0]) % width
    dy = abs(a[1] - b[1]) % height
    delta_x = min(dx, width - dx)
    delta_y = min(dy, height - dy)
    return delta_x * delta_x + delta_y * delta_y


def toroidal_distance(p1, p2, width: float, height: float) -> float:
    return math.sqrt(toroidal_distance_sq(p1, p2, width, height))


def _signed_area_terms(vertices: Sequence) -> tuple:
    """Shoelace sums shared by the area and centroid formulas."""
    n = len(vertices)
    signed = 0.0
    cx = 0.0
    cy = 0.0
    for i in range(n):
        j = (i + 1) % n
        xi, yi = vertices[i][0], vertices[i][1]
        xj, yj = vertices[j][0], vertices[j][1]
        cross = xi * yj - xj * yi
        signed += cross
        cx += (xi + xj) * cross
        cy += (yi + yj) * cross
    return signed, cx, cy


def polygon_area(vertices) -> float:
    """
    Absolute polygon area by the shoelace formula.

    Returns 0 for ``None`` or fewer than three vertices.
    """
    if vertices is None or len(vertices) < 3:
        return 0.0
    signed, _, _ = _signed_area_terms(vertices)
    return abs(signed) / 2.0


def polygon_centroid(vertices) -> Optional[List[float]]:
    """
    Area-weighted centroid of a polygon.

    Degenerate inputs are handled explicitly:

    * ``None``, zero or one vertex: no centroid, returns None
    * two vertices: the midpoint of the segment
    * collinear vertices (near-zero signed area): the vertex mean

    Args:
        vertices: Ordered polygon vertices as ``[x, y]`` pairs

    Returns:
        ``[cx, cy]`` or None
    """
    if vertices is None or len(vertices) < 2:
        return None

    n = len(vertices)
    if n == 2:
        return [
            (vertices[0][0] + vertices[1][0]) / 2.0,
            (vertices[0][1] + vertices[1][1]) / 2.0,
        ]

    signed, cx, cy = _signed_area_terms(vertices)
    if abs(signed) < DEGENERATE_AREA:
        mean = np.mean(np.asarray(vertices, dtype=float), axis=0)
        return [float(mean[0]), float(mean[1])]

    signed *= 0.5
    return [cx / (6.0 * signed), cy / (6.0 * signed)]


def wrap_point(point, width: float, height: float) -> List[float]:
    """
    Wrap a point into ``[0, width) x [0, height)``.

    Invalid input (wrong shape, non-numeric, non-finite) maps to ``[0, 0]``.
    """
    coords = _coerce_point(point)
    if coords is None:
        return [0.0, 0.0]

    x = coords[0] % width
    y = coords[1] % height
    # Python's modulo is already non-negative for positive divisors, but a
    # tiny negative input can round up to exactly the divisor.
    if x >= width:
        x = 0.0
    if y >= height:
        y = 0.0
    return [float(x), float(y)]


def wrap_points(points, width: float, height: float) -> np.ndarray:
    """Wrap every point of a sequence, returning an ``(N, 2)`` array."""
    if len(points) == 0:
        return np.empty((0, 2), dtype=float)
    return np.array([wrap_point(p, width, height) for p in points], dtype=float)


def generate_ghost_points(points, width: float, height: float) -> GhostPoints:
    """
    Generate the 3x3 grid of translated copies of every point.

    Ghost ``9 * i + k`` is point ``i`` shifted by ``GHOST_SHIFTS[k]`` domain
    sizes, so ghost ``9 * i + IDENTITY_GHOST`` is the point itself.

    Args:
        points: ``(N, 2)`` array or sequence of ``[x, y]`` pairs
        width: Domain width
        height: Domain height

    Returns:
        GhostPoints with ``9N`` entries
    """
    base = np.asarray(points, dtype=float).reshape(-1, 2)
    n_points = len(base)

    shifts = np.array(GHOST_SHIFTS, dtype=float) * np.array([width, height])
    offsets = np.tile(shifts, (n_points, 1))
    all_points = np.repeat(base, len(GHOST_SHIFTS), axis=0) + offsets
    original_indices = np.repeat(np.arange(n_points), len(GHOST_SHIFTS))

    return GhostPoints(all_points, original_indices, offsets)
