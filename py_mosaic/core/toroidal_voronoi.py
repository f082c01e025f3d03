"""
Periodic Voronoi tessellation of a rectangular domain.

The flat torus is modelled by tiling the generator points 3x3 (ghost points)
and building an ordinary planar Voronoi diagram with scipy. Every ghost cell
that reaches into the base rectangle is clipped to it and credited to the
ghost's source point; the fragments of each source point are then unioned.
Cells near an edge therefore get their neighbours from the opposite edge.
"""

from typing import List, Optional

import numpy as np
import structlog
from scipy.spatial import QhullError, Voronoi

from .clipping import SNAP_DECIMALS, clip_polygon, union_polygons
from .exceptions import TessellationError
from .geometry import generate_ghost_points, is_valid_point, polygon_area, wrap_points

logger = structlog.get_logger()

# A Region is a list of polygon pieces, each a list of [x, y] vertices
Region = List[List[List[float]]]

MIN_GENERATORS = 3

# Far-field sites sit this many domain sizes away from the domain centre so
# that every ghost cell is bounded while no cell near the domain changes.
FRAME_DISTANCE = 10.0


def get_frame_points(width: float, height: float, epsilon: float = 1e-9) -> np.ndarray:
    """
    Four far-field sites enclosing the 3x3 ghost tiling.

    The ghost tiling lives in ``[-width - eps, 2 * width + eps] x
    [-height - eps, 2 * height + eps]``. With these four sites on the convex
    hull, no ghost site is a hull site and all ghost cells are finite.

    Args:
        width: Domain width
        height: Domain height
        epsilon: Margin added around the tiling

    Returns:
        Array of 4 [x, y] frame coordinates
    """
    cx, cy = width / 2.0, height / 2.0
    reach = FRAME_DISTANCE * max(width, height) + epsilon
    return np.array([
        [cx - reach, cy - reach],
        [cx + reach, cy - reach],
        [cx + reach, cy + reach],
        [cx - reach, cy + reach],
    ])


def _ordered_cell(vor: Voronoi, site_index: int, claimed: set) -> Optional[np.ndarray]:
    """Return the finite, angularly ordered cell of a site or None."""
    region_idx = vor.point_region[site_index]
    if region_idx < 0 or region_idx in claimed:
        return None

    region = vor.regions[region_idx]
    if not region or -1 in region or len(region) < 3:
        return None

    claimed.add(region_idx)
    vertices = vor.vertices[region]
    # Voronoi cells are convex and contain their site
    site = vor.points[site_index]
    angles = np.arctan2(vertices[:, 1] - site[1], vertices[:, 0] - site[0])
    return vertices[np.argsort(angles)]


def _touches_domain(vertices: np.ndarray, width: float, height: float) -> bool:
    mins = vertices.min(axis=0)
    maxs = vertices.max(axis=0)
    return mins[0] < width and maxs[0] > 0 and mins[1] < height and maxs[1] > 0


def generate_voronoi_regions_toroidal(points, width: float, height: float,
                                      epsilon: float = 1e-9,
                                      decimals: int = SNAP_DECIMALS) -> Optional[List[Region]]:
    """
    Generate the periodic Voronoi regions of a point set.

    Args:
        points: N >= 3 generator points, ``[x, y]`` pairs or an (N, 2) array.
            Points are interpreted modulo the domain.
        width: Domain width (> 0)
        height: Domain height (> 0)
        epsilon: Margin of the construction bounding box
        decimals: Vertex snapping precision used for the per-region union

    Returns:
        One Region per input point, in input order, or None if the input is
        invalid or the diagram could not be constructed
    """
    if points is None or len(points) < MIN_GENERATORS:
        return None
    if not (width > 0 and height > 0):
        return None
    if not all(is_valid_point(p) for p in points):
        return None

    n_points = len(points)

    try:
        base_points = wrap_points(points, width, height)
        ghosts = generate_ghost_points(base_points, width, height)
        sites = np.vstack([ghosts.all_points, get_frame_points(width, height, epsilon)])

        vor = Voronoi(sites)

        grouped_pieces = [[] for _ in range(n_points)]
        claimed = set()
        for ghost_idx in range(len(ghosts.all_points)):
            cell = _ordered_cell(vor, ghost_idx, claimed)
            if cell is None or not _touches_domain(cell, width, height):
                continue

            source = ghosts.original_indices[ghost_idx]
            for piece in clip_polygon(cell, width, height):
                grouped_pieces[source].append(piece)

        regions = [union_polygons(pieces, decimals) for pieces in grouped_pieces]
    except QhullError as e:
        logger.error("Voronoi triangulation failed", error=str(e), points=n_points)
        return None
    except Exception as e:
        logger.error("Voronoi generation failed", error=str(e), points=n_points)
        return None

    empty = sum(1 for region in regions if not region)
    logger.debug("Voronoi regions generated", regions=n_points, empty_regions=empty)

    return regions


def require_regions(points, width: float, height: float) -> List[Region]:
    """Like generate_voronoi_regions_toroidal, but raises TessellationError instead of returning None."""
    regions = generate_voronoi_regions_toroidal(points, width, height)
    if regions is None:
        raise TessellationError(f"cannot tessellate {len(points) if points is not None else 0} points")
    return regions


def total_region_area(regions: Optional[List[Region]]) -> float:
    """Sum of all piece areas across a tessellation."""
    if not regions:
        return 0.0
    return float(sum(polygon_area(piece) for region in regions if region for piece in region))


def region_areas(regions: List[Region]) -> np.ndarray:
    """Total area of each region."""
    return np.array([
        sum(polygon_area(piece) for piece in region) if region else 0.0
        for region in regions
    ], dtype=float)
