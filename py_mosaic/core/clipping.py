"""
Polygon clipping and union on top of shapely.

Both operations are fail-soft: a GEOS error is logged and turned into an
empty result.
"""

from typing import List, Optional, Sequence

import structlog
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon, box
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from .geometry import polygon_area

logger = structlog.get_logger()

SNAP_DECIMALS = 7  # vertices snap to a 1e-7 grid
MIN_PIECE_AREA = 1e-9


def _outer_rings(geometry: BaseGeometry) -> List[List[List[float]]]:
    """Extract open outer rings (first vertex not repeated) from a geometry."""
    if geometry is None or geometry.is_empty:
        return []

    if isinstance(geometry, Polygon):
        polygons = [geometry]
    elif isinstance(geometry, MultiPolygon):
        polygons = list(geometry.geoms)
    elif hasattr(geometry, "geoms"):
        # GeometryCollection: keep only the areal members
        polygons = [g for g in geometry.geoms if isinstance(g, Polygon)]
        for g in geometry.geoms:
            if isinstance(g, MultiPolygon):
                polygons.extend(g.geoms)
    else:
        return []

    rings = []
    for poly in polygons:
        if poly.is_empty:
            continue
        coords = [[float(x), float(y)] for x, y in poly.exterior.coords]
        if len(coords) > 1 and coords[0] == coords[-1]:
            coords = coords[:-1]
        if len(coords) >= 3:
            rings.append(coords)
    return rings


def snap_polygon(polygon: Sequence, decimals: int = SNAP_DECIMALS) -> Optional[List[List[float]]]:
    """
    Snap vertices to a decimal grid and collapse consecutive duplicates.

    Independently clipped fragments of one cell meet along edges whose
    vertices differ only by floating point noise; snapping makes them
    coincide exactly before the union.

    Args:
        polygon: Ordered vertices
        decimals: Number of decimal places kept

    Returns:
        Snapped vertex list, or None when fewer than three distinct vertices
        remain
    """
    if polygon is None:
        return None

    snapped = []
    for vertex in polygon:
        point = [round(float(vertex[0]), decimals),
                 round(float(vertex[1]), decimals)]
        if snapped and point == snapped[-1]:
            continue
        snapped.append(point)

    while len(snapped) > 1 and snapped[0] == snapped[-1]:
        snapped.pop()

    if len(snapped) < 3:
        return None
    return snapped


def clip_polygon(polygon: Sequence, width: float, height: float) -> List[List[List[float]]]:
    """
    Intersect a polygon with the rectangle ``[0, width] x [0, height]``.

    Args:
        polygon: Ordered vertices of the subject polygon
        width: Domain width
        height: Domain height

    Returns:
        Zero or more outer rings; empty on degenerate input or GEOS failure
    """
    if polygon is None or len(polygon) < 3:
        return []

    try:
        subject = Polygon([(float(p[0]), float(p[1])) for p in polygon])
        if not subject.is_valid:
            subject = subject.buffer(0)
        clipped = subject.intersection(box(0.0, 0.0, width, height))
        return _outer_rings(clipped)
    except (GEOSException, ValueError, TypeError) as e:
        logger.debug("Polygon clipping failed", error=str(e), vertices=len(polygon))
        return []


def union_polygons(pieces: Sequence, decimals: int = SNAP_DECIMALS) -> List[List[List[float]]]:
    """
    Union the fragments of one Voronoi region into its outer rings.

    Pieces are snapped first and noise-sized pieces dropped. If the union
    itself fails the region is discarded (empty list) and a warning is
    logged; raw fragments are never returned.

    Args:
        pieces: Polygon fragments belonging to one generator
        decimals: Snapping precision in decimal places

    Returns:
        Outer rings of the union with noise-sized pieces removed
    """
    candidates = []
    for piece in pieces or []:
        snapped = snap_polygon(piece, decimals)
        if snapped is not None and polygon_area(snapped) > MIN_PIECE_AREA:
            candidates.append(snapped)

    if not candidates:
        return []
    if len(candidates) == 1:
        return candidates

    try:
        shapes = []
        for ring in candidates:
            shape = Polygon(ring)
            if not shape.is_valid:
                shape = shape.buffer(0)
            shapes.append(shape)
        merged = unary_union(shapes)
    except (GEOSException, ValueError, TypeError) as e:
        logger.warning("Polygon union failed, discarding region",
                       error=str(e), pieces=len(candidates))
        return []

    return [ring for ring in _outer_rings(merged) if polygon_area(ring) > MIN_PIECE_AREA]
