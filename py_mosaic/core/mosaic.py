"""
Mosaic tiles built from a tessellation.

The renderer paints one tile per region piece with a colour chosen by a
caller-supplied sampler, typically reading an image at the tile centroid.
"""

from typing import Callable, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field

from .energy import region_centroid
from .exceptions import InvalidInputError
from .geometry import polygon_centroid
from .toroidal_voronoi import Region

ColorSampler = Callable[[float, float, float, float], str]

DEFAULT_COLOR = "#555555"


class MosaicTile(BaseModel):
    """A renderable polygon of one region."""

    id: str = Field(description="Stable tile identifier")
    region_index: int = Field(description="Index of the generator owning the tile")
    points: List[List[float]] = Field(description="Ordered polygon vertices")
    x: float = Field(description="Centroid x")
    y: float = Field(description="Centroid y")
    color: str = Field(default=DEFAULT_COLOR, description="Fill colour")
    sides: int = Field(description="Number of polygon vertices")


def build_mosaic_tiles(regions: Optional[List[Region]], sample_color: Optional[ColorSampler],
                       width: float, height: float, prefix: str = "tile") -> List[MosaicTile]:
    """
    Convert regions into tiles, one per piece.

    Pieces of the same region share the colour sampled at the region's
    area-weighted centroid, so a region split by the domain edge is painted
    consistently on both sides.

    Args:
        regions: Tessellation, or None
        sample_color: ``(x, y, width, height) -> colour``; DEFAULT_COLOR when
            None
        width: Domain width
        height: Domain height
        prefix: Tile id prefix

    Returns:
        List of MosaicTile
    """
    tiles = []
    if not regions:
        return tiles

    for index, region in enumerate(regions):
        if not region:
            continue
        anchor = region_centroid(region)
        if anchor is None:
            continue
        color = sample_color(anchor[0], anchor[1], width, height) if sample_color else DEFAULT_COLOR

        for piece in region:
            centroid = polygon_centroid(piece)
            if centroid is None:
                continue
            tiles.append(MosaicTile(
                id=f"{prefix}-{len(tiles)}",
                region_index=index,
                points=[[float(v[0]), float(v[1])] for v in piece],
                x=centroid[0],
                y=centroid[1],
                color=color,
                sides=len(piece),
            ))
    return tiles


def nearest_target_area_function(initial_points, target_areas: Sequence[float]) -> Callable:
    """
    Build a target area function from per-point target areas.

    The returned function looks up the target of the initial point closest
    (Euclidean, unwrapped) to its argument, so a generator keeps its target
    while it moves a moderate distance.

    Args:
        initial_points: Points the targets belong to
        target_areas: One target area per initial point

    Returns:
        Callable mapping a point to a target area
    """
    anchors = np.asarray(initial_points, dtype=float).reshape(-1, 2)
    targets = np.asarray(target_areas, dtype=float)
    if len(anchors) != len(targets):
        raise InvalidInputError("target_areas must have one entry per initial point")

    def target_area(point) -> float:
        offsets = anchors - np.asarray(point, dtype=float)
        return float(targets[np.argmin(np.einsum("ij,ij->i", offsets, offsets))])

    return target_area
