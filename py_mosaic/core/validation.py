"""
Tessellation sanity checks.

A valid tessellation covers the domain completely (no gaps), its regions do
not overlap, and no vertex lies outside the domain. The checks sample a
regular grid of test points, so they are approximate by construction.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog
from shapely.geometry import Point, Polygon
from shapely.ops import unary_union
from shapely.prepared import prep

from .toroidal_voronoi import Region, total_region_area

logger = structlog.get_logger()


@dataclass
class ValidationReport:
    """Result of ``validate_tessellation``."""
    gaps: List[Tuple[float, float]] = field(default_factory=list)
    overlaps: List[Tuple[Tuple[float, float], int]] = field(default_factory=list)
    outside_bounds: List[Tuple[int, List[float]]] = field(default_factory=list)
    total_area: float = 0.0
    domain_area: float = 0.0

    @property
    def area_error(self) -> float:
        """Relative deviation of the covered area from the domain area."""
        if self.domain_area <= 0:
            return 0.0
        return abs(self.total_area - self.domain_area) / self.domain_area

    @property
    def valid(self) -> bool:
        return not self.gaps and not self.overlaps and not self.outside_bounds


def _region_shape(region: Region):
    shapes = [Polygon(piece) for piece in region if piece and len(piece) >= 3]
    shapes = [s if s.is_valid else s.buffer(0) for s in shapes]
    if not shapes:
        return None
    return unary_union(shapes)


def validate_tessellation(regions: Optional[List[Region]], width: float, height: float,
                          grid_size: int = 20, tolerance: float = 1e-6) -> ValidationReport:
    """
    Check a tessellation for gaps, overlaps and out-of-bounds vertices.

    A sample point is a gap when no region grown by ``tolerance`` covers it
    and an overlap when the interiors of two or more regions contain it.
    Snapped vertices can sit up to half a snapping step inside the domain
    edge, so coverage needs the slack while overlaps are tested strictly.

    Args:
        regions: Tessellation as returned by
            ``generate_voronoi_regions_toroidal``
        width: Domain width
        height: Domain height
        grid_size: Number of sample intervals per axis
        tolerance: Slack for the coverage and out-of-bounds vertex checks

    Returns:
        ValidationReport
    """
    report = ValidationReport(domain_area=width * height)
    if not regions:
        report.gaps.append((0.0, 0.0))
        return report

    report.total_area = total_region_area(regions)

    shapes = []
    padded = []
    for index, region in enumerate(regions):
        if not region:
            continue
        for piece in region:
            for vertex in piece:
                if (vertex[0] < -tolerance or vertex[0] > width + tolerance
                        or vertex[1] < -tolerance or vertex[1] > height + tolerance):
                    report.outside_bounds.append((index, list(vertex)))
        shape = _region_shape(region)
        if shape is not None and not shape.is_empty:
            shapes.append(prep(shape))
            padded.append(prep(shape.buffer(tolerance)))

    step_x = width / grid_size
    step_y = height / grid_size
    for i in range(grid_size + 1):
        for j in range(grid_size + 1):
            sample = Point(i * step_x, j * step_y)
            covering = sum(1 for shape in padded if shape.covers(sample))
            if covering == 0:
                report.gaps.append((sample.x, sample.y))
                continue
            containing = sum(1 for shape in shapes if shape.contains(sample))
            if containing > 1:
                report.overlaps.append(((sample.x, sample.y), containing))

    if not report.valid:
        logger.warning("Tessellation validation failed",
                       gaps=len(report.gaps), overlaps=len(report.overlaps),
                       outside_bounds=len(report.outside_bounds))
    return report
