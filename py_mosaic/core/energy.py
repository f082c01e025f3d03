"""
Energy functional over a toroidal Voronoi tessellation.

The energy is a weighted sum of four non-negative penalty terms:

- area: squared deviation of each region's area from its target area
- centroid: squared toroidal distance between a generator and the
  area-weighted centroid of its region
- angle: squared shortfall of sharp polygon corners below 20 degrees
- min_area: squared shortfall of region areas below a minimum threshold

Minimizing it with the gradient in ``gradient.py`` generalizes Lloyd's
relaxation to arbitrary target areas.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .geometry import polygon_area, polygon_centroid, toroidal_distance_sq

logger = structlog.get_logger()

MIN_TARGET_AREA = 1e-9
NEGLIGIBLE_AREA = 1e-12
NEGLIGIBLE_WEIGHT = 1e-12
SHARP_ANGLE_THRESHOLD = math.pi / 9  # 20 degrees


class EnergyParams(BaseModel):
    """Weights and targets of the energy functional."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    width: float = Field(gt=0, description="Domain width")
    height: float = Field(gt=0, description="Domain height")
    lambda_area: float = Field(default=2.5, ge=0, description="Area deviation weight")
    lambda_centroid: float = Field(default=0.0, ge=0, description="Centroid mismatch weight")
    lambda_angle: float = Field(default=0.01, ge=0, description="Sharp angle penalty weight")
    lambda_min_area: float = Field(default=0.0, ge=0, description="Minimum area penalty weight")
    min_area_threshold: float = Field(default=0.0, ge=0, description="Regions below this area are penalized")
    target_area_func: Optional[Callable[[Sequence[float]], float]] = Field(
        default=None, description="Target area of the region owned by a generator point"
    )
    point_weights: Optional[List[float]] = Field(
        default=None, description="Relative target area per generator point"
    )
    learning_rate: float = Field(default=0.02, gt=0, description="Gradient descent step size")

    @field_validator("point_weights")
    @classmethod
    def _finite_weights(cls, value):
        if value is not None and not all(math.isfinite(w) for w in value):
            raise ValueError("point_weights must be finite")
        return value

    @property
    def total_area(self) -> float:
        return self.width * self.height


@dataclass
class EnergyComponents:
    """Breakdown of the total energy by penalty term."""
    area: float = 0.0
    centroid: float = 0.0
    angle: float = 0.0
    min_area: float = 0.0

    def total(self) -> float:
        return self.area + self.centroid + self.angle + self.min_area

    def as_dict(self) -> dict:
        return {
            "area": self.area,
            "centroid": self.centroid,
            "angle": self.angle,
            "min_area": self.min_area,
        }


@dataclass
class EnergyResult:
    total_energy: float
    components: EnergyComponents = field(default_factory=EnergyComponents)

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.total_energy)


def _usable_weights(params: EnergyParams, n_points: int) -> Optional[np.ndarray]:
    """Point weights if they can drive target areas, else None."""
    weights = params.point_weights
    if weights is None or len(weights) != n_points:
        return None
    weights = np.asarray(weights, dtype=float)
    if not np.all(weights > 0):
        return None
    if weights.sum() <= MIN_TARGET_AREA:
        return None
    return weights


def resolve_target_areas(points, params: EnergyParams) -> np.ndarray:
    """
    Resolve the target area of every generator point.

    Precedence: ``target_area_func`` evaluated at the point, then positive
    ``point_weights`` normalized to the domain area, then the uniform share
    ``width * height / N``. Non-positive or non-finite targets are clamped to
    a tiny positive value.

    Args:
        points: Generator points
        params: Energy parameters

    Returns:
        Array of N target areas
    """
    n_points = len(points)
    if n_points == 0:
        return np.empty(0, dtype=float)

    total = params.total_area
    weights = _usable_weights(params, n_points)

    if params.target_area_func is not None:
        targets = np.array([float(params.target_area_func(p)) for p in points], dtype=float)
    elif weights is not None:
        targets = total * weights / weights.sum()
    else:
        targets = np.full(n_points, total / n_points, dtype=float)

    targets[~np.isfinite(targets)] = MIN_TARGET_AREA
    targets[targets <= 0] = MIN_TARGET_AREA
    return targets


def region_centroid(pieces) -> Optional[List[float]]:
    """Area-weighted centroid of all pieces of a region."""
    weighted_x = 0.0
    weighted_y = 0.0
    total_weight = 0.0
    for piece in pieces:
        piece_area = polygon_area(piece)
        piece_centroid = polygon_centroid(piece)
        if piece_area > NEGLIGIBLE_AREA and piece_centroid is not None:
            weighted_x += piece_centroid[0] * piece_area
            weighted_y += piece_centroid[1] * piece_area
            total_weight += piece_area

    if total_weight <= NEGLIGIBLE_AREA:
        return None
    return [weighted_x / total_weight, weighted_y / total_weight]


def sharp_angle_penalty(pieces, threshold: float = SHARP_ANGLE_THRESHOLD) -> float:
    """
    Sum of ``(threshold - angle)**2`` over corners sharper than the threshold.

    Corners with a zero-length adjacent edge are ignored.
    """
    penalty = 0.0
    for vertices in pieces:
        n_vertices = len(vertices)
        if n_vertices < 3:
            continue
        for j in range(n_vertices):
            prev_pt = vertices[j - 1]
            curr_pt = vertices[j]
            next_pt = vertices[(j + 1) % n_vertices]
            v1x, v1y = prev_pt[0] - curr_pt[0], prev_pt[1] - curr_pt[1]
            v2x, v2y = next_pt[0] - curr_pt[0], next_pt[1] - curr_pt[1]
            norm1 = math.hypot(v1x, v1y)
            norm2 = math.hypot(v2x, v2y)
            if norm1 <= NEGLIGIBLE_AREA or norm2 <= NEGLIGIBLE_AREA:
                continue
            cos_theta = (v1x * v2x + v1y * v2y) / (norm1 * norm2)
            angle = math.acos(min(max(cos_theta, -1.0), 1.0))
            if 0 < angle < threshold:
                penalty += (threshold - angle) ** 2
    return penalty


def _finite_or_zero(value: float, term: str, region: int) -> float:
    if math.isfinite(value):
        return value
    logger.debug("Dropping non-finite energy term", term=term, region=region)
    return 0.0


def calculate_energy(regions, points, params: EnergyParams,
                     target_areas: Optional[Sequence[float]] = None) -> EnergyResult:
    """
    Evaluate the energy of a tessellation.

    Args:
        regions: One Region (list of pieces) per point, or None when the
            tessellation could not be generated
        points: Generator points in the same order as ``regions``
        params: Energy weights and targets
        target_areas: Precomputed per-point targets; overrides the target
            resolution from ``params`` when given

    Returns:
        EnergyResult; ``total_energy`` is ``inf`` when regions are missing or
        do not match the points
    """
    components = EnergyComponents()
    if regions is None or points is None or len(regions) != len(points):
        return EnergyResult(math.inf, components)

    n_points = len(points)
    if target_areas is not None and len(target_areas) == n_points:
        targets = np.maximum(np.asarray(target_areas, dtype=float), MIN_TARGET_AREA)
    else:
        targets = resolve_target_areas(points, params)

    areas = np.zeros(n_points, dtype=float)
    for i, pieces in enumerate(regions):
        if not pieces:
            continue
        region_area = sum(polygon_area(piece) for piece in pieces)
        areas[i] = region_area
        if region_area < NEGLIGIBLE_AREA:
            continue

        generator = points[i]
        area_term = params.lambda_area * (region_area - targets[i]) ** 2
        components.area += _finite_or_zero(area_term, "area", i)

        if params.lambda_centroid > NEGLIGIBLE_WEIGHT:
            centroid = region_centroid(pieces)
            if centroid is not None:
                distance_sq = toroidal_distance_sq(generator, centroid, params.width, params.height)
                components.centroid += _finite_or_zero(
                    params.lambda_centroid * distance_sq, "centroid", i)

        if params.lambda_angle > NEGLIGIBLE_WEIGHT:
            components.angle += _finite_or_zero(
                params.lambda_angle * sharp_angle_penalty(pieces), "angle", i)

    if params.lambda_min_area > 0 and params.min_area_threshold > 0:
        threshold = params.min_area_threshold
        for i, region_area in enumerate(areas):
            if 0 < region_area < threshold:
                components.min_area += _finite_or_zero(
                    params.lambda_min_area * (threshold - region_area) ** 2, "min_area", i)

    return EnergyResult(components.total(), components)
