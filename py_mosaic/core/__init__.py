"""
Toroidal Voronoi tessellation and energy minimization.
"""

from .geometry import (
    toroidal_distance_sq, toroidal_distance, polygon_area, polygon_centroid,
    wrap_point, generate_ghost_points
)
from .clipping import clip_polygon, union_polygons
from .toroidal_voronoi import generate_voronoi_regions_toroidal, require_regions, total_region_area
from .energy import EnergyParams, EnergyResult, calculate_energy, resolve_target_areas
from .gradient import calculate_gradient
from .optimizer import (
    OptimizationResult, StepStatus, check_convergence, iterate_step, optimize_tessellation
)
from .validation import ValidationReport, validate_tessellation
from .exceptions import InvalidInputError, MosaicError, TessellationError
from .mosaic import MosaicTile, build_mosaic_tiles, nearest_target_area_function

__all__ = ['toroidal_distance_sq', 'toroidal_distance', 'polygon_area', 'polygon_centroid',
           'wrap_point', 'generate_ghost_points', 'clip_polygon', 'union_polygons',
           'generate_voronoi_regions_toroidal', 'require_regions', 'total_region_area',
           'EnergyParams', 'EnergyResult', 'calculate_energy', 'resolve_target_areas',
           'calculate_gradient', 'OptimizationResult', 'StepStatus', 'check_convergence',
           'iterate_step', 'optimize_tessellation', 'ValidationReport', 'validate_tessellation',
           'MosaicTile', 'build_mosaic_tiles', 'nearest_target_area_function',
           'MosaicError', 'InvalidInputError', 'TessellationError']
