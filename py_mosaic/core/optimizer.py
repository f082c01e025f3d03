"""
Gradient-descent relaxation of toroidal Voronoi generators.

``iterate_step`` is a pure function from (points, gradient, params) to the
next point set, so a caller can drive it from any scheduling context one step
at a time. ``optimize_tessellation`` is the batch driver built on top of it.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import numpy as np
import structlog

from .energy import EnergyComponents, EnergyParams, calculate_energy, resolve_target_areas
from .geometry import is_valid_point, wrap_point, wrap_points
from .gradient import DEFAULT_DELTA, calculate_gradient
from .toroidal_voronoi import Region, generate_voronoi_regions_toroidal

logger = structlog.get_logger()

CONVERGENCE_TOLERANCE = 1e-9


class StepStatus(str, Enum):
    CONTINUE = "continue"
    CONVERGED = "converged"
    FAILED = "failed"


@dataclass
class OptimizerState:
    """Points being optimized and their fixed target areas."""
    points: np.ndarray
    target_areas: np.ndarray

    @classmethod
    def initial(cls, initial_points, params: EnergyParams) -> "OptimizerState":
        points = wrap_points(initial_points, params.width, params.height)
        return cls(points=points, target_areas=resolve_target_areas(points, params))


@dataclass
class ProgressEvent:
    iteration: int
    total_iterations: int
    energy: float
    components: EnergyComponents


@dataclass
class OptimizationResult:
    points: np.ndarray
    regions: Optional[List[Region]]
    history: List[float] = field(default_factory=list)
    iterations: int = 0
    status: str = "completed"


def gradient_norm(grad) -> float:
    """Euclidean norm of the whole gradient; ``inf`` if any entry is not finite."""
    values = np.asarray(grad, dtype=float)
    if values.size == 0:
        return 0.0
    if not np.all(np.isfinite(values)):
        return math.inf
    return float(np.sqrt(np.sum(values * values)))


def check_convergence(grad, tolerance: float = CONVERGENCE_TOLERANCE) -> StepStatus:
    norm = gradient_norm(grad)
    if not math.isfinite(norm):
        return StepStatus.FAILED
    if norm < tolerance:
        return StepStatus.CONVERGED
    return StepStatus.CONTINUE


def _finite(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def iterate_step(current_points, grad, params: EnergyParams) -> Optional[np.ndarray]:
    """
    Apply one gradient-descent update and wrap the result into the domain.

    Non-finite gradient components and point coordinates are treated as zero
    so NaN never enters the point array.

    Args:
        current_points: N generator points
        grad: N gradient pairs, e.g. from ``calculate_gradient``
        params: Energy parameters providing ``learning_rate`` and the domain

    Returns:
        (N, 2) array of wrapped points, or None when the gradient does not
        match the points
    """
    if current_points is None or grad is None or len(grad) != len(current_points):
        logger.warning("Gradient does not match points, step skipped",
                       points=len(current_points) if current_points is not None else 0,
                       gradient=len(grad) if grad is not None else 0)
        return None

    rate = params.learning_rate
    next_points = np.zeros((len(current_points), 2), dtype=float)
    for i, (point, g) in enumerate(zip(current_points, grad)):
        px, py = (point[0], point[1]) if is_valid_point(point) else (0.0, 0.0)
        gx, gy = (g[0], g[1]) if g is not None and len(g) == 2 else (0.0, 0.0)
        x = _finite(px) - rate * _finite(gx)
        y = _finite(py) - rate * _finite(gy)
        next_points[i] = wrap_point([x, y], params.width, params.height)
    return next_points


def optimize_tessellation(initial_points, params: EnergyParams, iterations: int = 80,
                          progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
                          delta: float = DEFAULT_DELTA,
                          max_workers: Optional[int] = None,
                          tolerance: float = CONVERGENCE_TOLERANCE) -> OptimizationResult:
    """
    Run gradient descent for a fixed number of steps or until convergence.

    Each iteration regenerates the tessellation, records its energy, computes
    the gradient and takes one step. Target areas are resolved once from the
    initial layout. If a tessellation, energy or gradient fails, the result
    holds the last successfully tessellated points and regions.

    Args:
        initial_points: Starting generator points
        params: Energy parameters including ``learning_rate``
        iterations: Maximum number of steps
        progress_callback: Called with a ProgressEvent after every energy
            evaluation
        delta: Finite-difference step for the gradient
        max_workers: Thread pool size for the gradient
        tolerance: Gradient norm below which the run is converged

    Returns:
        OptimizationResult with the final points, regions and energy history
    """
    state = OptimizerState.initial(initial_points, params)
    history: List[float] = []
    last_regions = None
    last_points = state.points.copy()

    logger.info("Starting tessellation optimization",
                points=len(state.points), iterations=iterations,
                learning_rate=params.learning_rate)

    def _stop(status: str, iteration: int) -> OptimizationResult:
        logger.warning("Optimization stopped", status=status, iteration=iteration + 1)
        return OptimizationResult(last_points, last_regions, history, iteration, status)

    completed = 0
    status = "completed"
    for iteration in range(iterations):
        regions = generate_voronoi_regions_toroidal(state.points, params.width, params.height)
        if regions is None:
            return _stop("voronoi_failed", iteration)

        last_regions = regions
        last_points = state.points.copy()

        result = calculate_energy(regions, state.points, params, state.target_areas)
        history.append(result.total_energy)
        if progress_callback is not None:
            progress_callback(ProgressEvent(iteration, iterations, result.total_energy, result.components))

        if not result.is_finite:
            return _stop("energy_non_finite", iteration)

        grad = calculate_gradient(state.points, params, delta, state.target_areas, max_workers)
        step_status = check_convergence(grad, tolerance)
        if step_status is StepStatus.FAILED:
            return _stop("gradient_non_finite", iteration)
        if step_status is StepStatus.CONVERGED:
            logger.info("Gradient norm below tolerance", iteration=iteration + 1)
            completed = iteration + 1
            status = "converged"
            break

        state.points = iterate_step(state.points, grad, params)
        completed = iteration + 1

        logger.debug("Optimization step", iteration=iteration + 1,
                     energy=result.total_energy, **result.components.as_dict())

    final_regions = generate_voronoi_regions_toroidal(state.points, params.width, params.height)
    if final_regions is None:
        logger.warning("Final tessellation failed, keeping last good regions")
        return OptimizationResult(last_points, last_regions, history, completed, status)

    logger.info("Optimization finished", iterations=completed, status=status,
                final_energy=history[-1] if history else None)
    return OptimizationResult(state.points, final_regions, history, completed, status)
