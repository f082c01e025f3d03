"""
Finite-difference gradient of the tessellation energy.

Every gradient component regenerates the whole toroidal Voronoi diagram for a
perturbed point set, so one gradient costs 2N + 1 tessellations. The
perturbations are independent and can be evaluated in a thread pool.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import numpy as np
import structlog

from .energy import EnergyParams, calculate_energy
from .toroidal_voronoi import generate_voronoi_regions_toroidal

logger = structlog.get_logger()

DEFAULT_DELTA = 1e-6


def evaluate_energy(points, params: EnergyParams,
                    target_areas: Optional[Sequence[float]] = None) -> float:
    """
    Tessellate ``points`` and return the total energy.

    Returns ``inf`` when the tessellation cannot be generated.
    """
    regions = generate_voronoi_regions_toroidal(points, params.width, params.height)
    if regions is None:
        return math.inf
    return calculate_energy(regions, points, params, target_areas).total_energy


def _perturbed_slope(base_points: np.ndarray, index: int, axis: int, delta: float,
                     base_energy: float, params: EnergyParams,
                     target_areas: Optional[Sequence[float]]) -> float:
    perturbed = base_points.copy()
    perturbed[index, axis] += delta
    energy = evaluate_energy(perturbed, params, target_areas)
    if not math.isfinite(energy):
        logger.debug("Skipping unevaluable perturbation", point=index, axis=axis)
        return 0.0

    slope = (energy - base_energy) / delta
    return slope if math.isfinite(slope) else 0.0


def calculate_gradient(points, params: EnergyParams, delta: float = DEFAULT_DELTA,
                       target_areas: Optional[Sequence[float]] = None,
                       max_workers: Optional[int] = None) -> np.ndarray:
    """
    Forward-difference gradient of the energy with respect to every point.

    If the unperturbed configuration cannot be evaluated the gradient is all
    zeros. A single perturbation that fails contributes a zero component
    rather than aborting the whole gradient.

    Args:
        points: N generator points
        params: Energy parameters
        delta: Finite-difference step
        target_areas: Fixed per-point target areas passed to the energy
        max_workers: Evaluate perturbations in a thread pool of this size

    Returns:
        (N, 2) array of finite partial derivatives, in input order
    """
    n_points = len(points) if points is not None else 0
    gradient = np.zeros((n_points, 2), dtype=float)
    if n_points == 0:
        return gradient

    try:
        base_points = np.array(points, dtype=float).reshape(n_points, 2)
    except (TypeError, ValueError):
        return gradient

    base_energy = evaluate_energy(base_points, params, target_areas)
    if not math.isfinite(base_energy):
        return gradient

    slots = [(i, j) for i in range(n_points) for j in range(2)]

    if max_workers is not None and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                slot: executor.submit(_perturbed_slope, base_points, slot[0], slot[1],
                                      delta, base_energy, params, target_areas)
                for slot in slots
            }
            for (i, j), future in futures.items():
                gradient[i, j] = future.result()
    else:
        for i, j in slots:
            gradient[i, j] = _perturbed_slope(base_points, i, j, delta,
                                              base_energy, params, target_areas)

    return gradient
