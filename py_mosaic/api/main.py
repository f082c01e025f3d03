"""FastAPI main application."""

import math
from typing import List, Optional, Tuple

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import settings
from ..core.energy import EnergyParams, calculate_energy
from ..core.exceptions import InvalidInputError, TessellationError
from ..core.geometry import wrap_points
from ..core.gradient import calculate_gradient
from ..core.mosaic import nearest_target_area_function
from ..core.optimizer import check_convergence, gradient_norm, iterate_step, optimize_tessellation
from ..core.toroidal_voronoi import require_regions, total_region_area
from ..utils.logging_config import configure_logging

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

app = FastAPI(
    title="Mosaic Tessellation API",
    description="Toroidal Voronoi tessellation and energy minimization",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Point = Tuple[float, float]


# Request/Response models
class EnergyWeights(BaseModel):
    """Energy weights accepted over the wire (no target area callable)."""

    lambda_area: float = Field(2.5, ge=0, description="Area deviation weight")
    lambda_centroid: float = Field(0.0, ge=0, description="Centroid mismatch weight")
    lambda_angle: float = Field(0.01, ge=0, description="Sharp angle penalty weight")
    lambda_min_area: float = Field(0.0, ge=0, description="Minimum area penalty weight")
    min_area_threshold: float = Field(0.0, ge=0, description="Minimum region area")
    point_weights: Optional[List[float]] = Field(None, description="Relative target area per point")
    learning_rate: float = Field(settings.default_learning_rate, gt=0, description="Gradient step")


class DomainRequest(BaseModel):
    points: List[Point] = Field(..., description="Generator points")
    width: float = Field(..., gt=0, description="Domain width")
    height: float = Field(..., gt=0, description="Domain height")


class EnergyRequest(DomainRequest):
    weights: EnergyWeights = Field(default_factory=EnergyWeights)


class IterateStepRequest(EnergyRequest):
    gradient: Optional[List[Point]] = Field(None, description="Precomputed gradient; computed when omitted")


class OptimizeRequest(EnergyRequest):
    iterations: int = Field(settings.default_iterations, ge=0, description="Maximum number of iterations")
    target_areas: Optional[List[float]] = Field(None, description="Target area per initial point")


class RegionsResponse(BaseModel):
    regions: List[List[List[Point]]]
    total_area: float


class EnergyResponse(BaseModel):
    total_energy: float
    components: dict


class IterateStepResponse(BaseModel):
    points: List[Point]
    gradient_norm: Optional[float]
    status: str


class OptimizeResponse(BaseModel):
    points: List[Point]
    regions: Optional[List[List[List[Point]]]]
    history: List[Optional[float]] = Field(..., description="Energy per iteration; null where it was not finite")
    iterations: int
    status: str


def _energy_params(request: EnergyRequest, target_area_func=None) -> EnergyParams:
    return EnergyParams(
        width=request.width,
        height=request.height,
        target_area_func=target_area_func,
        **request.weights.model_dump(),
    )


def _regions_or_422(points, width: float, height: float):
    try:
        return require_regions(points, width, height)
    except TessellationError as e:
        logger.info("Tessellation unavailable", points=len(points))
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Mosaic Tessellation API",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/tessellation/generate", response_model=RegionsResponse)
def generate_regions(request: DomainRequest):
    """Generate the toroidal Voronoi regions of a point set."""
    logger.info("Tessellation requested", points=len(request.points))
    regions = _regions_or_422(request.points, request.width, request.height)
    return RegionsResponse(regions=regions, total_area=total_region_area(regions))


@app.post("/tessellation/energy", response_model=EnergyResponse)
def evaluate_energy(request: EnergyRequest):
    """Tessellate and score a point set."""
    params = _energy_params(request)
    regions = _regions_or_422(request.points, request.width, request.height)
    result = calculate_energy(regions, request.points, params)
    if not result.is_finite:
        raise HTTPException(status_code=422, detail="Energy is not finite for these points")
    return EnergyResponse(total_energy=result.total_energy,
                          components=result.components.as_dict())


@app.post("/tessellation/iterate-step", response_model=IterateStepResponse)
def iterate(request: IterateStepRequest):
    """
    Advance the points by one gradient-descent step.

    The caller feeds the returned points into the next request.
    """
    params = _energy_params(request)
    if request.gradient is None:
        grad = calculate_gradient(request.points, params, settings.gradient_delta,
                                  max_workers=settings.gradient_workers)
    else:
        grad = request.gradient

    next_points = iterate_step(request.points, grad, params)
    if next_points is None:
        raise HTTPException(status_code=422, detail="gradient must have one entry per point")

    norm = gradient_norm(grad)
    if norm == float("inf"):
        norm = None
    return IterateStepResponse(
        points=[tuple(p) for p in next_points.tolist()],
        gradient_norm=norm,
        status=check_convergence(grad).value,
    )


@app.post("/tessellation/optimize", response_model=OptimizeResponse)
def optimize(request: OptimizeRequest):
    """Run the optimizer for a bounded number of iterations."""
    if request.iterations > settings.max_iterations:
        raise HTTPException(status_code=422,
                            detail=f"iterations must not exceed {settings.max_iterations}")

    target_area_func = None
    if request.target_areas is not None:
        try:
            target_area_func = nearest_target_area_function(
                wrap_points(request.points, request.width, request.height), request.target_areas)
        except InvalidInputError as e:
            raise HTTPException(status_code=422, detail=str(e))

    params = _energy_params(request, target_area_func)
    logger.info("Optimization requested", points=len(request.points),
                iterations=request.iterations)

    result = optimize_tessellation(request.points, params, iterations=request.iterations,
                                   delta=settings.gradient_delta,
                                   max_workers=settings.gradient_workers)

    history = [h if math.isfinite(h) else None for h in result.history]
    return OptimizeResponse(
        points=[tuple(p) for p in result.points.tolist()],
        regions=result.regions,
        history=history,
        iterations=result.iterations,
        status=result.status,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
