"""Yield estimation endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.config import settings
from app.core.rate_limit import yield_limiter
from app.schemas.yield_estimate import (
    CacheStatsResponse,
    LossBreakdownOut,
    LossRow,
    PerformanceRatioResponse,
    QuickYieldResponse,
    YieldCalculationResponse,
    YieldEstimateOut,
    YieldEstimateRequest,
)
from app.services.yield_service import get_calculator
from engine.pv_yield.errors import ValidationError
from engine.pv_yield.models import YieldCalculationResult
from engine.pv_yield.performance_ratio import (
    calculate_performance_ratio,
    format_loss_breakdown,
    get_pr_quality_description,
)
from engine.pv_yield.yield_calculator import (
    YieldCalculator,
    calculate_yield_offline,
    format_yield,
    get_quick_yield_estimate,
    get_source_description,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(result: YieldCalculationResult, response: Response) -> YieldCalculationResponse:
    if not result.success:
        if result.error_type == "ValidationError":
            response.status_code = 422
        else:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    estimate = None
    if result.estimate is not None:
        estimate = YieldEstimateOut.model_validate(result.estimate)

    return YieldCalculationResponse(
        success=result.success,
        source=result.source,
        source_description=get_source_description(result.source),
        estimate=estimate,
        error=result.error,
        error_type=result.error_type,
        fallback_reason=result.fallback_reason,
    )


@router.post(
    "/estimate",
    response_model=YieldCalculationResponse,
    summary="Estimate PV yield",
    description="Annual and monthly yield from PVGIS, falling back to the offline latitude table.",
)
async def estimate_yield(
    body: YieldEstimateRequest,
    request: Request,
    response: Response,
    calculator: YieldCalculator = Depends(get_calculator),
):
    yield_limiter.check(request)
    result = await calculator.calculate_yield(
        body.to_input(default_database=settings.pvgis_database),
        use_cache=body.use_cache,
        skip_remote_outside_coverage=body.skip_remote_outside_coverage,
    )
    logger.info(
        "Yield estimate for (%.4f, %.4f): success=%s source=%s",
        body.latitude, body.longitude, result.success, result.source.value,
        extra={"yield_source": result.source.value, "latitude": body.latitude, "longitude": body.longitude},
    )
    return _to_response(result, response)


@router.post(
    "/estimate/offline",
    response_model=YieldCalculationResponse,
    summary="Estimate PV yield offline",
    description="Lookup-table estimate without contacting PVGIS.",
)
async def estimate_yield_offline(body: YieldEstimateRequest, response: Response):
    return _to_response(calculate_yield_offline(body.to_input()), response)


@router.get(
    "/quick",
    response_model=QuickYieldResponse | None,
    summary="Quick yield estimate",
    description="Annual yield and capacity factor at a fixed PR of 0.80; null when unavailable.",
)
async def quick_yield(latitude: float, longitude: float, capacity_kwp: float):
    quick = get_quick_yield_estimate(latitude, longitude, capacity_kwp)
    if quick is None:
        return None
    return QuickYieldResponse(
        annual_yield_kwh=quick.annual_yield_kwh,
        capacity_factor=quick.capacity_factor,
        formatted=format_yield(quick.annual_yield_kwh),
    )


@router.get(
    "/performance-ratio",
    response_model=PerformanceRatioResponse,
    summary="Performance ratio breakdown",
    description="Multiplicative loss model; omitted parameters take documented defaults.",
)
async def performance_ratio(
    temp_coeff_pmax: float | None = None,
    noct: float | None = None,
    inverter_efficiency: float | None = None,
    avg_ambient_temp: float | None = None,
    avg_irradiance: float | None = None,
    soiling_loss: float | None = None,
    shading_loss: float | None = None,
    wiring_loss: float | None = None,
    mismatch_loss: float | None = None,
    availability_loss: float | None = None,
    other_loss: float | None = None,
):
    try:
        pr = calculate_performance_ratio(
            {
                "temp_coeff_pmax": temp_coeff_pmax,
                "noct": noct,
                "inverter_efficiency": inverter_efficiency,
                "avg_ambient_temp": avg_ambient_temp,
                "avg_irradiance": avg_irradiance,
                "soiling_loss": soiling_loss,
                "shading_loss": shading_loss,
                "wiring_loss": wiring_loss,
                "mismatch_loss": mismatch_loss,
                "availability_loss": availability_loss,
                "other_loss": other_loss,
            }
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    quality = get_pr_quality_description(pr.performance_ratio)
    return PerformanceRatioResponse(
        performance_ratio=pr.performance_ratio,
        cell_temperature=pr.cell_temperature,
        rating=quality.rating,
        description=quality.description,
        losses=LossBreakdownOut.model_validate(pr.losses),
        breakdown=[LossRow(**row) for row in format_loss_breakdown(pr.losses)],
    )


@router.get("/cache/stats", response_model=CacheStatsResponse, summary="PVGIS cache statistics")
async def cache_stats(calculator: YieldCalculator = Depends(get_calculator)):
    stats = await calculator.client.cache.stats()
    return CacheStatsResponse(
        entries=stats.entries,
        oldest_entry=stats.oldest_entry,
        newest_entry=stats.newest_entry,
    )


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT, summary="Clear PVGIS cache")
async def clear_cache(calculator: YieldCalculator = Depends(get_calculator)):
    await calculator.client.clear_cache()
    logger.info("PVGIS cache cleared")
