"""
Yield estimation orchestrator.

Composes validation, the performance-ratio model, the PVGIS client and the
offline lookup table into three entry points:

- :meth:`YieldCalculator.calculate_yield` -- remote first, lookup fallback.
- :func:`calculate_yield_offline` -- lookup only, synchronous.
- :func:`get_quick_yield_estimate` -- lookup with a fixed PR, ``None`` on
  any failure.  Degraded mode for non-critical display only.

None of them raises for bad input or an unavailable service: the outcome
is always a :class:`YieldCalculationResult` envelope (or ``None`` for the
quick estimate).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np

from .errors import (
    LookupTableError,
    MalformedResponseError,
    ValidationError,
    YieldEstimationError,
)
from .ghi_lookup import estimate_yield_from_lookup, get_optimal_azimuth, get_optimal_tilt, lookup_ghi
from .models import (
    HOURS_PER_YEAR,
    Location,
    LossAssumptions,
    QuickYieldEstimate,
    SystemConfig,
    YieldCalculationInput,
    YieldCalculationResult,
    YieldEstimate,
    YieldSource,
)
from .performance_ratio import PRResult, calculate_performance_ratio, resolve_loss_assumptions
from .pvgis_client import (
    PVGISClient,
    PVGISRequestParams,
    extract_yield_data,
    is_pvgis_coverage_area,
    to_pvgis_aspect,
)
from .validation import (
    validate_capacity,
    validate_coordinates,
    validate_finite,
    validate_loss_percent,
    validate_tilt,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_LOSSES: float = 14.0     # %, PVGIS default
QUICK_ESTIMATE_PR: float = 0.80


@dataclass(frozen=True)
class ResolvedYieldInput:
    """Validated request with every default applied."""

    location: Location
    system: SystemConfig
    assumptions: LossAssumptions
    database: str | None
    component_id: str | None


def resolve_calculation_input(inp: YieldCalculationInput) -> ResolvedYieldInput:
    """Validate *inp* and fill location-derived and documented defaults.

    Raises
    ------
    ValidationError
        Before any I/O if coordinates, capacity, geometry, a loss
        percentage or an operating condition is out of range.
    LookupTableError
        If the band table cannot supply the default ambient temperature.
    """
    validate_coordinates(inp.latitude, inp.longitude)
    validate_capacity(inp.capacity_kwp)
    validate_tilt(inp.tilt_angle)
    validate_finite("Azimuth", inp.azimuth)
    validate_loss_percent("System losses", inp.system_losses)

    latitude = float(inp.latitude)
    system = SystemConfig(
        capacity_kwp=float(inp.capacity_kwp),
        tilt_angle=float(inp.tilt_angle) if inp.tilt_angle is not None else get_optimal_tilt(latitude),
        azimuth=float(inp.azimuth) if inp.azimuth is not None else get_optimal_azimuth(latitude),
        system_losses_percent=(
            float(inp.system_losses) if inp.system_losses is not None else DEFAULT_SYSTEM_LOSSES
        ),
    )

    # Ambient temperature defaults to the climate band of the site.
    ambient = inp.avg_ambient_temp
    if ambient is None:
        ambient = lookup_ghi(latitude).avg_temp

    module = inp.module_specs
    assumptions = resolve_loss_assumptions(
        temp_coeff_pmax=module.temp_coeff_pmax if module else None,
        noct=module.noct if module else None,
        inverter_efficiency=inp.inverter_efficiency,
        avg_ambient_temp=ambient,
        soiling_loss=inp.soiling_loss,
        shading_loss=inp.shading_loss,
        wiring_loss=inp.wiring_loss,
        mismatch_loss=inp.mismatch_loss,
        availability_loss=inp.availability_loss,
        other_loss=inp.other_loss,
    )

    return ResolvedYieldInput(
        location=Location(latitude=latitude, longitude=float(inp.longitude)),
        system=system,
        assumptions=assumptions,
        database=inp.database,
        component_id=inp.component_id,
    )


def _failure(source: YieldSource, exc: Exception) -> YieldCalculationResult:
    return YieldCalculationResult(
        success=False,
        source=source,
        error=str(exc),
        error_type=type(exc).__name__,
    )


def _estimate_from_lookup(resolved: ResolvedYieldInput, pr: PRResult) -> YieldEstimate:
    lookup = estimate_yield_from_lookup(
        resolved.location.latitude,
        resolved.system.capacity_kwp,
        pr.performance_ratio,
    )
    return YieldEstimate(
        source=YieldSource.LOOKUP,
        calculated_at=datetime.now(timezone.utc),
        location=resolved.location,
        system=resolved.system,
        annual_yield_kwh=lookup.annual_yield_kwh,
        annual_ghi_kwh_per_m2=lookup.annual_ghi,
        annual_poa_kwh_per_m2=None,
        monthly_yield_kwh=lookup.monthly_yield_kwh,
        monthly_factors=lookup.monthly_factors,
        performance_ratio=pr.performance_ratio,
        losses=pr.losses,
        component_id=resolved.component_id,
    )


def _lookup_result(
    resolved: ResolvedYieldInput,
    pr: PRResult,
    fallback_reason: str | None = None,
) -> YieldCalculationResult:
    try:
        estimate = _estimate_from_lookup(resolved, pr)
    except LookupTableError as exc:
        logger.error("GHI lookup table invariant violated: %s", exc)
        return _failure(YieldSource.LOOKUP, exc)

    return YieldCalculationResult(
        success=True,
        source=YieldSource.LOOKUP,
        estimate=estimate,
        fallback_reason=fallback_reason,
    )


class YieldCalculator:
    """Remote-first yield estimation with offline fallback.

    A single remote failure falls straight back to the lookup table; the
    engine never retries.
    """

    def __init__(self, client: PVGISClient | None = None):
        self.client = client if client is not None else PVGISClient()

    async def calculate_yield(
        self,
        inp: YieldCalculationInput,
        *,
        use_cache: bool = True,
        skip_remote_outside_coverage: bool = False,
    ) -> YieldCalculationResult:
        """Estimate yield for *inp*.

        Parameters
        ----------
        use_cache : bool
            Consult and populate the response cache.
        skip_remote_outside_coverage : bool
            Latency-sensitive mode: go straight to the lookup table when
            :func:`is_pvgis_coverage_area` says the site is likely not
            covered.  By default the remote attempt always runs and a
            :class:`CoverageError` triggers the fallback.
        """
        try:
            resolved = resolve_calculation_input(inp)
        except ValidationError as exc:
            logger.info("Rejected yield request: %s", exc)
            return _failure(YieldSource.MANUAL, exc)
        except YieldEstimationError as exc:
            logger.error("Could not resolve yield request: %s", exc)
            return _failure(YieldSource.MANUAL, exc)

        pr = calculate_performance_ratio(resolved.assumptions)

        loc = resolved.location
        if skip_remote_outside_coverage and not is_pvgis_coverage_area(loc.latitude, loc.longitude):
            reason = "Location is outside PVGIS coverage area"
            logger.info("Skipping PVGIS for (%.4f, %.4f): %s", loc.latitude, loc.longitude, reason)
            return _lookup_result(resolved, pr, fallback_reason=reason)

        try:
            estimate = await self._estimate_from_remote(resolved, pr, use_cache)
        except Exception as exc:
            # CancelledError is a BaseException and propagates untouched.
            reason = str(exc) or type(exc).__name__
            logger.warning(
                "PVGIS unavailable for (%.4f, %.4f), falling back to lookup table: %s: %s",
                loc.latitude, loc.longitude, type(exc).__name__, exc,
                extra={
                    "yield_source": YieldSource.LOOKUP.value,
                    "latitude": loc.latitude,
                    "longitude": loc.longitude,
                    "fallback_reason": reason,
                },
            )
            result = _lookup_result(resolved, pr, fallback_reason=reason)
            if not result.success:
                # Report the remote failure alongside the table fault.
                return YieldCalculationResult(
                    success=False,
                    source=YieldSource.MANUAL,
                    error=f"{exc}; lookup fallback failed: {result.error}",
                    error_type=result.error_type,
                )
            return result

        return YieldCalculationResult(success=True, source=YieldSource.REMOTE, estimate=estimate)

    async def _estimate_from_remote(
        self,
        resolved: ResolvedYieldInput,
        pr: PRResult,
        use_cache: bool,
    ) -> YieldEstimate:
        params = PVGISRequestParams(
            latitude=resolved.location.latitude,
            longitude=resolved.location.longitude,
            peak_power_kwp=resolved.system.capacity_kwp,
            system_loss_percent=resolved.system.system_losses_percent,
            tilt_angle=resolved.system.tilt_angle,
            azimuth=to_pvgis_aspect(resolved.system.azimuth),
            database=resolved.database,
        )
        response = await self.client.fetch_remote_yield(params, use_cache=use_cache)
        data = extract_yield_data(response)

        monthly = np.asarray(data.monthly_yield, dtype=np.float64)
        total = float(monthly.sum())
        if total <= 0:
            raise MalformedResponseError("Invalid PVGIS response: monthly yields sum to zero")

        # PVGIS' implied PR is discarded; the local loss model stays authoritative.
        return YieldEstimate(
            source=YieldSource.REMOTE,
            calculated_at=datetime.now(timezone.utc),
            location=resolved.location,
            system=resolved.system,
            annual_yield_kwh=data.annual_yield,
            # in-plane irradiation approximates GHI near the optimal tilt
            annual_ghi_kwh_per_m2=data.annual_irradiance,
            annual_poa_kwh_per_m2=data.annual_irradiance,
            monthly_yield_kwh=data.monthly_yield,
            monthly_factors=tuple(float(v) for v in monthly / total),
            performance_ratio=pr.performance_ratio,
            losses=pr.losses,
            component_id=resolved.component_id,
        )

    def calculate_yield_offline(self, inp: YieldCalculationInput) -> YieldCalculationResult:
        return calculate_yield_offline(inp)


def calculate_yield_offline(inp: YieldCalculationInput) -> YieldCalculationResult:
    """Lookup-table estimate with no network dependency."""
    try:
        resolved = resolve_calculation_input(inp)
    except ValidationError as exc:
        logger.info("Rejected offline yield request: %s", exc)
        return _failure(YieldSource.LOOKUP, exc)
    except YieldEstimationError as exc:
        logger.error("Could not resolve offline yield request: %s", exc)
        return _failure(YieldSource.LOOKUP, exc)

    return _lookup_result(resolved, calculate_performance_ratio(resolved.assumptions))


def get_quick_yield_estimate(
    latitude: float,
    longitude: float,
    capacity_kwp: float,
) -> QuickYieldEstimate | None:
    """Rough annual yield at a fixed PR of 0.80, or ``None`` on any failure.

    Diagnostic detail is deliberately dropped; use :func:`calculate_yield_offline`
    when the reason for a failure matters.
    """
    try:
        validate_coordinates(latitude, longitude)
        validate_capacity(capacity_kwp)
        lookup = estimate_yield_from_lookup(latitude, capacity_kwp, QUICK_ESTIMATE_PR)
    except Exception as exc:
        logger.debug("Quick yield estimate unavailable: %s", exc)
        return None

    return QuickYieldEstimate(
        annual_yield_kwh=lookup.annual_yield_kwh,
        capacity_factor=yield_to_capacity_factor(lookup.annual_yield_kwh, capacity_kwp),
    )


# ---------------------------------------------------------------------------
# Module-level default calculator (lazy, like a shared engine handle)
# ---------------------------------------------------------------------------

_default_calculator: YieldCalculator | None = None


def get_default_calculator() -> YieldCalculator:
    global _default_calculator
    if _default_calculator is None:
        _default_calculator = YieldCalculator()
    return _default_calculator


async def calculate_yield(
    inp: YieldCalculationInput,
    *,
    calculator: YieldCalculator | None = None,
    use_cache: bool = True,
    skip_remote_outside_coverage: bool = False,
) -> YieldCalculationResult:
    calc = calculator if calculator is not None else get_default_calculator()
    return await calc.calculate_yield(
        inp,
        use_cache=use_cache,
        skip_remote_outside_coverage=skip_remote_outside_coverage,
    )


# ---------------------------------------------------------------------------
# Unit helpers
# ---------------------------------------------------------------------------

def yield_to_capacity_factor(annual_yield_kwh: float, capacity_kwp: float) -> float:
    return annual_yield_kwh / (capacity_kwp * HOURS_PER_YEAR)


def capacity_factor_to_yield(capacity_factor: float, capacity_kwp: float) -> float:
    return capacity_factor * capacity_kwp * HOURS_PER_YEAR


def format_yield(yield_kwh: float) -> str:
    if yield_kwh >= 1_000_000:
        return f"{yield_kwh / 1_000_000:.2f} GWh"
    if yield_kwh >= 1_000:
        return f"{yield_kwh / 1_000:.1f} MWh"
    return f"{yield_kwh:.0f} kWh"


_SOURCE_DESCRIPTIONS = {
    YieldSource.REMOTE: "PVGIS (EU Joint Research Centre)",
    YieldSource.LOOKUP: "Estimated from latitude (offline)",
    YieldSource.MANUAL: "Manual entry",
}


def get_source_description(source: YieldSource | str) -> str:
    try:
        return _SOURCE_DESCRIPTIONS[YieldSource(source)]
    except ValueError:
        return "Unknown"
