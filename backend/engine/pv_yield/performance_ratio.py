"""
Performance Ratio (PR) loss model.

Converts module temperature behaviour, inverter efficiency and a set of
balance-of-system loss assumptions into a single PR and a loss breakdown.

Losses are combined multiplicatively::

    PR = (1 - L_temp) * (1 - L_soil) * (1 - L_shade) * (1 - L_wire)
       * (1 - L_mism) * (1 - L_inv) * (1 - L_avail) * (1 - L_other)

Each mechanism acts on the power left over by the previous ones, which is
closer to reality than summing percentages.

Typical PR bands: excellent >= 0.82, good >= 0.78, average >= 0.74, else poor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from .models import InverterSpecs, LossAssumptions, LossBreakdown, ModuleSpecs
from .validation import validate_inverter_efficiency, validate_loss_percent, validate_operating_conditions

# ---------------------------------------------------------------------------
# Documented defaults
# ---------------------------------------------------------------------------

DEFAULT_TEMP_COEFF_PMAX: float = -0.35      # %/degC, mono c-Si
DEFAULT_NOCT: float = 45.0                  # degC
DEFAULT_INVERTER_EFFICIENCY: float = 97.0   # %
DEFAULT_AMBIENT_TEMP: float = 20.0          # degC, mild climate
DEFAULT_OPERATING_IRRADIANCE: float = 800.0  # W/m^2

DEFAULT_SOILING_LOSS: float = 2.0
DEFAULT_SHADING_LOSS: float = 3.0
DEFAULT_WIRING_LOSS: float = 2.0
DEFAULT_MISMATCH_LOSS: float = 2.0
DEFAULT_AVAILABILITY_LOSS: float = 3.0
DEFAULT_OTHER_LOSS: float = 0.0

STC_CELL_TEMP: float = 25.0
NOCT_AMBIENT: float = 20.0
NOCT_IRRADIANCE: float = 800.0

# Keeps the PR strictly positive however hot the cell runs.
MAX_TEMPERATURE_LOSS: float = 99.0

# PR quality thresholds (business constants)
PR_EXCELLENT: float = 0.82
PR_GOOD: float = 0.78
PR_AVERAGE: float = 0.74


@dataclass(frozen=True)
class PRResult:
    performance_ratio: float
    losses: LossBreakdown
    cell_temperature: float
    assumptions_used: LossAssumptions


@dataclass(frozen=True)
class PRQuality:
    rating: str
    description: str


def resolve_loss_assumptions(
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
) -> LossAssumptions:
    """Validate the supplied fields and fill the rest with documented defaults.

    Raises
    ------
    ValidationError
        If a loss percentage, the inverter efficiency or an operating
        condition is outside its physical range.
    """
    validate_operating_conditions(temp_coeff_pmax, noct, avg_ambient_temp, avg_irradiance)
    validate_inverter_efficiency(inverter_efficiency)
    for name, value in (
        ("Soiling loss", soiling_loss),
        ("Shading loss", shading_loss),
        ("Wiring loss", wiring_loss),
        ("Mismatch loss", mismatch_loss),
        ("Availability loss", availability_loss),
        ("Other loss", other_loss),
    ):
        validate_loss_percent(name, value)

    def pick(value: float | None, default: float) -> float:
        return float(default if value is None else value)

    return LossAssumptions(
        temp_coeff_pmax_percent_per_c=pick(temp_coeff_pmax, DEFAULT_TEMP_COEFF_PMAX),
        noct_c=pick(noct, DEFAULT_NOCT),
        inverter_efficiency_percent=pick(inverter_efficiency, DEFAULT_INVERTER_EFFICIENCY),
        ambient_temp_c=pick(avg_ambient_temp, DEFAULT_AMBIENT_TEMP),
        irradiance_wm2=pick(avg_irradiance, DEFAULT_OPERATING_IRRADIANCE),
        soiling_percent=pick(soiling_loss, DEFAULT_SOILING_LOSS),
        shading_percent=pick(shading_loss, DEFAULT_SHADING_LOSS),
        wiring_percent=pick(wiring_loss, DEFAULT_WIRING_LOSS),
        mismatch_percent=pick(mismatch_loss, DEFAULT_MISMATCH_LOSS),
        availability_percent=pick(availability_loss, DEFAULT_AVAILABILITY_LOSS),
        other_percent=pick(other_loss, DEFAULT_OTHER_LOSS),
    )


def calculate_cell_temperature(
    ambient_temp: float,
    irradiance: float,
    noct: float = DEFAULT_NOCT,
) -> float:
    """NOCT cell temperature model.

    ``T_cell = T_amb + (NOCT - 20) * G / 800``
    """
    return ambient_temp + (noct - NOCT_AMBIENT) * irradiance / NOCT_IRRADIANCE


def calculate_temperature_loss(
    cell_temp: float,
    temp_coeff_pmax: float = DEFAULT_TEMP_COEFF_PMAX,
) -> float:
    """Power loss (%) from operating above 25 degC.

    Cells cooler than STC get no credit: the result is never negative.  It
    is capped at ``MAX_TEMPERATURE_LOSS`` so the PR stays above zero.
    """
    loss = (cell_temp - STC_CELL_TEMP) * abs(temp_coeff_pmax)
    return min(MAX_TEMPERATURE_LOSS, max(0.0, loss))


def calculate_performance_ratio(
    assumptions: LossAssumptions | dict[str, Any] | None = None,
) -> PRResult:
    """Compute the PR and loss breakdown.

    Parameters
    ----------
    assumptions : LossAssumptions or dict or None
        A resolved record, or keyword arguments for
        :func:`resolve_loss_assumptions` (missing keys take defaults).
        ``None`` uses every default.

    Returns
    -------
    PRResult
        Deterministic for identical inputs.
    """
    if assumptions is None:
        a = resolve_loss_assumptions()
    elif isinstance(assumptions, dict):
        a = resolve_loss_assumptions(**assumptions)
    else:
        a = assumptions

    cell_temp = calculate_cell_temperature(a.ambient_temp_c, a.irradiance_wm2, a.noct_c)
    temperature_loss = calculate_temperature_loss(cell_temp, a.temp_coeff_pmax_percent_per_c)
    inverter_loss = 100.0 - a.inverter_efficiency_percent

    loss_terms = np.array(
        [
            temperature_loss,
            a.soiling_percent,
            a.shading_percent,
            a.wiring_percent,
            a.mismatch_percent,
            inverter_loss,
            a.availability_percent,
            a.other_percent,
        ],
        dtype=np.float64,
    )
    performance_ratio = float(np.prod(1.0 - loss_terms / 100.0))

    losses = LossBreakdown(
        temperature_loss=temperature_loss,
        soiling_loss=a.soiling_percent,
        shading_loss=a.shading_percent,
        wiring_loss=a.wiring_percent,
        mismatch_loss=a.mismatch_percent,
        inverter_loss=inverter_loss,
        availability_loss=a.availability_percent,
        other_loss=a.other_percent,
        total_loss_percent=(1.0 - performance_ratio) * 100.0,
    )

    return PRResult(
        performance_ratio=performance_ratio,
        losses=losses,
        cell_temperature=cell_temp,
        assumptions_used=a,
    )


def calculate_pr_from_components(
    module_specs: ModuleSpecs | None = None,
    inverter_specs: InverterSpecs | None = None,
    ambient_temp: float | None = None,
) -> PRResult:
    """PR from component-library datasheet values.

    The inverter's euro (weighted) efficiency is preferred over its peak
    efficiency when both are known.
    """
    inverter_efficiency = None
    if inverter_specs is not None:
        inverter_efficiency = (
            inverter_specs.euro_efficiency
            if inverter_specs.euro_efficiency is not None
            else inverter_specs.max_efficiency
        )

    return calculate_performance_ratio(
        resolve_loss_assumptions(
            temp_coeff_pmax=module_specs.temp_coeff_pmax if module_specs else None,
            noct=module_specs.noct if module_specs else None,
            inverter_efficiency=inverter_efficiency,
            avg_ambient_temp=ambient_temp,
        )
    )


def get_pr_quality_description(pr: float) -> PRQuality:
    if pr >= PR_EXCELLENT:
        return PRQuality("excellent", "Excellent system performance")
    if pr >= PR_GOOD:
        return PRQuality("good", "Good system performance")
    if pr >= PR_AVERAGE:
        return PRQuality("average", "Average system performance")
    return PRQuality("poor", "Below average - review losses")


def format_loss_breakdown(losses: LossBreakdown) -> list[dict[str, Any]]:
    """Display rows for every non-zero loss."""
    return [
        {"name": name, "value": value, "formatted": f"{value:.1f}%"}
        for name, value in losses.named_losses()
        if value > 0
    ]
