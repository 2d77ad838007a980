"""
Data model for the yield estimation engine.

Every record produced by the engine is a frozen dataclass.  Monthly series
are stored as 12-element tuples so that a ``YieldEstimate`` handed to a
caller can never be mutated through a shared list.

Units
-----
- Capacity: kWp (DC, at STC).
- Energy: kWh.
- Irradiation: kWh/m^2 (annual or monthly sums).
- Angles: degrees.  Azimuth uses the compass convention, 180 = south.
- Losses: percent in ``[0, 100)``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime

HOURS_PER_YEAR: int = 8760
MONTHS_PER_YEAR: int = 12


class YieldSource(str, enum.Enum):
    """Where the yield figures of an estimate came from."""

    REMOTE = "remote"
    LOOKUP = "lookup"
    MANUAL = "manual"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class SystemConfig:
    """Fixed-tilt system geometry and the PVGIS-style lumped loss figure."""

    capacity_kwp: float
    tilt_angle: float
    azimuth: float
    system_losses_percent: float


@dataclass(frozen=True)
class ModuleSpecs:
    temp_coeff_pmax: float              # %/degC, negative (e.g. -0.35)
    noct: float | None = None           # degC


@dataclass(frozen=True)
class InverterSpecs:
    max_efficiency: float | None = None     # %
    euro_efficiency: float | None = None    # %, weighted; preferred when present


@dataclass(frozen=True)
class YieldCalculationInput:
    """Caller-facing request.  Only location and capacity are required."""

    latitude: float
    longitude: float
    capacity_kwp: float

    tilt_angle: float | None = None
    azimuth: float | None = None
    system_losses: float | None = None

    module_specs: ModuleSpecs | None = None
    inverter_efficiency: float | None = None

    avg_ambient_temp: float | None = None
    soiling_loss: float | None = None
    shading_loss: float | None = None
    wiring_loss: float | None = None
    mismatch_loss: float | None = None
    availability_loss: float | None = None
    other_loss: float | None = None

    database: str | None = None
    component_id: str | None = None


@dataclass(frozen=True)
class LossAssumptions:
    """Fully-populated inputs of the performance-ratio model."""

    temp_coeff_pmax_percent_per_c: float
    noct_c: float
    inverter_efficiency_percent: float
    ambient_temp_c: float
    irradiance_wm2: float
    soiling_percent: float
    shading_percent: float
    wiring_percent: float
    mismatch_percent: float
    availability_percent: float
    other_percent: float


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LossBreakdown:
    """Eight named losses plus their multiplicative total, all in percent.

    ``total_loss_percent == (1 - performance_ratio) * 100``.
    """

    temperature_loss: float
    soiling_loss: float
    shading_loss: float
    wiring_loss: float
    mismatch_loss: float
    inverter_loss: float
    availability_loss: float
    other_loss: float
    total_loss_percent: float

    def named_losses(self) -> list[tuple[str, float]]:
        return [
            ("Temperature", self.temperature_loss),
            ("Soiling", self.soiling_loss),
            ("Shading", self.shading_loss),
            ("Wiring (DC/AC)", self.wiring_loss),
            ("Module mismatch", self.mismatch_loss),
            ("Inverter", self.inverter_loss),
            ("Availability", self.availability_loss),
            ("Other", self.other_loss),
        ]


@dataclass(frozen=True)
class YieldEstimate:
    source: YieldSource
    calculated_at: datetime

    location: Location
    system: SystemConfig

    annual_yield_kwh: float
    annual_ghi_kwh_per_m2: float
    annual_poa_kwh_per_m2: float | None
    monthly_yield_kwh: tuple[float, ...]
    monthly_factors: tuple[float, ...]

    performance_ratio: float
    losses: LossBreakdown

    component_id: str | None = None

    @property
    def specific_yield_kwh_per_kwp(self) -> float:
        return self.annual_yield_kwh / self.system.capacity_kwp

    @property
    def capacity_factor(self) -> float:
        return self.annual_yield_kwh / (self.system.capacity_kwp * HOURS_PER_YEAR)


@dataclass(frozen=True)
class YieldCalculationResult:
    """Uniform envelope returned by every orchestrator entry point."""

    success: bool
    source: YieldSource
    estimate: YieldEstimate | None = None
    error: str | None = None
    error_type: str | None = None
    fallback_reason: str | None = None


@dataclass(frozen=True)
class QuickYieldEstimate:
    annual_yield_kwh: float
    capacity_factor: float
