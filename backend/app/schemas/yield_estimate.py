from datetime import datetime

from pydantic import BaseModel, Field

from engine.pv_yield.models import ModuleSpecs, YieldCalculationInput, YieldSource


class ModuleSpecsIn(BaseModel):
    temp_coeff_pmax: float = Field(description="Pmax temperature coefficient, %/°C (negative)")
    noct: float | None = Field(default=None, description="Nominal Operating Cell Temperature, °C")


class YieldEstimateRequest(BaseModel):
    """Range checks are left to the engine so failures come back in the envelope."""

    latitude: float
    longitude: float
    capacity_kwp: float

    tilt_angle: float | None = None
    azimuth: float | None = Field(default=None, description="Compass degrees, 180 = south")
    system_losses: float | None = Field(default=None, description="PVGIS lumped loss, %")

    module_specs: ModuleSpecsIn | None = None
    inverter_efficiency: float | None = None

    avg_ambient_temp: float | None = None
    soiling_loss: float | None = None
    shading_loss: float | None = None
    wiring_loss: float | None = None
    mismatch_loss: float | None = None
    availability_loss: float | None = None
    other_loss: float | None = None

    database: str | None = Field(default=None, description="PVGIS radiation database")
    component_id: str | None = None

    use_cache: bool = True
    skip_remote_outside_coverage: bool = False

    def to_input(self, default_database: str | None = None) -> YieldCalculationInput:
        module = (
            ModuleSpecs(temp_coeff_pmax=self.module_specs.temp_coeff_pmax, noct=self.module_specs.noct)
            if self.module_specs
            else None
        )
        return YieldCalculationInput(
            latitude=self.latitude,
            longitude=self.longitude,
            capacity_kwp=self.capacity_kwp,
            tilt_angle=self.tilt_angle,
            azimuth=self.azimuth,
            system_losses=self.system_losses,
            module_specs=module,
            inverter_efficiency=self.inverter_efficiency,
            avg_ambient_temp=self.avg_ambient_temp,
            soiling_loss=self.soiling_loss,
            shading_loss=self.shading_loss,
            wiring_loss=self.wiring_loss,
            mismatch_loss=self.mismatch_loss,
            availability_loss=self.availability_loss,
            other_loss=self.other_loss,
            database=self.database or default_database,
            component_id=self.component_id,
        )


class LocationOut(BaseModel):
    latitude: float
    longitude: float

    model_config = {"from_attributes": True}


class SystemConfigOut(BaseModel):
    capacity_kwp: float
    tilt_angle: float
    azimuth: float
    system_losses_percent: float

    model_config = {"from_attributes": True}


class LossBreakdownOut(BaseModel):
    temperature_loss: float
    soiling_loss: float
    shading_loss: float
    wiring_loss: float
    mismatch_loss: float
    inverter_loss: float
    availability_loss: float
    other_loss: float
    total_loss_percent: float

    model_config = {"from_attributes": True}


class YieldEstimateOut(BaseModel):
    source: YieldSource
    calculated_at: datetime
    location: LocationOut
    system: SystemConfigOut
    annual_yield_kwh: float
    annual_ghi_kwh_per_m2: float
    annual_poa_kwh_per_m2: float | None
    monthly_yield_kwh: list[float]
    monthly_factors: list[float]
    performance_ratio: float
    losses: LossBreakdownOut
    component_id: str | None = None
    specific_yield_kwh_per_kwp: float
    capacity_factor: float

    model_config = {"from_attributes": True}


class YieldCalculationResponse(BaseModel):
    success: bool
    source: YieldSource
    source_description: str
    estimate: YieldEstimateOut | None = None
    error: str | None = None
    error_type: str | None = None
    fallback_reason: str | None = None


class QuickYieldResponse(BaseModel):
    annual_yield_kwh: float
    capacity_factor: float
    formatted: str


class LossRow(BaseModel):
    name: str
    value: float
    formatted: str


class PerformanceRatioResponse(BaseModel):
    performance_ratio: float
    cell_temperature: float
    rating: str
    description: str
    losses: LossBreakdownOut
    breakdown: list[LossRow]


class CacheStatsResponse(BaseModel):
    entries: int
    oldest_entry: datetime | None
    newest_entry: datetime | None
