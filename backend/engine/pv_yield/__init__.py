"""
PV yield estimation engine.

Estimates annual and monthly energy yield for a fixed-tilt PV system from
its location and capacity: PVGIS first, a latitude-band GHI table when the
service is unavailable, and a multiplicative performance-ratio loss model
applied to either source.
"""

from .cache import CacheEntry, CacheStats, CacheStore, InMemoryCacheStore
from .errors import (
    CoverageError,
    LookupTableError,
    MalformedResponseError,
    RemoteServiceError,
    RemoteTimeoutError,
    ServiceError,
    ValidationError,
    YieldEstimationError,
)
from .ghi_lookup import (
    GHI_LOOKUP_TABLE,
    GHILookupEntry,
    estimate_yield_from_lookup,
    get_optimal_azimuth,
    get_optimal_tilt,
    lookup_ghi,
)
from .models import (
    InverterSpecs,
    Location,
    LossAssumptions,
    LossBreakdown,
    ModuleSpecs,
    QuickYieldEstimate,
    SystemConfig,
    YieldCalculationInput,
    YieldCalculationResult,
    YieldEstimate,
    YieldSource,
)
from .performance_ratio import (
    PRResult,
    calculate_cell_temperature,
    calculate_performance_ratio,
    calculate_pr_from_components,
    calculate_temperature_loss,
    format_loss_breakdown,
    get_pr_quality_description,
    resolve_loss_assumptions,
)
from .pvgis_client import (
    PVGISClient,
    PVGISRequestParams,
    extract_yield_data,
    is_pvgis_coverage_area,
    make_cache_key,
)
from .validation import is_valid_capacity, is_valid_coordinates
from .yield_calculator import (
    YieldCalculator,
    calculate_yield,
    calculate_yield_offline,
    capacity_factor_to_yield,
    format_yield,
    get_quick_yield_estimate,
    get_source_description,
    yield_to_capacity_factor,
)

__all__ = [
    # models
    "YieldSource",
    "Location",
    "SystemConfig",
    "ModuleSpecs",
    "InverterSpecs",
    "LossAssumptions",
    "LossBreakdown",
    "YieldEstimate",
    "YieldCalculationInput",
    "YieldCalculationResult",
    "QuickYieldEstimate",
    # errors
    "YieldEstimationError",
    "ValidationError",
    "LookupTableError",
    "RemoteServiceError",
    "CoverageError",
    "RemoteTimeoutError",
    "ServiceError",
    "MalformedResponseError",
    # validation
    "is_valid_coordinates",
    "is_valid_capacity",
    # ghi_lookup
    "GHI_LOOKUP_TABLE",
    "GHILookupEntry",
    "lookup_ghi",
    "estimate_yield_from_lookup",
    "get_optimal_tilt",
    "get_optimal_azimuth",
    # performance_ratio
    "PRResult",
    "resolve_loss_assumptions",
    "calculate_cell_temperature",
    "calculate_temperature_loss",
    "calculate_performance_ratio",
    "calculate_pr_from_components",
    "get_pr_quality_description",
    "format_loss_breakdown",
    # cache
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "InMemoryCacheStore",
    # pvgis_client
    "PVGISClient",
    "PVGISRequestParams",
    "make_cache_key",
    "is_pvgis_coverage_area",
    "extract_yield_data",
    # yield_calculator
    "YieldCalculator",
    "calculate_yield",
    "calculate_yield_offline",
    "get_quick_yield_estimate",
    "yield_to_capacity_factor",
    "capacity_factor_to_yield",
    "format_yield",
    "get_source_description",
]
