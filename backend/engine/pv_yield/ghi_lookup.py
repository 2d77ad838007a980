"""
Offline GHI lookup table.

Typical annual Global Horizontal Irradiation, monthly distribution and
average ambient temperature per absolute-latitude band.  Used when the
remote service is unreachable or rejects the location.  Values follow
NASA POWER climatology and PVGIS typical-year patterns; accuracy of the
derived yield is roughly +/-15 %.

Bands are expressed in absolute latitude and mirrored onto the southern
hemisphere, where the monthly distribution is shifted by six months.  The
union of the bands is ``[0, 90]``, so together with the mirror every
latitude in ``[-90, 90]`` maps to exactly one band.

References
----------
- NASA POWER, "Climatology API", 2001-2020 monthly means.
- Huld T. et al., "A new solar radiation database for estimating PV
  performance in Europe and Africa", Solar Energy 86(6), 2012.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

import numpy as np

from .errors import LookupTableError
from .models import MONTHS_PER_YEAR

MONTHLY_FACTOR_TOLERANCE: float = 1e-6


@dataclass(frozen=True)
class GHILookupEntry:
    latitude_min: float             # inclusive, absolute degrees
    latitude_max: float             # exclusive (inclusive for the polar band)
    annual_ghi: float               # kWh/m^2/year
    monthly_factors: tuple[float, ...]  # Jan..Dec, sums to 1.0
    avg_temp: float                 # degC
    description: str


@dataclass(frozen=True)
class LookupYield:
    annual_yield_kwh: float
    annual_ghi: float
    monthly_yield_kwh: tuple[float, ...]
    monthly_factors: tuple[float, ...]
    avg_temp: float
    description: str


def _normalised(raw: list[float]) -> tuple[float, ...]:
    """Scale survey shares so they sum to exactly 1.0."""
    arr = np.asarray(raw, dtype=np.float64)
    return tuple(float(v) for v in arr / arr.sum())


# ---------------------------------------------------------------------------
# Band table (northern-hemisphere monthly shape)
# ---------------------------------------------------------------------------

GHI_LOOKUP_TABLE: tuple[GHILookupEntry, ...] = (
    GHILookupEntry(
        0.0, 10.0, 1900.0,
        _normalised([0.083, 0.082, 0.086, 0.084, 0.082, 0.078,
                     0.080, 0.082, 0.084, 0.086, 0.084, 0.079]),
        27.0, "Tropical equatorial",
    ),
    GHILookupEntry(
        10.0, 20.0, 2100.0,
        _normalised([0.070, 0.075, 0.085, 0.090, 0.095, 0.095,
                     0.092, 0.090, 0.088, 0.082, 0.072, 0.066]),
        26.0, "Tropical / subtropical",
    ),
    GHILookupEntry(
        20.0, 30.0, 2200.0,
        _normalised([0.060, 0.068, 0.082, 0.092, 0.102, 0.105,
                     0.102, 0.098, 0.090, 0.078, 0.065, 0.058]),
        24.0, "Subtropical / desert",
    ),
    GHILookupEntry(
        30.0, 35.0, 1950.0,
        _normalised([0.055, 0.062, 0.080, 0.092, 0.105, 0.110,
                     0.108, 0.102, 0.090, 0.075, 0.060, 0.051]),
        18.0, "Warm temperate / Mediterranean",
    ),
    GHILookupEntry(
        35.0, 40.0, 1750.0,
        _normalised([0.050, 0.058, 0.078, 0.092, 0.108, 0.115,
                     0.112, 0.105, 0.088, 0.072, 0.055, 0.047]),
        15.0, "Mid-temperate",
    ),
    GHILookupEntry(
        40.0, 45.0, 1550.0,
        _normalised([0.042, 0.052, 0.076, 0.094, 0.112, 0.120,
                     0.118, 0.108, 0.086, 0.066, 0.048, 0.038]),
        11.0, "Cool temperate",
    ),
    GHILookupEntry(
        45.0, 50.0, 1350.0,
        _normalised([0.035, 0.048, 0.074, 0.096, 0.118, 0.128,
                     0.124, 0.110, 0.082, 0.060, 0.042, 0.033]),
        9.0, "Northern temperate",
    ),
    GHILookupEntry(
        50.0, 55.0, 1150.0,
        _normalised([0.028, 0.042, 0.072, 0.100, 0.124, 0.138,
                     0.132, 0.112, 0.078, 0.052, 0.035, 0.027]),
        6.0, "Subarctic / northern maritime",
    ),
    GHILookupEntry(
        55.0, 65.0, 950.0,
        _normalised([0.018, 0.035, 0.070, 0.105, 0.135, 0.150,
                     0.145, 0.115, 0.072, 0.042, 0.025, 0.018]),
        2.0, "High latitude / subarctic",
    ),
    GHILookupEntry(
        65.0, 90.0, 750.0,
        _normalised([0.005, 0.020, 0.060, 0.110, 0.155, 0.180,
                     0.170, 0.125, 0.065, 0.025, 0.010, 0.005]),
        -5.0, "Arctic",
    ),
)


def validate_table(table: tuple[GHILookupEntry, ...]) -> None:
    """Check that *table* partitions ``[0, 90]`` and every row sums to 1.

    Raises
    ------
    LookupTableError
        On the first violated invariant.
    """
    if not table:
        raise LookupTableError("GHI lookup table is empty")
    if table[0].latitude_min != 0.0:
        raise LookupTableError(f"First band starts at {table[0].latitude_min}, expected 0")
    if table[-1].latitude_max != 90.0:
        raise LookupTableError(f"Last band ends at {table[-1].latitude_max}, expected 90")

    for prev, nxt in zip(table, table[1:]):
        if prev.latitude_max != nxt.latitude_min:
            raise LookupTableError(
                f"Bands {prev.description!r} and {nxt.description!r} are not contiguous "
                f"({prev.latitude_max} != {nxt.latitude_min})"
            )

    for entry in table:
        if entry.latitude_min >= entry.latitude_max:
            raise LookupTableError(f"Band {entry.description!r} has an empty range")
        if entry.annual_ghi <= 0:
            raise LookupTableError(f"Band {entry.description!r} has non-positive GHI")
        if len(entry.monthly_factors) != MONTHS_PER_YEAR:
            raise LookupTableError(
                f"Band {entry.description!r} has {len(entry.monthly_factors)} monthly factors"
            )
        total = float(np.sum(entry.monthly_factors))
        if abs(total - 1.0) > MONTHLY_FACTOR_TOLERANCE:
            raise LookupTableError(
                f"Band {entry.description!r} monthly factors sum to {total:.6f}"
            )


validate_table(GHI_LOOKUP_TABLE)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def _band_for(abs_lat: float, table: tuple[GHILookupEntry, ...]) -> GHILookupEntry:
    last = table[-1]
    for entry in table:
        if entry.latitude_min <= abs_lat < entry.latitude_max:
            return entry
    # the pole itself belongs to the polar band
    if abs_lat == last.latitude_max:
        return last
    raise LookupTableError(f"No GHI band covers |latitude| = {abs_lat}")


def lookup_ghi(
    latitude: float,
    table: tuple[GHILookupEntry, ...] = GHI_LOOKUP_TABLE,
) -> GHILookupEntry:
    """Return the band containing *latitude*, adjusted for hemisphere.

    Southern-hemisphere latitudes get the monthly factors rotated by six
    months so that the summer peak falls in December-January.
    """
    entry = _band_for(abs(latitude), table)
    if latitude >= 0:
        return entry

    factors = entry.monthly_factors
    return dataclasses.replace(
        entry,
        monthly_factors=factors[6:] + factors[:6],
        description=f"{entry.description} (Southern Hemisphere)",
    )


def estimate_yield_from_lookup(
    latitude: float,
    capacity_kwp: float,
    performance_ratio: float = 0.80,
) -> LookupYield:
    """Rough annual and monthly yield from the band table.

    ``annual = GHI * capacity * PR``.  The horizontal irradiation stands in
    for plane-of-array irradiation, which is a fair approximation for a
    fixed system tilted near its optimum.
    """
    band = lookup_ghi(latitude)
    annual_yield = band.annual_ghi * capacity_kwp * performance_ratio
    monthly = np.asarray(band.monthly_factors, dtype=np.float64) * annual_yield

    return LookupYield(
        annual_yield_kwh=annual_yield,
        annual_ghi=band.annual_ghi,
        monthly_yield_kwh=tuple(float(v) for v in monthly),
        monthly_factors=band.monthly_factors,
        avg_temp=band.avg_temp,
        description=band.description,
    )


def get_optimal_tilt(latitude: float, optimization: str = "annual") -> float:
    """Fixed-tilt rule of thumb.

    ``annual`` tilts at the latitude; ``summer`` 15 degrees flatter and
    ``winter`` 15 degrees steeper, clamped to ``[0, 90]``.
    """
    abs_lat = abs(latitude)
    if optimization == "annual":
        return abs_lat
    if optimization == "summer":
        return max(0.0, abs_lat - 15.0)
    if optimization == "winter":
        return min(90.0, abs_lat + 15.0)
    raise ValueError(f"Unknown tilt optimization: {optimization!r}")


def get_optimal_azimuth(latitude: float) -> float:
    """Equator-facing azimuth: 180 (south) in the north, 0 (north) in the south."""
    return 180.0 if latitude >= 0 else 0.0
