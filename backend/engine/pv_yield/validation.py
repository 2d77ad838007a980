"""Input guards shared by every orchestrator entry point."""

from __future__ import annotations

import math
from numbers import Real

from .errors import ValidationError


def _is_finite_number(value: object) -> bool:
    # bool is a Real subclass; a latitude of True is a caller bug
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(float(value))


def is_valid_coordinates(latitude: object, longitude: object) -> bool:
    """True iff both values are finite numbers inside the geographic domain."""
    if not (_is_finite_number(latitude) and _is_finite_number(longitude)):
        return False
    return -90.0 <= float(latitude) <= 90.0 and -180.0 <= float(longitude) <= 180.0


def is_valid_capacity(capacity_kwp: object) -> bool:
    return _is_finite_number(capacity_kwp) and float(capacity_kwp) > 0.0


def validate_coordinates(latitude: object, longitude: object) -> None:
    if not is_valid_coordinates(latitude, longitude):
        raise ValidationError(
            f"Invalid coordinates provided: latitude={latitude!r}, longitude={longitude!r} "
            "(expected latitude in [-90, 90] and longitude in [-180, 180])"
        )


def validate_capacity(capacity_kwp: object) -> None:
    if not is_valid_capacity(capacity_kwp):
        raise ValidationError(
            f"System capacity must be a finite number greater than 0, got {capacity_kwp!r}"
        )


def validate_loss_percent(name: str, value: float | None) -> None:
    """Loss percentages must lie in ``[0, 100)``.  ``None`` means "use the default"."""
    if value is None:
        return
    if not _is_finite_number(value) or not 0.0 <= float(value) < 100.0:
        raise ValidationError(f"{name} must be a percentage in [0, 100), got {value!r}")


def validate_tilt(tilt_angle: float | None) -> None:
    if tilt_angle is None:
        return
    if not _is_finite_number(tilt_angle) or not 0.0 <= float(tilt_angle) <= 90.0:
        raise ValidationError(f"Tilt angle must be in [0, 90] degrees, got {tilt_angle!r}")


def validate_finite(name: str, value: float | None) -> None:
    if value is not None and not _is_finite_number(value):
        raise ValidationError(f"{name} must be a finite number, got {value!r}")


def validate_inverter_efficiency(efficiency: float | None) -> None:
    if efficiency is None:
        return
    if not _is_finite_number(efficiency) or not 0.0 < float(efficiency) <= 100.0:
        raise ValidationError(
            f"Inverter efficiency must be a percentage in (0, 100], got {efficiency!r}"
        )


# Physically plausible operating conditions for the NOCT model.
AMBIENT_TEMP_RANGE: tuple[float, float] = (-60.0, 70.0)       # degC
IRRADIANCE_RANGE: tuple[float, float] = (0.0, 1500.0)         # W/m^2
NOCT_RANGE: tuple[float, float] = (20.0, 80.0)                # degC
TEMP_COEFF_RANGE: tuple[float, float] = (-1.0, 1.0)           # %/degC


def validate_range(name: str, value: float | None, bounds: tuple[float, float], unit: str = "") -> None:
    """Inclusive range check; ``None`` means "use the default"."""
    if value is None:
        return
    low, high = bounds
    if not _is_finite_number(value) or not low <= float(value) <= high:
        suffix = f" {unit}" if unit else ""
        raise ValidationError(f"{name} must be in [{low:g}, {high:g}]{suffix}, got {value!r}")


def validate_operating_conditions(
    temp_coeff_pmax: float | None = None,
    noct: float | None = None,
    ambient_temp: float | None = None,
    irradiance: float | None = None,
) -> None:
    validate_range("Module temperature coefficient", temp_coeff_pmax, TEMP_COEFF_RANGE, "%/°C")
    validate_range("Module NOCT", noct, NOCT_RANGE, "°C")
    validate_range("Average ambient temperature", ambient_temp, AMBIENT_TEMP_RANGE, "°C")
    validate_range("Average irradiance", irradiance, IRRADIANCE_RANGE, "W/m²")
