"""Tests for input guards."""

import math

import pytest

from engine.pv_yield.errors import ValidationError, YieldEstimationError
from engine.pv_yield.validation import (
    is_valid_capacity,
    is_valid_coordinates,
    validate_capacity,
    validate_coordinates,
    validate_inverter_efficiency,
    validate_loss_percent,
    validate_operating_conditions,
    validate_range,
    validate_tilt,
)


class TestCoordinates:
    @pytest.mark.parametrize(
        "lat, lon",
        [(0.0, 0.0), (90.0, 180.0), (-90.0, -180.0), (51.5, -0.12), (-33.87, 151.21)],
    )
    def test_valid(self, lat, lon):
        assert is_valid_coordinates(lat, lon)

    @pytest.mark.parametrize(
        "lat, lon",
        [
            (90.0001, 0.0),
            (-91.0, 0.0),
            (0.0, 180.5),
            (0.0, -181.0),
            (200.0, 0.0),
            (math.nan, 0.0),
            (0.0, math.inf),
            (None, 0.0),
            ("51.5", 0.0),
            (True, 0.0),
        ],
    )
    def test_invalid(self, lat, lon):
        assert not is_valid_coordinates(lat, lon)

    def test_validate_raises_validation_error(self):
        with pytest.raises(ValidationError, match="Invalid coordinates"):
            validate_coordinates(200.0, 0.0)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_coordinates(0.0, 999.0)
        assert issubclass(ValidationError, YieldEstimationError)


class TestCapacity:
    def test_positive_is_valid(self):
        assert is_valid_capacity(0.001)
        assert is_valid_capacity(1000)

    @pytest.mark.parametrize("cap", [0.0, -5.0, math.nan, math.inf, None])
    def test_invalid(self, cap):
        assert not is_valid_capacity(cap)
        with pytest.raises(ValidationError, match="capacity"):
            validate_capacity(cap)


class TestLossPercent:
    def test_none_means_default(self):
        validate_loss_percent("Soiling loss", None)

    @pytest.mark.parametrize("value", [0.0, 2.0, 99.99])
    def test_in_range(self, value):
        validate_loss_percent("Soiling loss", value)

    @pytest.mark.parametrize("value", [-0.1, 100.0, 150.0, math.nan])
    def test_out_of_range(self, value):
        with pytest.raises(ValidationError, match="Soiling loss"):
            validate_loss_percent("Soiling loss", value)


class TestOtherGuards:
    def test_tilt_bounds(self):
        validate_tilt(None)
        validate_tilt(0.0)
        validate_tilt(90.0)
        with pytest.raises(ValidationError):
            validate_tilt(91.0)
        with pytest.raises(ValidationError):
            validate_tilt(-1.0)

    def test_inverter_efficiency_bounds(self):
        validate_inverter_efficiency(100.0)
        validate_inverter_efficiency(96.5)
        with pytest.raises(ValidationError):
            validate_inverter_efficiency(0.0)
        with pytest.raises(ValidationError):
            validate_inverter_efficiency(100.5)


class TestOperatingConditions:
    def test_defaults_pass(self):
        validate_operating_conditions()

    def test_plausible_values_pass(self):
        validate_operating_conditions(temp_coeff_pmax=-0.45, noct=48.0, ambient_temp=-60.0, irradiance=1500.0)

    @pytest.mark.parametrize(
        "field, value, label",
        [
            ("ambient_temp", 400.0, "ambient temperature"),
            ("ambient_temp", -80.0, "ambient temperature"),
            ("irradiance", 5000.0, "irradiance"),
            ("irradiance", -1.0, "irradiance"),
            ("noct", 200.0, "NOCT"),
            ("temp_coeff_pmax", -5.0, "temperature coefficient"),
            ("ambient_temp", math.inf, "ambient temperature"),
        ],
    )
    def test_implausible_values_rejected(self, field, value, label):
        with pytest.raises(ValidationError, match=label):
            validate_operating_conditions(**{field: value})

    def test_range_message_has_bounds(self):
        with pytest.raises(ValidationError, match=r"\[0, 10\] kW"):
            validate_range("Power", 11.0, (0.0, 10.0), "kW")
