"""Shared test fixtures for YieldFlow engine and API tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

# Monthly PV output (kWh) for a 1000 kWp system near London.
LONDON_MONTHLY_KWH = [
    28_000.0, 45_000.0, 78_000.0, 110_000.0, 132_000.0, 135_000.0,
    136_000.0, 118_000.0, 88_000.0, 60_000.0, 33_000.0, 22_000.0,
]
LONDON_MONTHLY_IRRADIATION = [
    33.0, 53.0, 92.0, 130.0, 156.0, 160.0,
    161.0, 140.0, 104.0, 71.0, 39.0, 26.0,
]


def make_pvgis_response(
    latitude: float = 51.5,
    longitude: float = -0.12,
    monthly_kwh: list[float] | None = None,
    monthly_irradiation: list[float] | None = None,
) -> dict[str, Any]:
    """PVcalc JSON shaped like the live API (``H(i)_y`` keys)."""
    monthly_kwh = monthly_kwh if monthly_kwh is not None else LONDON_MONTHLY_KWH
    monthly_irradiation = (
        monthly_irradiation if monthly_irradiation is not None else LONDON_MONTHLY_IRRADIATION
    )
    return {
        "inputs": {
            "location": {"latitude": latitude, "longitude": longitude, "elevation": 25.0},
            "mounting_system": {"fixed": {"slope": {"value": 51}, "azimuth": {"value": 0}}},
        },
        "outputs": {
            "monthly": {
                "fixed": [
                    {"month": i + 1, "E_m": e, "H(i)_m": h}
                    for i, (e, h) in enumerate(zip(monthly_kwh, monthly_irradiation))
                ]
            },
            "totals": {
                "fixed": {
                    "E_y": sum(monthly_kwh),
                    "H(i)_y": sum(monthly_irradiation),
                }
            },
        },
    }


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport:
    """``httpx.MockTransport`` wrapper that remembers every request."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        self.transport = httpx.MockTransport(_record)

    @property
    def call_count(self) -> int:
        return len(self.requests)


# ======================================================================
# Fixtures
# ======================================================================

@pytest.fixture
def pvgis_response() -> dict[str, Any]:
    return make_pvgis_response()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_pvgis() -> Callable[..., RecordingTransport]:
    """Factory: ``mock_pvgis(json=...)``, ``mock_pvgis(status_code=..., text=...)``
    or ``mock_pvgis(exc=httpx.ReadTimeout(...))``."""

    def _factory(
        json: Any = None,
        status_code: int = 200,
        text: str | None = None,
        exc: Exception | None = None,
    ) -> RecordingTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if exc is not None:
                raise exc
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=json if json is not None else make_pvgis_response())

        return RecordingTransport(handler)

    return _factory


@pytest.fixture
def make_response() -> Callable[..., dict[str, Any]]:
    return make_pvgis_response
