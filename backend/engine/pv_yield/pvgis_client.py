"""PVGIS PVcalc client with a cache-first policy.

https://re.jrc.ec.europa.eu/pvg_tools/en/ -- free, no API key.  Coverage is
Europe, Africa, most of Asia and parts of the Americas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .cache import DEFAULT_TTL_SECONDS, CacheStore, InMemoryCacheStore
from .errors import (
    CoverageError,
    MalformedResponseError,
    RemoteTimeoutError,
    ServiceError,
)
from .models import MONTHS_PER_YEAR

logger = logging.getLogger(__name__)

PVGIS_BASE_URL = "https://re.jrc.ec.europa.eu/api/v5_2"
PVGIS_TIMEOUT_SECONDS = 30.0

# (lat_min, lat_max, lon_min, lon_max) boxes where PVGIS-SARAH/ERA5 data is
# known to be available.  Approximate; the API remains authoritative.
_COVERAGE_BOXES: tuple[tuple[float, float, float, float], ...] = (
    (35.0, 72.0, -25.0, 45.0),      # Europe
    (-35.0, 37.0, -20.0, 55.0),     # Africa
    (12.0, 42.0, 25.0, 75.0),       # Middle East
    (5.0, 37.0, 65.0, 100.0),       # South Asia
    (-45.0, -10.0, 110.0, 155.0),   # Australia
)


@dataclass(frozen=True)
class PVGISRequestParams:
    """Query for the PVcalc endpoint.

    ``azimuth`` is the PVGIS *aspect*: 0 = south, 90 = west, -90 = east.
    """

    latitude: float
    longitude: float
    peak_power_kwp: float
    system_loss_percent: float
    tilt_angle: float
    azimuth: float
    database: str | None = None


@dataclass(frozen=True)
class RemoteYieldData:
    annual_yield: float
    monthly_yield: tuple[float, ...]
    annual_irradiance: float
    monthly_irradiance: tuple[float, ...]
    location: dict[str, float]


def to_pvgis_aspect(azimuth: float) -> float:
    """Compass azimuth (180 = south) to PVGIS aspect in ``[-180, 180)``."""
    return (azimuth % 360.0) - 180.0


def make_cache_key(params: PVGISRequestParams) -> str:
    """Round parameters so near-identical requests share an entry.

    Peak power keeps two decimals because PVGIS output scales with it.
    """
    return (
        f"pvgis_{params.latitude:.2f}_{params.longitude:.2f}"
        f"_{params.peak_power_kwp:.2f}_{params.system_loss_percent:.0f}"
        f"_{params.tilt_angle:.0f}_{params.azimuth:.0f}"
    )


def build_query_params(params: PVGISRequestParams) -> dict[str, Any]:
    query: dict[str, Any] = {
        "lat": params.latitude,
        "lon": params.longitude,
        "peakpower": params.peak_power_kwp,
        "loss": params.system_loss_percent,
        "mountingplace": "free",
        "angle": params.tilt_angle,
        "aspect": params.azimuth,
        "outputformat": "json",
    }
    if params.database:
        query["raddatabase"] = params.database
    return query


def is_pvgis_coverage_area(latitude: float, longitude: float) -> bool:
    """Cheap bounding-box guess at PVGIS coverage.

    A hint only: ``True`` does not guarantee success and ``False`` does not
    guarantee failure.
    """
    return any(
        lat_min <= latitude <= lat_max and lon_min <= longitude <= lon_max
        for lat_min, lat_max, lon_min, lon_max in _COVERAGE_BOXES
    )


def _irradiance(record: dict[str, Any], period: str) -> float:
    # Live API uses "H(i)_y"; older payloads and fixtures use "H_i_y".
    value = record.get(f"H(i)_{period}", record.get(f"H_i_{period}"))
    if value is None:
        raise KeyError(f"H(i)_{period}")
    return float(value)


def parse_pvgis_response(data: Any) -> dict[str, Any]:
    """Check that *data* has a location, an annual total and 12 months.

    Raises
    ------
    MalformedResponseError
        If any required part is missing or non-numeric.
    """
    if not isinstance(data, dict):
        raise MalformedResponseError("Invalid PVGIS response: body is not a JSON object")

    location = (data.get("inputs") or {}).get("location")
    if not isinstance(location, dict) or "latitude" not in location or "longitude" not in location:
        raise MalformedResponseError("Invalid PVGIS response: missing location data")

    outputs = data.get("outputs") or {}
    totals = (outputs.get("totals") or {}).get("fixed")
    if not isinstance(totals, dict) or "E_y" not in totals:
        raise MalformedResponseError("Invalid PVGIS response: missing totals data")

    monthly = (outputs.get("monthly") or {}).get("fixed")
    if not isinstance(monthly, list):
        raise MalformedResponseError("Invalid PVGIS response: missing monthly data")
    if len(monthly) != MONTHS_PER_YEAR:
        raise MalformedResponseError(
            f"Invalid PVGIS response: expected 12 months of data, got {len(monthly)}"
        )

    try:
        float(totals["E_y"])
        _irradiance(totals, "y")
        for month in monthly:
            float(month["E_m"])
            _irradiance(month, "m")
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponseError(f"Invalid PVGIS response: bad field {exc}") from exc

    return data


def extract_yield_data(response: dict[str, Any]) -> RemoteYieldData:
    """Project a validated response onto the figures the engine uses."""
    totals = response["outputs"]["totals"]["fixed"]
    monthly = response["outputs"]["monthly"]["fixed"]
    location = response["inputs"]["location"]

    return RemoteYieldData(
        annual_yield=float(totals["E_y"]),
        monthly_yield=tuple(float(m["E_m"]) for m in monthly),
        annual_irradiance=_irradiance(totals, "y"),
        monthly_irradiance=tuple(_irradiance(m, "m") for m in monthly),
        location={
            "latitude": float(location["latitude"]),
            "longitude": float(location["longitude"]),
            "elevation": float(location.get("elevation", 0.0)),
        },
    )


class PVGISClient:
    """Fetches PVcalc results, consulting *cache* before any network I/O.

    Parameters
    ----------
    base_url : str
        API root, without the ``/PVcalc`` suffix.
    timeout : float
        Whole-request timeout in seconds.
    cache : CacheStore or None
        Defaults to a fresh :class:`InMemoryCacheStore`.
    cache_ttl_seconds : float
        Lifetime of new cache entries.
    transport : httpx.AsyncBaseTransport or None
        Injected in tests (``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = PVGIS_BASE_URL,
        timeout: float = PVGIS_TIMEOUT_SECONDS,
        cache: CacheStore | None = None,
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache: CacheStore = cache if cache is not None else InMemoryCacheStore()
        self.cache_ttl_seconds = cache_ttl_seconds
        self._transport = transport

    async def fetch_remote_yield(
        self,
        params: PVGISRequestParams,
        use_cache: bool = True,
    ) -> dict[str, Any]:
        key = make_cache_key(params)

        if use_cache:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug("PVGIS cache hit for %s", key, extra={"cache_key": key})
                return cached
            logger.debug("PVGIS cache miss for %s", key, extra={"cache_key": key})

        data = await self._request(params)
        response = parse_pvgis_response(data)

        # Only a fully validated response reaches the cache.
        if use_cache:
            await self.cache.set(key, response, self.cache_ttl_seconds)
        return response

    async def _request(self, params: PVGISRequestParams) -> Any:
        url = f"{self.base_url}/PVcalc"
        logger.info(
            "Requesting PVGIS yield for (%.4f, %.4f), %.1f kWp",
            params.latitude, params.longitude, params.peak_power_kwp,
            extra={"latitude": params.latitude, "longitude": params.longitude},
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    url,
                    params=build_query_params(params),
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as exc:
            raise RemoteTimeoutError(
                f"PVGIS API request timed out after {self.timeout:.0f}s"
            ) from exc
        except httpx.RequestError as exc:
            raise ServiceError(f"PVGIS API request failed: {exc}") from exc

        if response.status_code == 400:
            detail = response.text
            if "location" in detail.lower() or "coverage" in detail.lower():
                raise CoverageError("Location is outside PVGIS coverage area")
            raise CoverageError(f"PVGIS rejected the request parameters: {detail}")
        if response.is_error:
            raise ServiceError(
                f"PVGIS API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("Invalid PVGIS response: body is not valid JSON") from exc

    async def clear_cache(self) -> None:
        await self.cache.clear()
