"""Tests for the PVGIS PVcalc client (httpx.MockTransport, no network)."""

import asyncio

import httpx
import pytest

from engine.pv_yield.cache import InMemoryCacheStore
from engine.pv_yield.errors import (
    CoverageError,
    MalformedResponseError,
    RemoteServiceError,
    RemoteTimeoutError,
    ServiceError,
)
from engine.pv_yield.pvgis_client import (
    PVGISClient,
    PVGISRequestParams,
    extract_yield_data,
    is_pvgis_coverage_area,
    make_cache_key,
    parse_pvgis_response,
    to_pvgis_aspect,
)

pytestmark = pytest.mark.asyncio

LONDON = PVGISRequestParams(
    latitude=51.5,
    longitude=-0.12,
    peak_power_kwp=1000.0,
    system_loss_percent=14.0,
    tilt_angle=35.0,
    azimuth=0.0,
)


def _client(recording, cache=None) -> PVGISClient:
    return PVGISClient(
        base_url="https://pvgis.test/api/v5_2",
        cache=cache if cache is not None else InMemoryCacheStore(),
        transport=recording.transport,
    )


# ======================================================================
# Pure helpers
# ======================================================================

class TestHelpers:
    @pytest.mark.parametrize(
        "azimuth, aspect",
        [(180.0, 0.0), (90.0, -90.0), (270.0, 90.0), (0.0, -180.0), (360.0, -180.0), (-90.0, 90.0)],
    )
    async def test_aspect_conversion(self, azimuth, aspect):
        assert to_pvgis_aspect(azimuth) == aspect

    async def test_cache_key_rounding(self):
        assert make_cache_key(LONDON) == "pvgis_51.50_-0.12_1000.00_14_35_0"
        nudged = PVGISRequestParams(51.501, -0.1201, 1000.001, 14.1, 35.2, 0.3)
        assert make_cache_key(nudged) == make_cache_key(LONDON)

    async def test_coverage_heuristic(self):
        assert is_pvgis_coverage_area(51.5, -0.12)
        assert is_pvgis_coverage_area(-1.29, 36.82)
        assert not is_pvgis_coverage_area(0.0, -150.0)

    async def test_parse_accepts_legacy_irradiance_keys(self, pvgis_response):
        totals = pvgis_response["outputs"]["totals"]["fixed"]
        totals["H_i_y"] = totals.pop("H(i)_y")
        for month in pvgis_response["outputs"]["monthly"]["fixed"]:
            month["H_i_m"] = month.pop("H(i)_m")

        data = extract_yield_data(parse_pvgis_response(pvgis_response))
        assert data.annual_irradiance == pytest.approx(1165.0)

    async def test_parse_rejects_wrong_month_count(self, pvgis_response):
        pvgis_response["outputs"]["monthly"]["fixed"].pop()
        with pytest.raises(MalformedResponseError, match="12 months"):
            parse_pvgis_response(pvgis_response)

    async def test_parse_rejects_missing_location(self, pvgis_response):
        del pvgis_response["inputs"]["location"]
        with pytest.raises(MalformedResponseError, match="location"):
            parse_pvgis_response(pvgis_response)

    async def test_parse_rejects_non_numeric_month(self, pvgis_response):
        pvgis_response["outputs"]["monthly"]["fixed"][3]["E_m"] = "n/a"
        with pytest.raises(MalformedResponseError):
            parse_pvgis_response(pvgis_response)

    async def test_extract(self, pvgis_response):
        data = extract_yield_data(pvgis_response)
        assert len(data.monthly_yield) == 12
        assert data.annual_yield == pytest.approx(sum(data.monthly_yield))
        assert data.location["latitude"] == 51.5


# ======================================================================
# Client behaviour
# ======================================================================

class TestFetchRemoteYield:
    async def test_success_and_query(self, mock_pvgis, pvgis_response):
        recording = mock_pvgis(json=pvgis_response)
        result = await _client(recording).fetch_remote_yield(LONDON)

        assert result["outputs"]["totals"]["fixed"]["E_y"] == pvgis_response["outputs"]["totals"]["fixed"]["E_y"]
        assert recording.call_count == 1

        request = recording.requests[0]
        assert request.url.path.endswith("/PVcalc")
        params = request.url.params
        assert float(params["lat"]) == 51.5
        assert float(params["lon"]) == -0.12
        assert float(params["peakpower"]) == 1000.0
        assert float(params["loss"]) == 14.0
        assert float(params["angle"]) == 35.0
        assert float(params["aspect"]) == 0.0
        assert params["mountingplace"] == "free"
        assert params["outputformat"] == "json"
        assert "raddatabase" not in params

    async def test_database_passed_through(self, mock_pvgis):
        recording = mock_pvgis()
        params = PVGISRequestParams(51.5, -0.12, 1000.0, 14.0, 35.0, 0.0, database="PVGIS-SARAH2")
        await _client(recording).fetch_remote_yield(params)
        assert recording.requests[0].url.params["raddatabase"] == "PVGIS-SARAH2"

    async def test_second_call_served_from_cache(self, mock_pvgis):
        recording = mock_pvgis()
        client = _client(recording)

        first = await client.fetch_remote_yield(LONDON)
        second = await client.fetch_remote_yield(LONDON)

        assert first == second
        assert recording.call_count == 1

    async def test_small_capacities_cached_separately(self, mock_pvgis):
        recording = mock_pvgis()
        client = _client(recording)
        small = PVGISRequestParams(51.5, -0.12, 0.6, 14.0, 35.0, 0.0)
        larger = PVGISRequestParams(51.5, -0.12, 1.4, 14.0, 35.0, 0.0)

        assert make_cache_key(small) != make_cache_key(larger)
        await client.fetch_remote_yield(small)
        await client.fetch_remote_yield(larger)

        assert recording.call_count == 2
        assert [float(r.url.params["peakpower"]) for r in recording.requests] == [0.6, 1.4]

    async def test_use_cache_false_bypasses_cache(self, mock_pvgis):
        recording = mock_pvgis()
        cache = InMemoryCacheStore()
        client = _client(recording, cache)

        await client.fetch_remote_yield(LONDON, use_cache=False)
        await client.fetch_remote_yield(LONDON, use_cache=False)

        assert recording.call_count == 2
        assert len(cache) == 0

    async def test_expired_entry_refetched(self, mock_pvgis, fake_clock):
        recording = mock_pvgis()
        client = PVGISClient(
            cache=InMemoryCacheStore(clock=fake_clock),
            cache_ttl_seconds=100.0,
            transport=recording.transport,
        )
        await client.fetch_remote_yield(LONDON)
        fake_clock.advance(101.0)
        await client.fetch_remote_yield(LONDON)
        assert recording.call_count == 2

    async def test_clear_cache(self, mock_pvgis):
        recording = mock_pvgis()
        cache = InMemoryCacheStore()
        client = _client(recording, cache)
        await client.fetch_remote_yield(LONDON)
        await client.clear_cache()
        assert len(cache) == 0


class TestErrorMapping:
    async def test_timeout(self, mock_pvgis):
        recording = mock_pvgis(exc=httpx.ReadTimeout("timed out"))
        with pytest.raises(RemoteTimeoutError) as info:
            await _client(recording).fetch_remote_yield(LONDON)
        assert isinstance(info.value, TimeoutError)
        assert isinstance(info.value, RemoteServiceError)

    async def test_connection_error_is_service_error(self, mock_pvgis):
        recording = mock_pvgis(exc=httpx.ConnectError("connection refused"))
        with pytest.raises(ServiceError) as info:
            await _client(recording).fetch_remote_yield(LONDON)
        assert not isinstance(info.value, CoverageError)

    async def test_400_location_is_coverage_error(self, mock_pvgis):
        recording = mock_pvgis(status_code=400, text='{"message": "Location over the sea"}')
        with pytest.raises(CoverageError, match="outside PVGIS coverage"):
            await _client(recording).fetch_remote_yield(LONDON)

    async def test_other_400_is_coverage_error(self, mock_pvgis):
        recording = mock_pvgis(status_code=400, text="bad peakpower")
        with pytest.raises(CoverageError, match="bad peakpower"):
            await _client(recording).fetch_remote_yield(LONDON)

    async def test_500_is_service_error(self, mock_pvgis):
        recording = mock_pvgis(status_code=500, text="boom")
        with pytest.raises(ServiceError) as info:
            await _client(recording).fetch_remote_yield(LONDON)
        assert info.value.status_code == 500
        assert "500" in str(info.value)

    async def test_invalid_json(self, mock_pvgis):
        recording = mock_pvgis(status_code=200, text="<html>maintenance</html>")
        with pytest.raises(MalformedResponseError):
            await _client(recording).fetch_remote_yield(LONDON)

    async def test_malformed_response_not_cached(self, mock_pvgis, pvgis_response):
        pvgis_response["outputs"]["monthly"]["fixed"] = pvgis_response["outputs"]["monthly"]["fixed"][:11]
        recording = mock_pvgis(json=pvgis_response)
        cache = InMemoryCacheStore()
        with pytest.raises(MalformedResponseError):
            await _client(recording, cache).fetch_remote_yield(LONDON)
        assert len(cache) == 0

    async def test_cancellation_leaves_cache_untouched(self, make_response):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await release.wait()
            return httpx.Response(200, json=make_response())

        cache = InMemoryCacheStore()
        client = PVGISClient(cache=cache, transport=httpx.MockTransport(slow_handler))

        task = asyncio.create_task(client.fetch_remote_yield(LONDON))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(cache) == 0


async def test_mutating_result_does_not_touch_cache(mock_pvgis):
    recording = mock_pvgis()
    client = _client(recording)

    first = await client.fetch_remote_yield(LONDON)
    first["outputs"]["monthly"]["fixed"].clear()

    second = await client.fetch_remote_yield(LONDON)
    assert len(second["outputs"]["monthly"]["fixed"]) == 12
    assert recording.call_count == 1
