"""
Unit tests for the dashboard coordinator: per-domain isolation, stale-data
retention, force refresh and the background loop.
"""

import asyncio
from datetime import timedelta

import pytest

from rawdahscope.api.services.source_chain import NoRealDataAvailable
from rawdahscope.core.dashboard import (
    DashboardCoordinator,
    Domain,
    DomainState,
)


class FakeService:
    """In-memory stand-in for EnvironmentalDataService."""

    def __init__(self, cache, today):
        self.cache = cache
        self.today = today
        self.aq_windows = []
        self.fail = set()
        self.empty = set()
        self.ndvi_calls = 0

    def _check(self, name):
        if name in self.fail:
            raise NoRealDataAvailable(name, 1, ConnectionError("down"))

    async def fetch_current_temp_at(self, lat, lng):
        self._check("point_temperature")
        return {"current": {"temperature_2m": 41.0}, "source": "open-meteo"}

    async def fetch_air_quality_window(self, lat, lng, start, end):
        self.aq_windows.append((start, end))
        window = "aq_now" if end == self.today else "aq_prev"
        self._check(window)
        value = 30.0 if window == "aq_now" else 40.0
        return {
            "results": [{"parameter": "pm25", "value": value, "unit": "µg/m³"}],
            "source": "open-meteo-air-quality",
        }

    async def fetch_weather_data(self, lat, lng):
        self._check("weather")
        if "weather" in self.empty:
            return {"daily": {"time": []}}
        mean = 38.0 if lat > 24.65 else 42.0
        return {
            "daily": {
                "time": [self.today.isoformat()],
                "temperature_2m_mean": [mean],
            }
        }

    async def fetch_satellite_ndvi(self, lat, lng, year):
        self.ndvi_calls += 1
        self._check("vegetation_index")
        await asyncio.sleep(0)
        return {"ndvi": 0.3, "data_source": "NASA MODIS MOD13Q1"}


class GatedSleep:
    """Batch pauses return at once; the refresh interval blocks after one pass."""

    def __init__(self):
        self.calls = []
        self.intervals = 0

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if seconds >= 60:
            self.intervals += 1
            if self.intervals > 1:
                await asyncio.Event().wait()


@pytest.fixture
def service(cache, settings):
    return FakeService(cache, settings.local_today())


@pytest.fixture
def coordinator(service, settings, clock, sleep):
    return DashboardCoordinator(service, settings, clock=clock, sleep=sleep)


@pytest.mark.asyncio
async def test_fetch_all_success(coordinator, clock):
    snapshot = await coordinator.fetch_all()

    assert set(snapshot) == {d.value for d in Domain}
    assert all(s["state"] == "success" for s in snapshot.values())
    assert coordinator.last_updated == clock()

    aq = snapshot["air_quality"]["last_payload"]
    assert aq["current_aqi"] == 30
    assert aq["pollutants"][0]["trend"] == "improving"

    surface = snapshot["surface_temperature"]["last_payload"]
    assert surface[0]["difference"] == 4.0

    freshness = snapshot["heat_map"]["freshness"]
    assert freshness["age_bucket"] == "fresh"
    assert freshness["confidence_percent"] == 100


@pytest.mark.asyncio
async def test_failing_domain_does_not_affect_others(coordinator, service):
    service.fail = {"weather"}

    await coordinator.fetch_all()

    surface = coordinator.status(Domain.SURFACE_TEMPERATURE)
    assert surface.state == DomainState.ERROR
    assert "weather" in surface.last_error
    assert coordinator.status("heat_map").state == DomainState.SUCCESS
    assert coordinator.status("air_quality").state == DomainState.SUCCESS


@pytest.mark.asyncio
async def test_error_keeps_last_good_payload(coordinator, service, clock):
    await coordinator.refresh_one(Domain.AIR_QUALITY)
    good = coordinator.status(Domain.AIR_QUALITY)
    payload, stamp = good.last_payload, good.last_timestamp

    clock.advance(45 * 60)
    service.fail = {"aq_now", "aq_prev"}
    status = await coordinator.refresh_one(Domain.AIR_QUALITY)

    assert status.state == DomainState.ERROR
    assert status.last_payload == payload
    assert status.last_timestamp == stamp
    verdict = status.freshness(clock())
    assert verdict.age_bucket == "stale"
    assert verdict.confidence_percent == 60


@pytest.mark.asyncio
async def test_partial_air_quality_is_still_processed(coordinator, service):
    service.fail = {"aq_prev"}

    status = await coordinator.refresh_one("air_quality")

    assert status.state == DomainState.SUCCESS
    row = status.last_payload["pollutants"][0]
    assert row["before"] is None
    assert row["after"] == 30.0


@pytest.mark.asyncio
async def test_empty_result_is_no_data(coordinator, service, clock):
    await coordinator.refresh_one(Domain.SURFACE_TEMPERATURE)
    previous = coordinator.status(Domain.SURFACE_TEMPERATURE).last_payload

    clock.advance(60)
    service.empty = {"weather"}
    status = await coordinator.refresh_one(Domain.SURFACE_TEMPERATURE)

    assert status.state == DomainState.NO_DATA
    assert status.last_payload == previous
    assert status.last_timestamp == clock() - 60


@pytest.mark.asyncio
async def test_force_refresh_clears_cache(coordinator, cache):
    cache.set("weather:1:2", {"stale": True}, 10)

    await coordinator.fetch_all(force_refresh=True, domains=["heat_map"])

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_normal_refresh_keeps_cache(coordinator, cache):
    cache.set("weather:1:2", {"stale": True}, 10)

    await coordinator.fetch_all(domains=[Domain.HEAT_MAP])

    assert "weather:1:2" in cache


@pytest.mark.asyncio
async def test_vegetation_domains_share_one_ndvi_fetch(
    coordinator, service, settings
):
    await coordinator.fetch_all(
        domains=["vegetation_index", "forest_coverage", "carbon_estimate"]
    )

    assert service.ndvi_calls == settings.vegetation_years
    carbon = coordinator.status("carbon_estimate").last_payload
    assert len(carbon) == settings.vegetation_years


@pytest.mark.asyncio
async def test_total_exhaustion_is_an_error(coordinator, service):
    service.fail = {"vegetation_index", "point_temperature"}
    domains = [
        "heat_map",
        "vegetation_index",
        "forest_coverage",
        "carbon_estimate",
    ]

    await coordinator.fetch_all(domains=domains)

    for name in domains:
        status = coordinator.status(name)
        assert status.state == DomainState.ERROR
        assert "down" in status.last_error
    assert "vegetation_index" in coordinator.status("forest_coverage").last_error
    assert "point_temperature" in coordinator.status("heat_map").last_error


@pytest.mark.asyncio
async def test_windows_follow_dashboard_timezone(
    cache, settings, clock, sleep
):
    ends = []
    for tz in ("Pacific/Kiritimati", "Pacific/Honolulu"):
        local = settings.model_copy(update={"timezone": tz})
        service = FakeService(cache, local.local_today())
        coordinator = DashboardCoordinator(
            service, local, clock=clock, sleep=sleep
        )

        status = await coordinator.refresh_one("air_quality")

        assert status.state == DomainState.SUCCESS
        (now_start, now_end), (prev_start, prev_end) = sorted(
            service.aq_windows, key=lambda w: w[1], reverse=True
        )
        assert now_end == local.local_today()
        assert now_start == prev_end == now_end - timedelta(days=7)
        assert prev_start == now_end - timedelta(days=14)
        ends.append(now_end)

    # UTC+14 and UTC-10 are always one calendar day apart
    assert ends[0] - ends[1] == timedelta(days=1)


@pytest.mark.asyncio
async def test_unknown_domain(coordinator):
    with pytest.raises(ValueError):
        await coordinator.refresh_one("rainfall")


def test_initial_state_is_loading(coordinator):
    snapshot = coordinator.snapshot()

    assert all(s["state"] == "loading" for s in snapshot.values())
    assert snapshot["heat_map"]["freshness"]["display_label"] == "No data yet"
    assert coordinator.last_updated is None


def test_cache_stats_passthrough(coordinator, cache):
    cache.set("k", 1, 5)

    assert coordinator.cache_stats()["total_items"] == 1


@pytest.mark.asyncio
async def test_background_refresh_runs_live_domains(service, settings, clock):
    sleep = GatedSleep()
    coordinator = DashboardCoordinator(
        service, settings, clock=clock, sleep=sleep
    )

    coordinator.start()
    assert coordinator.is_running
    for _ in range(200):
        if coordinator.last_updated is not None:
            break
        await asyncio.sleep(0)

    assert coordinator.status("heat_map").state == DomainState.SUCCESS
    assert coordinator.status("vegetation_index").state == DomainState.LOADING
    assert sleep.calls[0] == settings.background_refresh_minutes * 60

    await coordinator.stop()
    assert not coordinator.is_running


@pytest.mark.asyncio
async def test_background_pass_purges_expired_entries(
    service, settings, cache, clock
):
    cache.set("weather:old", {"t": 1}, 1)
    clock.advance(120)
    cache.set("weather:new", {"t": 2}, 10)
    sleep = GatedSleep()
    coordinator = DashboardCoordinator(
        service, settings, clock=clock, sleep=sleep
    )

    coordinator.start()
    for _ in range(200):
        if coordinator.last_updated is not None:
            break
        await asyncio.sleep(0)
    await coordinator.stop()

    assert cache.purge_expired() == 0
    assert "weather:new" in cache
    assert cache.get_age("weather:old") is None


def test_purge_cache_reports_removed_count(coordinator, cache, clock):
    cache.set("a", 1, 1)
    cache.set("b", 2, 5)
    clock.advance(2 * 60)

    assert coordinator.purge_cache() == 1
    assert len(cache) == 1
