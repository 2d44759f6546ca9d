"""
Unit tests for the upstream clients.

respx mocks for httpx: request shape, normalisation to the
dashboard layouts, and HTTP error propagation.
"""

import httpx
import pytest
import respx
from httpx import Response

from rawdahscope.api.services.client_factory import ClientFactory
from rawdahscope.api.services.http_client import create_async_client
from rawdahscope.api.services.landsat import LandsatClient
from rawdahscope.api.services.met_norway import (
    METNorwayClient,
    METNorwayConfig,
)
from rawdahscope.api.services.modis import MODISClient
from rawdahscope.api.services.nasa_power import NASAPowerClient
from rawdahscope.api.services.openmeteo_air_quality import (
    OpenMeteoAirQualityClient,
)
from rawdahscope.api.services.openmeteo_archive import OpenMeteoArchiveClient
from rawdahscope.api.services.openmeteo_forecast import (
    OpenMeteoForecastClient,
    OpenMeteoForecastConfig,
)
from rawdahscope.api.services.openweathermap import OpenWeatherMapAirClient
from rawdahscope.api.services.waqi import WAQIClient, WAQIConfig

LAT, LNG = 24.7136, 46.6753

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
MET_URL = "https://api.met.no/weatherapi/locationforecast/2.0/compact"


def met_step(time: str, temperature: float) -> dict:
    return {
        "time": time,
        "data": {
            "instant": {
                "details": {
                    "air_temperature": temperature,
                    "relative_humidity": 20.0,
                    "wind_speed": 5.0,
                    "air_pressure_at_sea_level": 1010.0,
                }
            }
        },
    }


# ============================================================================
# SHARED HTTP CLIENT
# ============================================================================


def test_every_client_has_timeout_and_user_agent():
    client = OpenMeteoForecastClient(
        OpenMeteoForecastConfig(timeout=4.0, user_agent="test-agent/1.0")
    )

    assert client.client.timeout.read == 4.0
    assert client.client.headers["User-Agent"] == "test-agent/1.0"


def test_create_async_client_defaults():
    client = create_async_client()

    assert client.timeout.connect == 10.0
    assert "RawdahScope" in client.headers["User-Agent"]


def test_factory_keeps_met_norway_identifying_agent(settings):
    generic = settings.model_copy(update={"user_agent": "generic/2.0"})

    met = ClientFactory.create_met_norway(generic)
    forecast = ClientFactory.create_openmeteo_forecast(generic)

    assert met.client.headers["User-Agent"] == METNorwayConfig().user_agent
    assert forecast.client.headers["User-Agent"] == "generic/2.0"
    assert met.client.timeout.read == generic.http_timeout


def test_factory_applies_met_norway_agent_override(settings):
    contact = "rawdahscope/1.0 ops@example.org"
    custom = settings.model_copy(update={"met_norway_user_agent": contact})

    met = ClientFactory.create_met_norway(custom)

    assert met.client.headers["User-Agent"] == contact


# ============================================================================
# OPEN-METEO
# ============================================================================


@pytest.mark.asyncio
async def test_forecast_weather_bundle_request_and_tagging():
    client = OpenMeteoForecastClient()

    with respx.mock:
        route = respx.get(FORECAST_URL).mock(
            return_value=Response(
                200, json={"current": {"temperature_2m": 38.5}, "daily": {}}
            )
        )
        data = await client.get_weather_bundle(LAT, LNG)

    params = route.calls.last.request.url.params
    assert params["past_days"] == "3"
    assert params["forecast_days"] == "3"
    assert params["timezone"] == "Asia/Riyadh"
    assert "apparent_temperature" in params["current"]
    assert data["source"] == "open-meteo"
    assert data["current"]["temperature_2m"] == 38.5
    assert "timestamp" in data
    await client.close()


@pytest.mark.asyncio
async def test_forecast_http_error_propagates():
    client = OpenMeteoForecastClient()

    with respx.mock:
        respx.get(FORECAST_URL).mock(return_value=Response(503))
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_current_temperature(LAT, LNG)


@pytest.mark.asyncio
async def test_recent_daily_caps_past_days():
    client = OpenMeteoForecastClient()

    with respx.mock:
        route = respx.get(FORECAST_URL).mock(
            return_value=Response(200, json={"daily": {"time": ["2025-01-01"]}})
        )
        data = await client.get_recent_daily(
            LAT, LNG, ["temperature_2m_max"], past_days=200
        )

    assert route.calls.last.request.url.params["past_days"] == "92"
    assert data["source"] == "open-meteo-current"


@pytest.mark.asyncio
async def test_archive_rejects_reversed_range_without_request():
    client = OpenMeteoArchiveClient()

    with respx.mock(assert_all_called=False) as mock:
        route = mock.get("https://archive-api.open-meteo.com/v1/archive").mock(
            return_value=Response(200, json={"daily": {"time": []}})
        )
        with pytest.raises(ValueError):
            await client.get_daily(LAT, LNG, "2024-02-01", "2024-01-01")

    assert not route.called


@pytest.mark.asyncio
async def test_archive_year_uses_era5():
    client = OpenMeteoArchiveClient()

    with respx.mock:
        route = respx.get("https://archive-api.open-meteo.com/v1/archive").mock(
            return_value=Response(200, json={"daily": {"time": ["2020-01-01"]}})
        )
        data = await client.get_year(LAT, LNG, 2020)

    params = route.calls.last.request.url.params
    assert params["start_date"] == "2020-01-01"
    assert params["end_date"] == "2020-12-31"
    assert params["models"] == "era5"
    assert "temperature_2m_mean" in params["daily"]
    assert data["source"] == "open-meteo-archive"


def test_air_quality_normalisation_skips_nulls_and_converts_co():
    data = {
        "hourly": {
            "time": ["2025-01-01T00:00", "2025-01-01T01:00"],
            "pm2_5": [12.0, None],
            "carbon_monoxide": [400.0, 600.0],
        }
    }

    results = OpenMeteoAirQualityClient.normalize(
        data, {"pm25": "pm2_5", "co": "carbon_monoxide"}
    )

    assert len(results) == 3
    assert results[0] == {
        "parameter": "pm25",
        "value": 12.0,
        "unit": "µg/m³",
        "date": {"utc": "2025-01-01T00:00:00Z"},
    }
    assert [r["value"] for r in results[1:]] == [0.4, 0.6]
    assert {r["unit"] for r in results[1:]} == {"mg/m³"}


@pytest.mark.asyncio
async def test_air_quality_rejects_unknown_pollutants():
    client = OpenMeteoAirQualityClient()

    with pytest.raises(ValueError):
        await client.get_window(LAT, LNG, "2025-01-01", "2025-01-07", ["xyz"])


# ============================================================================
# MET NORWAY
# ============================================================================


def test_met_norway_bundle_aggregates_local_days():
    data = {
        "properties": {
            "timeseries": [
                # 21:00 UTC is already the next day in Riyadh (UTC+3)
                met_step("2025-07-01T12:00:00Z", 44.0),
                met_step("2025-07-01T18:00:00Z", 38.0),
                met_step("2025-07-01T21:00:00Z", 35.0),
                met_step("2025-07-02T03:00:00Z", 31.0),
            ]
        }
    }

    bundle = METNorwayClient.to_weather_bundle(data, "Asia/Riyadh")

    assert bundle["source"] == "met-norway"
    assert bundle["current"]["temperature_2m"] == 44.0
    assert bundle["current"]["wind_speed_10m"] == 18.0
    assert bundle["current"]["apparent_temperature"] is None
    assert bundle["daily"]["time"] == ["2025-07-01", "2025-07-02"]
    assert bundle["daily"]["temperature_2m_max"] == [44.0, 35.0]
    assert bundle["daily"]["temperature_2m_min"] == [38.0, 31.0]
    assert bundle["daily"]["temperature_2m_mean"] == [41.0, 33.0]


def test_met_norway_empty_timeseries_has_null_temperature():
    bundle = METNorwayClient.to_weather_bundle({"properties": {}})

    assert bundle["current"]["temperature_2m"] is None
    assert bundle["daily"]["time"] == []


@pytest.mark.asyncio
async def test_met_norway_rounds_coordinates():
    client = METNorwayClient()

    with respx.mock:
        route = respx.get(MET_URL).mock(
            return_value=Response(
                200,
                json={
                    "properties": {
                        "timeseries": [met_step("2025-07-01T12:00:00Z", 40.0)]
                    }
                },
            )
        )
        data = await client.get_current_temperature(24.713612345, 46.67531234)

    params = route.calls.last.request.url.params
    assert params["lat"] == "24.7136"
    assert params["lon"] == "46.6753"
    assert data["current"]["temperature_2m"] == 40.0


# ============================================================================
# AIR QUALITY SNAPSHOTS
# ============================================================================


@pytest.mark.asyncio
async def test_waqi_feed_normalised():
    client = WAQIClient(WAQIConfig(token="secret"))

    with respx.mock:
        route = respx.get(f"https://api.waqi.info/feed/geo:{LAT};{LNG}/").mock(
            return_value=Response(
                200,
                json={
                    "status": "ok",
                    "data": {"iaqi": {"pm25": {"v": 55}, "co": {"v": 1.2}}},
                },
            )
        )
        data = await client.get_geo_feed(LAT, LNG)

    assert route.calls.last.request.url.params["token"] == "secret"
    assert data["source"] == "waqi"
    assert [(r["parameter"], r["value"], r["unit"]) for r in data["results"]] == [
        ("pm25", 55, "AQI"),
        ("co", 1.2, "AQI"),
    ]


def test_waqi_error_status_gives_no_results():
    assert WAQIClient.normalize({"status": "error", "data": "Unknown"}, ["pm25"]) == []


def test_openweathermap_normalisation():
    data = {
        "list": [
            {
                "dt": 1_700_000_000,
                "components": {"pm2_5": 20.5, "co": 350.0, "no2": 10.0},
            }
        ]
    }

    results = OpenWeatherMapAirClient.normalize(data, ["pm25", "co", "so2"])

    assert [(r["parameter"], r["value"]) for r in results] == [
        ("pm25", 20.5),
        ("co", 0.35),
    ]
    assert results[0]["date"]["utc"].startswith("2023-11-14")


def test_openweathermap_empty_list():
    assert OpenWeatherMapAirClient.normalize({"list": []}, ["pm25"]) == []


# ============================================================================
# NASA POWER
# ============================================================================


@pytest.mark.asyncio
async def test_nasa_power_year_shaped_like_daily_payload():
    client = NASAPowerClient()
    payload = {
        "properties": {
            "parameter": {
                "T2M": {"20200101": 15.0, "20200102": -999.0},
                "T2M_MAX": {"20200101": 21.0, "20200102": 22.0},
                "T2M_MIN": {"20200101": 9.0, "20200102": 10.0},
                "PRECTOTCORR": {"20200101": 0.0, "20200102": 3.5},
            }
        }
    }

    with respx.mock:
        route = respx.get(
            "https://power.larc.nasa.gov/api/temporal/daily/point"
        ).mock(return_value=Response(200, json=payload))
        data = await client.get_year(LAT, LNG, 2020)

    params = route.calls.last.request.url.params
    assert params["start"] == "20200101"
    assert params["end"] == "20201231"
    assert params["community"] == "AG"
    assert data["source"] == "nasa-power"
    assert data["daily"]["time"] == ["2020-01-01", "2020-01-02"]
    assert data["daily"]["temperature_2m_mean"] == [15.0, None]
    assert data["daily"]["precipitation_sum"] == [0.0, 3.5]


def test_nasa_power_invalid_body():
    with pytest.raises(ValueError):
        NASAPowerClient()._parse_response({"messages": ["error"]})


# ============================================================================
# VEGETATION
# ============================================================================


def test_modis_median_of_valid_pixels_scaled_and_clamped():
    data = {
        "subset": [
            {"calendar_date": "2023-01-01", "data": [2000]},
            {"calendar_date": "2023-01-17", "data": [-3000]},
            {"calendar_date": "2023-02-02", "data": [3000]},
            {"calendar_date": "2023-02-18", "data": [2500]},
        ]
    }

    result = MODISClient.summarize(data, 2023)

    assert result["ndvi"] == pytest.approx(0.25)
    assert result["quality_pixels"] == 3
    assert result["acquisition_date"] == "2023-01-01"
    assert result["data_source"] == "NASA MODIS MOD13Q1"

    high = MODISClient.summarize({"subset": [{"data": [9500]}]}, 2023)
    low = MODISClient.summarize({"subset": [{"data": [100]}]}, 2023)
    assert high["ndvi"] == 0.8
    assert low["ndvi"] == 0.1


def test_modis_without_valid_pixels_has_no_ndvi():
    result = MODISClient.summarize({"subset": [{"data": [-3000]}]}, 2023)

    assert result["ndvi"] is None


@pytest.mark.asyncio
async def test_modis_request_shape():
    client = MODISClient()

    with respx.mock:
        route = respx.get("https://modis.ornl.gov/rst/api/v1/MOD13Q1/subset").mock(
            return_value=Response(200, json={"subset": []})
        )
        await client.get_yearly_ndvi(LAT, LNG, 2022)

    params = route.calls.last.request.url.params
    assert params["startDate"] == "A2022001"
    assert params["endDate"] == "A2022365"
    assert params["kmAboveBelow"] == "0"


def test_landsat_estimate():
    scenes = [
        {"cloudCover": 10, "acquisitionDate": "2023-03-01"},
        {"cloudCover": 30, "acquisitionDate": "2023-04-01"},
    ]

    result = LandsatClient.estimate_from_scenes(scenes, 2023)

    # 0.4 - 0.2 * 0.2 + 2/20 * 0.1
    assert result["ndvi"] == pytest.approx(0.37)
    assert result["scene_count"] == 2
    assert result["data_source"] == "USGS Landsat 8 (estimated)"


def test_landsat_estimate_is_capped():
    scenes = [{"cloudCover": 0}] * 200

    assert LandsatClient.estimate_from_scenes(scenes, 2023)["ndvi"] == 0.7


def test_landsat_without_scenes():
    assert LandsatClient.estimate_from_scenes([], 2023)["ndvi"] is None

