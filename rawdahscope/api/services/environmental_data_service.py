"""
Environmental data service: one source chain per data domain.

Chains and their strategies, most authoritative first:

- weather:           Open-Meteo forecast -> MET Norway
- point_temperature: Open-Meteo current -> MET Norway
- air_quality:       WAQI -> OpenWeatherMap -> Open-Meteo air quality
- climate_daily:     Open-Meteo archive (ERA5) -> Open-Meteo 92 past days
- climate_year:      Open-Meteo archive (ERA5) -> NASA POWER
- vegetation_index:  MODIS -> Landsat inventory -> climate-based estimate

Cache TTL and retry budget per chain come from ``Settings.fetch_policies``.
Coordinates are validated before the chain runs, so invalid input is
rejected once instead of being retried.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Sequence

from loguru import logger

from config.settings.app_config import Settings, get_settings
from rawdahscope.api.services.client_factory import UpstreamClients
from rawdahscope.api.services.geographic_utils import (
    build_cache_key,
    validate_coordinates,
)
from rawdahscope.api.services.openmeteo_archive import CLIMATE_DAILY_DEFAULT
from rawdahscope.api.services.source_chain import (
    SourceChain,
    Strategy,
    require_fields,
    require_non_empty,
)
from rawdahscope.infrastructure.cache.ttl_cache import TTLCache
from rawdahscope.infrastructure.retry.retry_executor import RetryPolicy, Sleep

DEFAULT_POLLUTANTS = ["pm25", "pm10", "no2", "o3", "so2", "co"]

ESTIMATE_NDVI_MIN = 0.1
ESTIMATE_NDVI_MAX = 0.6


# ============================================================================
# REQUESTS
# ============================================================================


@dataclass(frozen=True)
class PointRequest:
    lat: float
    lng: float


@dataclass(frozen=True)
class AirQualityRequest:
    lat: float
    lng: float
    start_date: date
    end_date: date
    parameters: tuple[str, ...]

    def covers_today(self, today: date) -> bool:
        """Snapshot feeds only describe the present."""
        return self.end_date >= today - timedelta(days=1)


@dataclass(frozen=True)
class ClimateRequest:
    lat: float
    lng: float
    start_date: str
    end_date: str
    daily: tuple[str, ...]


@dataclass(frozen=True)
class YearRequest:
    lat: float
    lng: float
    year: int


# ============================================================================
# CLIMATE-BASED NDVI ESTIMATE
# ============================================================================


def estimate_ndvi_from_climate(
    climate: dict[str, Any], year: int
) -> dict[str, Any] | None:
    """
    Estimate NDVI for Riyadh from a year of daily climate.

    ``0.15 + min(0.25, P/500) - max(0, (T-30)/50) + 0.1``, clamped to
    0.1-0.6, where P is the annual precipitation sum (mm) and T the mean
    daily temperature (°C).

    Returns:
        dict or None when the climate series has no temperatures
    """
    daily = climate.get("daily") or {}
    precipitation = sum(v or 0 for v in daily.get("precipitation_sum") or [])
    means = [v for v in daily.get("temperature_2m_mean") or [] if v is not None]
    if not means:
        return None
    avg_temp = sum(means) / len(means)

    ndvi = 0.15
    ndvi += min(0.25, precipitation / 500)
    ndvi -= max(0.0, (avg_temp - 30) / 50)
    ndvi += 0.1  # urban greening programme
    ndvi = max(ESTIMATE_NDVI_MIN, min(ESTIMATE_NDVI_MAX, ndvi))

    return {
        "year": year,
        "ndvi": ndvi,
        "acquisition_date": f"{year}-06-15",
        "data_source": "Climate-based estimation",
        "temperature": avg_temp,
        "precipitation": precipitation,
        "climate_source": climate.get("source"),
    }


# ============================================================================
# SERVICE
# ============================================================================


class EnvironmentalDataService:
    """
    Per-domain fetch operations over cached, retried source chains.

    Args:
        clients: Upstream HTTP clients
        cache: Shared TTL cache (cleared by force refresh)
        settings: Application settings (policies, timezone)
        sleep: Awaitable sleep used for backoff waits (injectable)
    """

    def __init__(
        self,
        clients: UpstreamClients,
        cache: TTLCache,
        settings: Settings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.clients = clients
        self.cache = cache
        self.settings = settings or get_settings()
        self._sleep = sleep
        self.chains = self._build_chains()

    def _chain(self, name: str, strategies: Sequence[Strategy]) -> SourceChain:
        policy = self.settings.policy_for(name)
        return SourceChain(
            name=name,
            strategies=strategies,
            cache=self.cache,
            ttl_minutes=policy.ttl_minutes,
            retry_policy=RetryPolicy(
                retries=policy.retries,
                initial_delay=policy.initial_delay,
                backoff_factor=policy.backoff_factor,
                jitter=self.settings.retry_jitter,
            ),
            sleep=self._sleep,
        )

    def _build_chains(self) -> dict[str, SourceChain]:
        c = self.clients
        tz = self.settings.timezone
        has_temperature = require_fields("current", "temperature_2m")
        has_results = require_non_empty("results")
        has_days = require_non_empty("daily", "time")
        has_ndvi = require_fields("ndvi")

        def snapshot_only(fetch):
            async def _fetch(req: AirQualityRequest):
                if not req.covers_today(self.settings.local_today()):
                    return None
                return await fetch(req)

            return _fetch

        chains = [
            self._chain(
                "weather",
                [
                    Strategy(
                        "open-meteo",
                        lambda r: c.openmeteo_forecast.get_weather_bundle(
                            r.lat, r.lng, tz
                        ),
                        has_temperature,
                    ),
                    Strategy(
                        "met-norway",
                        lambda r: c.met_norway.get_weather_bundle(
                            r.lat, r.lng, tz
                        ),
                        has_temperature,
                    ),
                ],
            ),
            self._chain(
                "point_temperature",
                [
                    Strategy(
                        "open-meteo",
                        lambda r: c.openmeteo_forecast.get_current_temperature(
                            r.lat, r.lng, tz
                        ),
                        has_temperature,
                    ),
                    Strategy(
                        "met-norway",
                        lambda r: c.met_norway.get_current_temperature(
                            r.lat, r.lng, tz
                        ),
                        has_temperature,
                    ),
                ],
            ),
            self._chain(
                "air_quality",
                [
                    Strategy(
                        "waqi",
                        snapshot_only(
                            lambda r: c.waqi.get_geo_feed(
                                r.lat, r.lng, list(r.parameters)
                            )
                        ),
                        has_results,
                    ),
                    Strategy(
                        "openweathermap",
                        snapshot_only(
                            lambda r: c.openweathermap.get_air_pollution(
                                r.lat, r.lng, list(r.parameters)
                            )
                        ),
                        has_results,
                    ),
                    Strategy(
                        "open-meteo-air-quality",
                        lambda r: c.openmeteo_air_quality.get_window(
                            r.lat,
                            r.lng,
                            r.start_date.isoformat(),
                            r.end_date.isoformat(),
                            list(r.parameters),
                        ),
                        has_results,
                    ),
                ],
            ),
            self._chain(
                "climate_daily",
                [
                    Strategy(
                        "open-meteo-archive",
                        lambda r: c.openmeteo_archive.get_daily(
                            r.lat,
                            r.lng,
                            r.start_date,
                            r.end_date,
                            list(r.daily),
                            tz,
                        ),
                        has_days,
                    ),
                    Strategy(
                        "open-meteo-current",
                        lambda r: c.openmeteo_forecast.get_recent_daily(
                            r.lat, r.lng, list(r.daily), tz
                        ),
                        has_days,
                    ),
                ],
            ),
            self._chain(
                "climate_year",
                [
                    Strategy(
                        "open-meteo-archive",
                        lambda r: c.openmeteo_archive.get_year(
                            r.lat, r.lng, r.year, tz
                        ),
                        has_days,
                    ),
                    Strategy(
                        "nasa-power",
                        lambda r: c.nasa_power.get_year(r.lat, r.lng, r.year),
                        has_days,
                    ),
                ],
            ),
            self._chain(
                "vegetation_index",
                [
                    Strategy(
                        "modis",
                        lambda r: c.modis.get_yearly_ndvi(
                            r.lat, r.lng, r.year
                        ),
                        has_ndvi,
                    ),
                    Strategy(
                        "landsat",
                        lambda r: c.landsat.estimate_ndvi(
                            r.lat, r.lng, r.year
                        ),
                        has_ndvi,
                    ),
                    Strategy(
                        "climate-estimate",
                        self._estimate_ndvi,
                        has_ndvi,
                    ),
                ],
            ),
        ]
        return {chain.name: chain for chain in chains}

    async def _estimate_ndvi(self, req: YearRequest) -> dict[str, Any] | None:
        climate = await self.fetch_climate_for_year(req.lat, req.lng, req.year)
        return estimate_ndvi_from_climate(climate, req.year)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def fetch_weather_data(
        self, lat: float, lng: float, use_cache: bool = True
    ) -> dict[str, Any]:
        """Current/hourly/daily weather bundle (3 past + 3 forecast days)."""
        validate_coordinates(lat, lng)
        key = build_cache_key("weather", lat, lng)
        return await self.chains["weather"].fetch(
            key, PointRequest(lat, lng), use_cache
        )

    async def fetch_current_temp_at(
        self, lat: float, lng: float, use_cache: bool = True
    ) -> dict[str, Any]:
        """Current temperature (and apparent temperature when known)."""
        validate_coordinates(lat, lng)
        key = build_cache_key("point_temperature", lat, lng)
        return await self.chains["point_temperature"].fetch(
            key, PointRequest(lat, lng), use_cache
        )

    async def fetch_air_quality_window(
        self,
        lat: float,
        lng: float,
        start_date: date,
        end_date: date,
        parameters: Sequence[str] = DEFAULT_POLLUTANTS,
    ) -> dict[str, Any]:
        """
        Pollutant measurements for a date window.

        Snapshot feeds (WAQI, OpenWeatherMap) only answer windows that end
        today; older windows go straight to the Open-Meteo time series.

        Returns:
            ``{"results": [{parameter, value, unit, date}], "source": ...}``
        """
        validate_coordinates(lat, lng)
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after {end_date}")
        params = tuple(p.lower() for p in parameters)
        key = build_cache_key(
            "air_quality", lat, lng, start_date, end_date, params
        )
        return await self.chains["air_quality"].fetch(
            key, AirQualityRequest(lat, lng, start_date, end_date, params)
        )

    async def fetch_climate_daily(
        self,
        lat: float,
        lng: float,
        start_date: str,
        end_date: str,
        daily: Sequence[str] = CLIMATE_DAILY_DEFAULT,
    ) -> dict[str, Any]:
        """Daily climate variables between two ISO dates."""
        validate_coordinates(lat, lng)
        key = build_cache_key(
            "climate_daily", lat, lng, start_date, end_date, tuple(daily)
        )
        return await self.chains["climate_daily"].fetch(
            key,
            ClimateRequest(lat, lng, start_date, end_date, tuple(daily)),
        )

    async def fetch_climate_for_year(
        self, lat: float, lng: float, year: int
    ) -> dict[str, Any]:
        """One calendar year of daily temperature and precipitation."""
        validate_coordinates(lat, lng)
        key = build_cache_key("climate_year", lat, lng, year)
        return await self.chains["climate_year"].fetch(
            key, YearRequest(lat, lng, year)
        )

    async def fetch_satellite_ndvi(
        self, lat: float, lng: float, year: int
    ) -> dict[str, Any]:
        """Yearly NDVI: satellite observation, or a labelled estimate."""
        validate_coordinates(lat, lng)
        key = build_cache_key("vegetation_index", lat, lng, year)
        result = await self.chains["vegetation_index"].fetch(
            key, YearRequest(lat, lng, year)
        )
        logger.debug(
            f"NDVI {year}: {result['ndvi']:.3f} ({result.get('data_source')})"
        )
        return result
