"""
Open-Meteo Forecast API client.

Serves three source chains:
- Weather bundle: current + hourly + daily, 3 past days and 3 forecast days
- Point temperature: current temperature and apparent temperature only
- Recent daily climate: up to 92 past days (climate-daily fallback)

API: https://open-meteo.com/en/docs
License: CC BY 4.0 (attribution required)
No API key required.

Open-Meteo answers with HTTP 200 even when a field is unavailable; the
value is then ``null``. Callers validate the fields they need.
"""

import time
from typing import Any

from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

WEATHER_CURRENT = [
    "temperature_2m",
    "relative_humidity_2m",
    "surface_pressure",
    "wind_speed_10m",
    "weathercode",
    "apparent_temperature",
]
WEATHER_HOURLY = [
    "temperature_2m",
    "relative_humidity_2m",
    "surface_pressure",
    "apparent_temperature",
]
WEATHER_DAILY = [
    "temperature_2m_max",
    "temperature_2m_min",
    "temperature_2m_mean",
    "weathercode",
    "apparent_temperature_max",
    "apparent_temperature_min",
]
POINT_CURRENT = ["temperature_2m", "apparent_temperature"]


class OpenMeteoForecastConfig(ClientConfig):
    """Open-Meteo Forecast API configuration."""

    base_url: str = "https://api.open-meteo.com/v1/forecast"
    past_days: int = 3
    forecast_days: int = 3
    max_past_days: int = 92


class OpenMeteoForecastClient(AsyncJSONClient):
    """Async client for the Open-Meteo forecast endpoint."""

    def __init__(self, config: OpenMeteoForecastConfig | None = None):
        super().__init__(config or OpenMeteoForecastConfig())

    async def get_weather_bundle(
        self, lat: float, lon: float, timezone: str = "Asia/Riyadh"
    ) -> dict[str, Any]:
        """
        Fetch current conditions plus hourly and daily series.

        Args:
            lat: Latitude
            lon: Longitude
            timezone: IANA timezone used for the daily buckets

        Returns:
            Raw Open-Meteo payload tagged with ``source`` and ``timestamp``
        """
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": ",".join(WEATHER_CURRENT),
            "hourly": ",".join(WEATHER_HOURLY),
            "daily": ",".join(WEATHER_DAILY),
            "timezone": timezone,
            "past_days": self.config.past_days,
            "forecast_days": self.config.forecast_days,
        }
        logger.info(f"Open-Meteo Forecast request: lat={lat}, lon={lon}")
        data = await self._get_json(self.config.base_url, params)
        return {**data, "source": "open-meteo", "timestamp": time.time()}

    async def get_current_temperature(
        self, lat: float, lon: float, timezone: str = "Asia/Riyadh"
    ) -> dict[str, Any]:
        """Fetch current temperature and apparent temperature at a point."""
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": ",".join(POINT_CURRENT),
            "timezone": timezone,
        }
        data = await self._get_json(self.config.base_url, params)
        return {**data, "source": "open-meteo"}

    async def get_recent_daily(
        self,
        lat: float,
        lon: float,
        daily: list[str],
        timezone: str = "Asia/Riyadh",
        past_days: int | None = None,
    ) -> dict[str, Any]:
        """
        Fetch daily variables for the recent past (forecast model history).

        Args:
            lat: Latitude
            lon: Longitude
            daily: Open-Meteo daily variable names
            timezone: IANA timezone
            past_days: Days of history (capped at 92 by the API)

        Returns:
            Raw payload tagged ``source="open-meteo-current"``
        """
        past_days = past_days or self.config.max_past_days
        if past_days > self.config.max_past_days:
            logger.warning(
                f"past_days={past_days} exceeds API maximum, using "
                f"{self.config.max_past_days}"
            )
            past_days = self.config.max_past_days

        params = {
            "latitude": lat,
            "longitude": lon,
            "daily": ",".join(daily),
            "timezone": timezone,
            "past_days": past_days,
            "forecast_days": 1,
        }
        data = await self._get_json(self.config.base_url, params)
        return {**data, "source": "open-meteo-current"}
