"""
Open-Meteo Archive API client (ERA5 reanalysis).

API: https://open-meteo.com/en/docs/historical-weather-api
License: CC BY 4.0 (attribution required)

Coverage:
- Period: 1940-01-01 to (today - 2 days)
- Global, 0.25° ERA5 grid
"""

from datetime import date, datetime, timedelta
from typing import Any

from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

CLIMATE_DAILY_DEFAULT = [
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
]
CLIMATE_YEAR_DAILY = [
    "temperature_2m_max",
    "temperature_2m_min",
    "temperature_2m_mean",
    "precipitation_sum",
]


class OpenMeteoArchiveConfig(ClientConfig):
    """Open-Meteo Archive API configuration."""

    base_url: str = "https://archive-api.open-meteo.com/v1/archive"
    model: str = "era5"
    min_date: date = date(1940, 1, 1)
    delay_days: int = 2


class OpenMeteoArchiveClient(AsyncJSONClient):
    """Async client for ERA5 daily history."""

    def __init__(self, config: OpenMeteoArchiveConfig | None = None):
        super().__init__(config or OpenMeteoArchiveConfig())

    async def get_daily(
        self,
        lat: float,
        lon: float,
        start_date: str,
        end_date: str,
        daily: list[str] | None = None,
        timezone: str = "Asia/Riyadh",
    ) -> dict[str, Any]:
        """
        Fetch daily archive data for a date range.

        Args:
            lat: Latitude
            lon: Longitude
            start_date: First day (YYYY-MM-DD)
            end_date: Last day (YYYY-MM-DD)
            daily: Daily variables (defaults to max/min temperature and
                precipitation)
            timezone: IANA timezone

        Returns:
            Raw payload tagged ``source="open-meteo-archive"``

        Raises:
            ValueError: If the date range is malformed or reversed
        """
        self._validate_dates(start_date, end_date)
        params = {
            "latitude": lat,
            "longitude": lon,
            "start_date": start_date,
            "end_date": end_date,
            "daily": ",".join(daily or CLIMATE_DAILY_DEFAULT),
            "timezone": timezone,
            "models": self.config.model,
        }
        logger.info(
            f"Open-Meteo Archive request: lat={lat}, lon={lon}, "
            f"{start_date} to {end_date}"
        )
        data = await self._get_json(self.config.base_url, params)
        return {**data, "source": "open-meteo-archive"}

    async def get_year(
        self, lat: float, lon: float, year: int, timezone: str = "Asia/Riyadh"
    ) -> dict[str, Any]:
        """Fetch one calendar year of daily temperature and precipitation."""
        start, end = f"{year}-01-01", f"{year}-12-31"
        last_available = date.today() - timedelta(days=self.config.delay_days)
        if date(year, 12, 31) > last_available:
            end = last_available.isoformat()
        return await self.get_daily(
            lat, lon, start, end, daily=CLIMATE_YEAR_DAILY, timezone=timezone
        )

    def _validate_dates(self, start_date: str, end_date: str):
        try:
            start = datetime.strptime(start_date, "%Y-%m-%d").date()
            end = datetime.strptime(end_date, "%Y-%m-%d").date()
        except ValueError as e:
            raise ValueError(f"Dates must be YYYY-MM-DD: {e}") from e

        if start > end:
            raise ValueError(f"start_date {start_date} is after {end_date}")
        if start < self.config.min_date:
            raise ValueError(
                f"start_date {start_date} precedes archive coverage "
                f"({self.config.min_date})"
            )
