"""
MET Norway Locationforecast 2.0 client with hourly-to-daily aggregation.

Documentation:
- https://api.met.no/weatherapi/locationforecast/2.0/documentation
- https://docs.api.met.no/doc/locationforecast/datamodel.html

IMPORTANT:
- Locationforecast is GLOBAL (works anywhere)
- Returns HOURLY snapshots (UTC); daily values are aggregated here
- A User-Agent identifying the application is mandatory
- Coordinates must not carry more than 4 decimals

License: CC-BY 4.0 - Attribution required in all visualizations

The payload is reshaped into the Open-Meteo weather-bundle layout
(``current`` / ``hourly`` / ``daily``) so that the data processor does
not care which provider answered. MET Norway has no apparent
temperature, so those fields are ``None``.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx
import numpy as np
from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig


class METNorwayConfig(ClientConfig):
    """MET Norway API configuration."""

    base_url: str = "https://api.met.no/weatherapi/locationforecast/2.0"
    user_agent: str = "RawdahScope-Dashboard/1.0 (environmental dashboard)"
    max_keepalive_connections: int = 5
    max_connections: int = 10


class METNorwayClient(AsyncJSONClient):
    """Async client for the compact Locationforecast product."""

    def __init__(self, config: METNorwayConfig | None = None):
        config = config or METNorwayConfig()
        # MET Norway asks clients to keep connection counts low
        super().__init__(
            config,
            limits=httpx.Limits(
                max_keepalive_connections=config.max_keepalive_connections,
                max_connections=config.max_connections,
            ),
        )

    @staticmethod
    def _round_coordinates(lat: float, lon: float) -> tuple[float, float]:
        """Round to the 4 decimals accepted by the API."""
        return round(lat, 4), round(lon, 4)

    async def get_compact(self, lat: float, lon: float) -> dict[str, Any]:
        """Fetch the raw compact forecast for a point."""
        lat, lon = self._round_coordinates(lat, lon)
        logger.info(f"MET Norway request: lat={lat}, lon={lon}")
        return await self._get_json(
            f"{self.config.base_url}/compact",
            {"lat": lat, "lon": lon},
        )

    async def get_weather_bundle(
        self, lat: float, lon: float, timezone: str = "Asia/Riyadh"
    ) -> dict[str, Any]:
        """Fetch and reshape into the weather-bundle layout."""
        data = await self.get_compact(lat, lon)
        return self.to_weather_bundle(data, timezone)

    async def get_current_temperature(
        self, lat: float, lon: float, timezone: str = "Asia/Riyadh"
    ) -> dict[str, Any]:
        """Fetch the first instant temperature of the forecast."""
        data = await self.get_compact(lat, lon)
        bundle = self.to_weather_bundle(data, timezone)
        return {
            "current": {
                "time": bundle["current"]["time"],
                "temperature_2m": bundle["current"]["temperature_2m"],
                "apparent_temperature": None,
            },
            "source": "met-norway",
        }

    @classmethod
    def to_weather_bundle(
        cls, data: dict[str, Any], timezone: str = "Asia/Riyadh"
    ) -> dict[str, Any]:
        """
        Reshape a compact response into current/hourly/daily blocks.

        Args:
            data: Raw Locationforecast JSON
            timezone: Timezone used to assign hours to local days

        Returns:
            dict: Weather bundle; ``current.temperature_2m`` is ``None``
                when the response carries no time steps
        """
        tz = ZoneInfo(timezone)
        timeseries = data.get("properties", {}).get("timeseries", [])

        times, temps, humidity, pressure, wind = [], [], [], [], []
        for step in timeseries:
            details = (
                step.get("data", {}).get("instant", {}).get("details", {})
            )
            ts = datetime.fromisoformat(step["time"].replace("Z", "+00:00"))
            times.append(ts.astimezone(tz))
            temps.append(details.get("air_temperature"))
            humidity.append(details.get("relative_humidity"))
            pressure.append(details.get("air_pressure_at_sea_level"))
            wind.append(details.get("wind_speed"))

        if not times:
            logger.warning("MET Norway: no data")
            current = {"time": None, "temperature_2m": None}
        else:
            current = {
                "time": times[0].strftime("%Y-%m-%dT%H:%M"),
                "temperature_2m": temps[0],
                "relative_humidity_2m": humidity[0],
                "surface_pressure": pressure[0],
                # m/s -> km/h, Open-Meteo's default unit
                "wind_speed_10m": (
                    round(wind[0] * 3.6, 1) if wind[0] is not None else None
                ),
                "apparent_temperature": None,
            }

        return {
            "current": current,
            "hourly": {
                "time": [t.strftime("%Y-%m-%dT%H:%M") for t in times],
                "temperature_2m": temps,
                "relative_humidity_2m": humidity,
                "apparent_temperature": [None] * len(times),
            },
            "daily": cls.aggregate_daily(times, temps),
            "timezone": timezone,
            "source": "met-norway",
        }

    @staticmethod
    def aggregate_daily(
        times: list[datetime], temps: list[float | None]
    ) -> dict[str, list]:
        """Aggregate hourly temperatures to daily max/min/mean (numpy)."""
        by_day: dict[str, list[float]] = defaultdict(list)
        for ts, temp in zip(times, temps):
            if temp is not None:
                by_day[ts.date().isoformat()].append(temp)

        days = sorted(by_day)
        daily: dict[str, list] = {
            "time": days,
            "temperature_2m_max": [],
            "temperature_2m_min": [],
            "temperature_2m_mean": [],
        }
        for day in days:
            values = np.array(by_day[day], dtype=float)
            daily["temperature_2m_max"].append(
                round(float(np.max(values)), 1)
            )
            daily["temperature_2m_min"].append(
                round(float(np.min(values)), 1)
            )
            daily["temperature_2m_mean"].append(
                round(float(np.mean(values)), 1)
            )
        return daily
