"""
OpenWeatherMap Air Pollution API client.

API: https://openweathermap.org/api/air-pollution

Components are µg/m³; CO is converted to mg/m³ to match Open-Meteo.
"""

from datetime import datetime, timezone
from typing import Any

from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

# dashboard parameter -> OWM component
COMPONENT_MAP = {
    "pm25": "pm2_5",
    "pm10": "pm10",
    "no2": "no2",
    "o3": "o3",
    "so2": "so2",
    "co": "co",
}


class OpenWeatherMapConfig(ClientConfig):
    """OpenWeatherMap configuration."""

    base_url: str = "https://api.openweathermap.org/data/2.5/air_pollution"
    api_key: str = "demo"


class OpenWeatherMapAirClient(AsyncJSONClient):
    """Async client for current air pollution at a point."""

    def __init__(self, config: OpenWeatherMapConfig | None = None):
        super().__init__(config or OpenWeatherMapConfig())

    async def get_air_pollution(
        self, lat: float, lon: float, parameters: list[str] | None = None
    ) -> dict[str, Any]:
        """Fetch current pollutant concentrations."""
        params = {"lat": lat, "lon": lon, "appid": self.config.api_key}
        data = await self._get_json(self.config.base_url, params)
        results = self.normalize(data, parameters or list(COMPONENT_MAP))
        logger.info(f"OpenWeatherMap: {len(results)} pollutant readings")
        return {"results": results, "source": "openweathermap"}

    @staticmethod
    def normalize(
        data: dict[str, Any], parameters: list[str]
    ) -> list[dict[str, Any]]:
        entries = data.get("list") or []
        if not entries:
            return []

        entry = entries[0]
        components = entry.get("components") or {}
        if "dt" in entry:
            observed = datetime.fromtimestamp(entry["dt"], timezone.utc)
        else:
            observed = datetime.now(timezone.utc)

        results = []
        for parameter in parameters:
            value = components.get(COMPONENT_MAP.get(parameter, parameter))
            if value is None:
                continue
            unit = "µg/m³"
            if parameter == "co":
                value, unit = value / 1000, "mg/m³"
            results.append(
                {
                    "parameter": parameter,
                    "value": value,
                    "unit": unit,
                    "date": {"utc": observed.isoformat()},
                }
            )
        return results
