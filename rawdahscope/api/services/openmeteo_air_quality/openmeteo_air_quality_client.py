"""
Open-Meteo Air Quality API client (CAMS).

API: https://open-meteo.com/en/docs/air-quality-api

Unlike the WAQI and OpenWeatherMap feeds, this endpoint returns an
hourly time series for a date range, so it can serve the "previous
week" window as well as the current one.

Concentrations are µg/m³, except CO which is converted to mg/m³ to
match the other air-quality sources.
"""

from typing import Any

from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

# dashboard parameter -> Open-Meteo hourly variable
PARAMETER_MAP = {
    "pm25": "pm2_5",
    "pm10": "pm10",
    "no2": "nitrogen_dioxide",
    "o3": "ozone",
    "so2": "sulphur_dioxide",
    "co": "carbon_monoxide",
}


class OpenMeteoAirQualityConfig(ClientConfig):
    """Open-Meteo Air Quality API configuration."""

    base_url: str = "https://air-quality-api.open-meteo.com/v1/air-quality"


class OpenMeteoAirQualityClient(AsyncJSONClient):
    """Async client returning normalised pollutant measurements."""

    def __init__(self, config: OpenMeteoAirQualityConfig | None = None):
        super().__init__(config or OpenMeteoAirQualityConfig())

    async def get_window(
        self,
        lat: float,
        lon: float,
        start_date: str,
        end_date: str,
        parameters: list[str],
    ) -> dict[str, Any]:
        """
        Fetch hourly pollutant values between two dates (inclusive).

        Args:
            lat: Latitude
            lon: Longitude
            start_date: First day (YYYY-MM-DD)
            end_date: Last day (YYYY-MM-DD)
            parameters: Dashboard pollutant codes (pm25, pm10, ...)

        Returns:
            ``{"results": [...], "source": "open-meteo-air-quality"}``
        """
        variables = {
            p: PARAMETER_MAP[p] for p in parameters if p in PARAMETER_MAP
        }
        if not variables:
            raise ValueError(f"No supported pollutants in {parameters}")

        params = {
            "latitude": lat,
            "longitude": lon,
            "hourly": ",".join(variables.values()),
            "start_date": start_date,
            "end_date": end_date,
            "timezone": "UTC",
        }
        data = await self._get_json(self.config.base_url, params)
        results = self.normalize(data, variables)
        logger.info(
            f"Open-Meteo Air Quality: {len(results)} measurements "
            f"({start_date} to {end_date})"
        )
        return {"results": results, "source": "open-meteo-air-quality"}

    @staticmethod
    def normalize(
        data: dict[str, Any], variables: dict[str, str]
    ) -> list[dict[str, Any]]:
        """Flatten the hourly arrays into one record per non-null value."""
        hourly = data.get("hourly") or {}
        times = hourly.get("time") or []
        results = []
        for parameter, variable in variables.items():
            values = hourly.get(variable) or []
            for ts, value in zip(times, values):
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
                        "date": {"utc": f"{ts}:00Z"},
                    }
                )
        return results
