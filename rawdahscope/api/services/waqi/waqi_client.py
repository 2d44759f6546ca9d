"""
World Air Quality Index (WAQI) geo-feed client.

API: https://aqicn.org/json-api/doc/
Endpoint: ``/feed/geo:{lat};{lng}/?token=...``

The feed reports the nearest station's individual AQI sub-indices
(``iaqi``), one snapshot per call. Sub-indices are US EPA AQI values,
not concentrations, so readings carry ``unit="AQI"``. A ``status`` other
than ``"ok"`` is returned with HTTP 200, so it is checked here and
surfaces as an empty result list.
"""

from datetime import datetime, timezone
from typing import Any

from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

SUPPORTED_POLLUTANTS = ["pm25", "pm10", "no2", "o3", "so2", "co"]
AQI_UNIT = "AQI"


class WAQIConfig(ClientConfig):
    """WAQI API configuration."""

    base_url: str = "https://api.waqi.info"
    token: str = "demo"


class WAQIClient(AsyncJSONClient):
    """Async WAQI client returning normalised measurements."""

    def __init__(self, config: WAQIConfig | None = None):
        super().__init__(config or WAQIConfig())

    async def get_geo_feed(
        self, lat: float, lon: float, parameters: list[str] | None = None
    ) -> dict[str, Any]:
        """
        Fetch the nearest-station feed.

        Returns:
            ``{"results": [...], "source": "waqi"}``; ``results`` is empty
            when the feed status is not ``ok``
        """
        url = f"{self.config.base_url}/feed/geo:{lat};{lon}/"
        data = await self._get_json(url, {"token": self.config.token})
        results = self.normalize(data, parameters or SUPPORTED_POLLUTANTS)
        logger.info(f"WAQI: {len(results)} pollutant readings")
        return {"results": results, "source": "waqi"}

    @staticmethod
    def normalize(
        data: dict[str, Any], parameters: list[str]
    ) -> list[dict[str, Any]]:
        if data.get("status") != "ok" or not data.get("data"):
            logger.warning(f"WAQI status: {data.get('status')}")
            return []

        iaqi = data["data"].get("iaqi") or {}
        observed = datetime.now(timezone.utc).isoformat()
        results = []
        for parameter in parameters:
            reading = iaqi.get(parameter)
            if not reading or reading.get("v") is None:
                continue
            results.append(
                {
                    "parameter": parameter,
                    "value": reading["v"],
                    "unit": AQI_UNIT,
                    "date": {"utc": observed},
                }
            )
        return results
