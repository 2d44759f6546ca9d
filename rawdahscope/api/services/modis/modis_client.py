"""
ORNL DAAC MODIS web service client (MOD13Q1 NDVI subsets).

API: https://modis.ornl.gov/data/modis_webservice.html
Product: MOD13Q1, 250 m 16-day vegetation indices

Raw NDVI is an integer scaled by 1e4. Pixels at or below -3000 are
fill/cloud values and are dropped before taking the yearly median.
"""

from typing import Any

import numpy as np
from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

NDVI_SCALE = 10000.0
NDVI_FILL_THRESHOLD = -3000
NDVI_MIN = 0.1
NDVI_MAX = 0.8


class MODISConfig(ClientConfig):
    """ORNL MODIS web service configuration."""

    base_url: str = "https://modis.ornl.gov/rst/api/v1"
    product: str = "MOD13Q1"
    band: str = "250m_16_days_NDVI"


class MODISClient(AsyncJSONClient):
    """Async client for yearly MODIS NDVI at a point."""

    def __init__(self, config: MODISConfig | None = None):
        super().__init__(config or MODISConfig())

    async def get_yearly_ndvi(
        self, lat: float, lon: float, year: int
    ) -> dict[str, Any]:
        """
        Fetch one year of composites and reduce them to a median NDVI.

        Args:
            lat: Latitude
            lon: Longitude
            year: Calendar year

        Returns:
            dict with ``ndvi`` (None when no valid pixel was returned),
            ``acquisition_date``, ``quality_pixels`` and ``data_source``
        """
        url = f"{self.config.base_url}/{self.config.product}/subset"
        params = {
            "latitude": lat,
            "longitude": lon,
            "band": self.config.band,
            "startDate": f"A{year}001",
            "endDate": f"A{year}365",
            "kmAboveBelow": 0,
            "kmLeftRight": 0,
        }
        logger.info(f"MODIS request: lat={lat}, lon={lon}, year={year}")
        data = await self._get_json(url, params)
        return self.summarize(data, year)

    @staticmethod
    def summarize(data: dict[str, Any], year: int) -> dict[str, Any]:
        subset = data.get("subset") or []
        valid = [
            item["data"][0]
            for item in subset
            if item.get("data") and item["data"][0] > NDVI_FILL_THRESHOLD
        ]

        ndvi = None
        if valid:
            median = float(np.median(np.array(valid, dtype=float)))
            ndvi = min(NDVI_MAX, max(NDVI_MIN, median / NDVI_SCALE))
        else:
            logger.warning(f"MODIS: no valid pixels for {year}")

        first_date = subset[0].get("calendar_date") if subset else None
        return {
            "year": year,
            "ndvi": ndvi,
            "acquisition_date": first_date,
            "quality_pixels": len(valid),
            "data_source": "NASA MODIS MOD13Q1",
        }
