"""
USGS EarthExplorer inventory client (Landsat 8 scene search).

The inventory carries scene metadata only, not reflectances, so the NDVI
produced here is an *estimate* derived from cloud cover and the number
of clear scenes. It is labelled as such in ``data_source``.
"""

from typing import Any

from loguru import logger

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

NDVI_MIN = 0.1
NDVI_MAX = 0.7


class LandsatConfig(ClientConfig):
    """USGS inventory configuration."""

    base_url: str = "https://earthexplorer.usgs.gov/inventory/json/v/1.4.1"
    dataset: str = "landsat_8_c1"
    max_cloud_cover: int = 20
    footprint_deg: float = 0.01


class LandsatClient(AsyncJSONClient):
    """Async client for Landsat scene inventory searches."""

    def __init__(self, config: LandsatConfig | None = None):
        super().__init__(config or LandsatConfig())

    async def search_scenes(
        self, lat: float, lon: float, year: int
    ) -> list[dict[str, Any]]:
        """Return scenes over a small footprint for a calendar year."""
        size = self.config.footprint_deg
        params = {
            "datasetName": self.config.dataset,
            "startDate": f"{year}-01-01",
            "endDate": f"{year}-12-31",
            "ll": f"{lon},{lat}",
            "ur": f"{lon + size},{lat + size}",
            "includeUnknownCloudCover": "false",
            "maxCloudCover": self.config.max_cloud_cover,
        }
        logger.info(f"Landsat inventory request: lat={lat}, lon={lon}")
        data = await self._get_json(f"{self.config.base_url}/search", params)
        return (data.get("data") or {}).get("results") or []

    async def estimate_ndvi(
        self, lat: float, lon: float, year: int
    ) -> dict[str, Any]:
        scenes = await self.search_scenes(lat, lon, year)
        return self.estimate_from_scenes(scenes, year)

    @staticmethod
    def estimate_from_scenes(
        scenes: list[dict[str, Any]], year: int
    ) -> dict[str, Any]:
        """
        Estimate NDVI from scene metadata.

        ``max(0.1, 0.4 - cloud/100 * 0.2 + scenes/20 * 0.1)``, capped at 0.7.
        ``ndvi`` is None when the search returned no scenes.
        """
        if not scenes:
            return {"year": year, "ndvi": None, "scene_count": 0}

        count = len(scenes)
        avg_cloud = sum(s.get("cloudCover") or 0 for s in scenes) / count
        estimate = 0.4 - avg_cloud / 100 * 0.2 + count / 20 * 0.1
        estimate = max(NDVI_MIN, estimate)
        return {
            "year": year,
            "ndvi": min(NDVI_MAX, estimate),
            "acquisition_date": scenes[0].get("acquisitionDate"),
            "scene_count": count,
            "data_source": "USGS Landsat 8 (estimated)",
        }
