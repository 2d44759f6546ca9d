"""
NASA POWER daily point client, the yearly-climate fallback.

Used when the Open-Meteo archive cannot serve a calendar year. Values
come from the MERRA-2 reanalysis on a 0.5 x 0.625 degree grid, from
1981 to roughly a week before today.

Variables requested (community ``AG``):

- ``T2M`` / ``T2M_MAX`` / ``T2M_MIN``: 2 m air temperature (°C)
- ``PRECTOTCORR``: bias-corrected precipitation (mm/day)

POWER marks gaps with -999; those become None. Records are reshaped
into the Open-Meteo ``daily`` layout so downstream code handles both
providers the same way.

API docs: https://power.larc.nasa.gov/docs/services/api/
"""

from datetime import date, timedelta
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from rawdahscope.api.services.http_client import AsyncJSONClient, ClientConfig

FILL_VALUE = -999.0

# POWER parameter -> Open-Meteo daily variable
DAILY_VARIABLES = {
    "T2M_MAX": "temperature_2m_max",
    "T2M_MIN": "temperature_2m_min",
    "T2M": "temperature_2m_mean",
    "PRECTOTCORR": "precipitation_sum",
}


class NASAPowerConfig(ClientConfig):
    """NASA POWER configuration."""

    base_url: str = "https://power.larc.nasa.gov/api/temporal/daily/point"
    timeout: float = 30.0
    community: str = "AG"
    parameters: list[str] = list(DAILY_VARIABLES)
    delay_days: int = 7


class NASAPowerData(BaseModel):
    """One day at one grid point."""

    date: str = Field(..., description="ISO date")
    temp_max: float | None = Field(None, description="T2M_MAX (°C)")
    temp_min: float | None = Field(None, description="T2M_MIN (°C)")
    temp_mean: float | None = Field(None, description="T2M (°C)")
    precipitation: float | None = Field(
        None, description="PRECTOTCORR (mm/day)"
    )


class NASAPowerClient(AsyncJSONClient):
    """Async client for the POWER ``temporal/daily/point`` endpoint."""

    def __init__(self, config: NASAPowerConfig | None = None):
        super().__init__(config or NASAPowerConfig())

    async def get_daily_data(
        self,
        lat: float,
        lon: float,
        start_date: date,
        end_date: date,
    ) -> list[NASAPowerData]:
        """
        Fetch daily records between two dates (inclusive).

        Raises:
            ValueError: ``start_date`` after ``end_date``, or a response
                without ``properties.parameter``
            httpx.HTTPError: Transport failure or non-2xx status
        """
        if start_date > end_date:
            raise ValueError(
                f"start_date {start_date} is after end_date {end_date}"
            )

        start, end = start_date.strftime("%Y%m%d"), end_date.strftime("%Y%m%d")
        params = {
            "parameters": ",".join(self.config.parameters),
            "community": self.config.community,
            "latitude": lat,
            "longitude": lon,
            "start": start,
            "end": end,
            "format": "JSON",
        }
        logger.info(f"NASA POWER request: ({lat}, {lon}) {start}..{end}")
        data = await self._get_json(self.config.base_url, params)
        return self._parse_response(data)

    async def get_year(self, lat: float, lon: float, year: int) -> dict:
        """One calendar year (cut at the publication delay) as ``daily``."""
        last_published = date.today() - timedelta(days=self.config.delay_days)
        end = min(date(year, 12, 31), last_published)
        records = await self.get_daily_data(lat, lon, date(year, 1, 1), end)
        return self.to_daily_bundle(records)

    def _parse_response(self, data: dict) -> list[NASAPowerData]:
        series = (data.get("properties") or {}).get("parameter")
        if series is None:
            raise ValueError("NASA POWER response has no properties.parameter")
        if not series:
            return []

        # every parameter shares the same YYYYMMDD keys
        days = sorted(next(iter(series.values())))

        def reading(name: str, day: str) -> float | None:
            raw = series.get(name, {}).get(day)
            if raw is None or raw <= FILL_VALUE:
                return None
            return raw

        records = [
            NASAPowerData(
                date=self._format_date(day),
                temp_max=reading("T2M_MAX", day),
                temp_min=reading("T2M_MIN", day),
                temp_mean=reading("T2M", day),
                precipitation=reading("PRECTOTCORR", day),
            )
            for day in days
        ]
        logger.info(f"NASA POWER: {len(records)} daily records")
        return records

    @staticmethod
    def _format_date(day: str) -> str:
        """YYYYMMDD -> YYYY-MM-DD."""
        return f"{day[:4]}-{day[4:6]}-{day[6:]}"

    @staticmethod
    def to_daily_bundle(records: list[NASAPowerData]) -> dict[str, Any]:
        return {
            "daily": {
                "time": [r.date for r in records],
                "temperature_2m_max": [r.temp_max for r in records],
                "temperature_2m_min": [r.temp_min for r in records],
                "temperature_2m_mean": [r.temp_mean for r in records],
                "precipitation_sum": [r.precipitation for r in records],
            },
            "source": "nasa-power",
        }
