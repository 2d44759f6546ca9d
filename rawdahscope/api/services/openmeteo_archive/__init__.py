"""Open-Meteo archive (ERA5) client."""

from .openmeteo_archive_client import (
    CLIMATE_DAILY_DEFAULT,
    CLIMATE_YEAR_DAILY,
    OpenMeteoArchiveClient,
    OpenMeteoArchiveConfig,
)

__all__ = [
    "CLIMATE_DAILY_DEFAULT",
    "CLIMATE_YEAR_DAILY",
    "OpenMeteoArchiveClient",
    "OpenMeteoArchiveConfig",
]
