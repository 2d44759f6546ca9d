"""Open-Meteo air-quality client."""

from .openmeteo_air_quality_client import (
    OpenMeteoAirQualityClient,
    OpenMeteoAirQualityConfig,
)

__all__ = ["OpenMeteoAirQualityClient", "OpenMeteoAirQualityConfig"]
