"""Open-Meteo forecast client."""

from .openmeteo_forecast_client import (
    OpenMeteoForecastClient,
    OpenMeteoForecastConfig,
)

__all__ = ["OpenMeteoForecastClient", "OpenMeteoForecastConfig"]
