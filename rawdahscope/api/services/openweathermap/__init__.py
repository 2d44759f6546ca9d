"""OpenWeatherMap air-pollution client."""

from .openweathermap_client import (
    OpenWeatherMapAirClient,
    OpenWeatherMapConfig,
)

__all__ = ["OpenWeatherMapAirClient", "OpenWeatherMapConfig"]
