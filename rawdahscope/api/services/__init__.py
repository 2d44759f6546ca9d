"""
Data acquisition services for RawdahScope.

ARCHITECTURE OVERVIEW:
======================

Core Services:
├── EnvironmentalDataService   - One cached, retried source chain per domain
├── SourceChain / Strategy     - Ordered fallback with tagged outcomes
├── ClientFactory              - Builds every client from Settings
└── GeographicUtils            - Coordinate validation and cache keys

API Clients (9 upstreams):
├── Open-Meteo Forecast        - Weather bundle, point temperature
├── Open-Meteo Archive         - ERA5 daily history
├── Open-Meteo Air Quality     - Hourly pollutant windows
├── MET Norway Locationforecast - Weather fallback
├── WAQI                       - Air-quality snapshot
├── OpenWeatherMap             - Air-quality snapshot fallback
├── NASA POWER                 - Yearly climate fallback
├── ORNL MODIS                 - NDVI (MOD13Q1)
└── USGS Landsat inventory     - NDVI estimate

ATTRIBUTIONS REQUIRED:
=====================
Open-Meteo and MET Norway data are CC BY 4.0. See individual client
docstrings for details.
"""

from typing import Any

__all__ = [
    # Core Services
    "ClientFactory",
    "EnvironmentalDataService",
    "GeographicUtils",
    "NoRealDataAvailable",
    "SourceChain",
    "Strategy",
    # Clients
    "LandsatClient",
    "METNorwayClient",
    "MODISClient",
    "NASAPowerClient",
    "OpenMeteoAirQualityClient",
    "OpenMeteoArchiveClient",
    "OpenMeteoForecastClient",
    "OpenWeatherMapAirClient",
    "WAQIClient",
]


def __getattr__(name: str) -> Any:
    """
    Lazy loading to avoid circular imports.
    """
    import importlib

    # (submodule_path, attribute_name)
    lazy_imports: dict[str, tuple[str, str]] = {
        "ClientFactory": (".client_factory", "ClientFactory"),
        "EnvironmentalDataService": (
            ".environmental_data_service",
            "EnvironmentalDataService",
        ),
        "GeographicUtils": (".geographic_utils", "GeographicUtils"),
        "NoRealDataAvailable": (".source_chain", "NoRealDataAvailable"),
        "SourceChain": (".source_chain", "SourceChain"),
        "Strategy": (".source_chain", "Strategy"),
        "LandsatClient": (".landsat", "LandsatClient"),
        "METNorwayClient": (".met_norway", "METNorwayClient"),
        "MODISClient": (".modis", "MODISClient"),
        "NASAPowerClient": (".nasa_power", "NASAPowerClient"),
        "OpenMeteoAirQualityClient": (
            ".openmeteo_air_quality",
            "OpenMeteoAirQualityClient",
        ),
        "OpenMeteoArchiveClient": (
            ".openmeteo_archive",
            "OpenMeteoArchiveClient",
        ),
        "OpenMeteoForecastClient": (
            ".openmeteo_forecast",
            "OpenMeteoForecastClient",
        ),
        "OpenWeatherMapAirClient": (
            ".openweathermap",
            "OpenWeatherMapAirClient",
        ),
        "WAQIClient": (".waqi", "WAQIClient"),
    }

    if name in lazy_imports:
        module_path, attr_name = lazy_imports[name]
        try:
            module = importlib.import_module(module_path, package=__name__)
            return getattr(module, attr_name)
        except (ImportError, AttributeError) as e:
            raise ImportError(
                f"Failed to import '{name}' from '{module_path}': {e}"
            ) from e

    raise AttributeError(f"Module '{__name__}' has no attribute '{name}'")
