"""
Central factory for the upstream clients.

Responsibilities:
- Build every client from ``Settings`` (timeout, User-Agent, API keys)
- Keep one client per provider for the lifetime of the application
- Close every HTTP connection on shutdown
"""

from dataclasses import dataclass, fields

from loguru import logger

from config.settings.app_config import Settings, get_settings
from rawdahscope.api.services.landsat import LandsatClient, LandsatConfig
from rawdahscope.api.services.met_norway import METNorwayClient, METNorwayConfig
from rawdahscope.api.services.modis import MODISClient, MODISConfig
from rawdahscope.api.services.nasa_power import NASAPowerClient, NASAPowerConfig
from rawdahscope.api.services.openmeteo_air_quality import (
    OpenMeteoAirQualityClient,
    OpenMeteoAirQualityConfig,
)
from rawdahscope.api.services.openmeteo_archive import (
    OpenMeteoArchiveClient,
    OpenMeteoArchiveConfig,
)
from rawdahscope.api.services.openmeteo_forecast import (
    OpenMeteoForecastClient,
    OpenMeteoForecastConfig,
)
from rawdahscope.api.services.openweathermap import (
    OpenWeatherMapAirClient,
    OpenWeatherMapConfig,
)
from rawdahscope.api.services.waqi import WAQIClient, WAQIConfig


@dataclass
class UpstreamClients:
    """One client per upstream provider."""

    openmeteo_forecast: OpenMeteoForecastClient
    openmeteo_archive: OpenMeteoArchiveClient
    openmeteo_air_quality: OpenMeteoAirQualityClient
    met_norway: METNorwayClient
    waqi: WAQIClient
    openweathermap: OpenWeatherMapAirClient
    nasa_power: NASAPowerClient
    modis: MODISClient
    landsat: LandsatClient

    async def close_all(self) -> None:
        """
        Close every HTTP connection.

        Called on application shutdown (FastAPI lifespan). A client that
        fails to close is logged and the others are still closed.
        """
        for f in fields(self):
            client = getattr(self, f.name)
            try:
                await client.close()
            except Exception as e:
                logger.error(f"Error closing {f.name} client: {e}")
        logger.info("ClientFactory: cleanup complete")


class ClientFactory:
    """
    Official factory for all upstream clients.

    Usage:
        clients = ClientFactory.create_all()
        data = await clients.openmeteo_forecast.get_weather_bundle(...)
    """

    @staticmethod
    def _common(settings: Settings) -> dict:
        return {
            "timeout": settings.http_timeout,
            "user_agent": settings.user_agent,
        }

    @staticmethod
    def create_openmeteo_forecast(settings: Settings):
        return OpenMeteoForecastClient(
            OpenMeteoForecastConfig(**ClientFactory._common(settings))
        )

    @staticmethod
    def create_openmeteo_archive(settings: Settings):
        return OpenMeteoArchiveClient(
            OpenMeteoArchiveConfig(**ClientFactory._common(settings))
        )

    @staticmethod
    def create_openmeteo_air_quality(settings: Settings):
        return OpenMeteoAirQualityClient(
            OpenMeteoAirQualityConfig(**ClientFactory._common(settings))
        )

    @staticmethod
    def create_met_norway(settings: Settings):
        """
        MET Norway requires an identifying User-Agent.

        The generic ``user_agent`` is not applied; the config default is
        kept unless ``met_norway_user_agent`` is set.
        """
        options = {"timeout": settings.http_timeout}
        if settings.met_norway_user_agent:
            options["user_agent"] = settings.met_norway_user_agent
        return METNorwayClient(METNorwayConfig(**options))

    @staticmethod
    def create_waqi(settings: Settings):
        return WAQIClient(
            WAQIConfig(
                token=settings.waqi_token, **ClientFactory._common(settings)
            )
        )

    @staticmethod
    def create_openweathermap(settings: Settings):
        return OpenWeatherMapAirClient(
            OpenWeatherMapConfig(
                api_key=settings.owm_api_key,
                **ClientFactory._common(settings),
            )
        )

    @staticmethod
    def create_nasa_power(settings: Settings):
        """NASA POWER is slow for full years; allow three times the timeout."""
        common = ClientFactory._common(settings)
        common["timeout"] = settings.http_timeout * 3
        return NASAPowerClient(NASAPowerConfig(**common))

    @staticmethod
    def create_modis(settings: Settings):
        return MODISClient(MODISConfig(**ClientFactory._common(settings)))

    @staticmethod
    def create_landsat(settings: Settings):
        return LandsatClient(LandsatConfig(**ClientFactory._common(settings)))

    @classmethod
    def create_all(cls, settings: Settings | None = None) -> UpstreamClients:
        settings = settings or get_settings()
        clients = UpstreamClients(
            openmeteo_forecast=cls.create_openmeteo_forecast(settings),
            openmeteo_archive=cls.create_openmeteo_archive(settings),
            openmeteo_air_quality=cls.create_openmeteo_air_quality(settings),
            met_norway=cls.create_met_norway(settings),
            waqi=cls.create_waqi(settings),
            openweathermap=cls.create_openweathermap(settings),
            nasa_power=cls.create_nasa_power(settings),
            modis=cls.create_modis(settings),
            landsat=cls.create_landsat(settings),
        )
        logger.debug(
            f"ClientFactory: created {len(fields(clients))} clients "
            f"(timeout={settings.http_timeout}s)"
        )
        return clients
