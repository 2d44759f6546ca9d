"""
Dashboard state coordinator.

Tracks one ``DomainStatus`` per dashboard domain and runs the domain
fetches. Per domain the state machine is::

    loading -> success | error | no-data

and every refresh moves the domain back to ``loading``. A failed refresh
never clears ``last_payload`` or ``last_timestamp``, so the view keeps
showing the last good data (marked stale by the freshness classifier).

Errors stop at the domain boundary: ``fetch_all`` and ``refresh_one``
never raise for upstream failures.
"""

import asyncio
import contextlib
import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from loguru import logger

from config.settings.app_config import Settings, get_settings
from rawdahscope.api.middleware.prometheus_metrics import (
    DOMAIN_REFRESH_DURATION,
    DOMAIN_REFRESH_TOTAL,
)
from rawdahscope.api.services.environmental_data_service import (
    EnvironmentalDataService,
)
from rawdahscope.core.data_processing.data_processor import (
    AFFORESTED_SITE,
    NON_PLANTED_SITE,
    compute_current_aqi,
    process_air_quality_before_after,
    process_carbon_estimate,
    process_forest_coverage,
    process_ndvi_series,
    process_surface_temperature_pair,
    process_weather_for_heat_map,
)
from rawdahscope.core.freshness.freshness_classifier import (
    FreshnessVerdict,
    classify,
)
from rawdahscope.infrastructure.retry.retry_executor import Sleep


class Domain(str, Enum):
    HEAT_MAP = "heat_map"
    AIR_QUALITY = "air_quality"
    SURFACE_TEMPERATURE = "surface_temperature"
    VEGETATION_INDEX = "vegetation_index"
    FOREST_COVERAGE = "forest_coverage"
    CARBON_ESTIMATE = "carbon_estimate"


class DomainState(str, Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    NO_DATA = "no-data"


@dataclass
class DomainStatus:
    """Mutable per-domain state, written only by the coordinator."""

    state: DomainState = DomainState.LOADING
    last_timestamp: float | None = None
    last_payload: Any = None
    last_error: str | None = None

    def freshness(self, now: float | None = None) -> FreshnessVerdict:
        return classify(self.last_timestamp, now)

    def to_dict(self, now: float | None = None) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "last_timestamp": self.last_timestamp,
            "last_payload": self.last_payload,
            "last_error": self.last_error,
            "freshness": self.freshness(now).model_dump(mode="json"),
        }


def _is_empty(payload: Any) -> bool:
    if payload is None:
        return True
    return hasattr(payload, "__len__") and len(payload) == 0


class DashboardCoordinator:
    """
    Orchestrates domain fetches and owns the ``DomainStatus`` map.

    Args:
        service: Data service whose cache is cleared on force refresh
        settings: Application settings (location, batching, interval)
        clock: Epoch-seconds clock used for timestamps
        sleep: Awaitable sleep for batch pauses and the refresh interval
    """

    def __init__(
        self,
        service: EnvironmentalDataService,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Sleep = asyncio.sleep,
    ):
        self.service = service
        self.settings = settings or get_settings()
        self._clock = clock
        self._sleep = sleep

        self.statuses: dict[Domain, DomainStatus] = {
            domain: DomainStatus() for domain in Domain
        }
        self.last_updated: float | None = None
        self._background_task: asyncio.Task | None = None
        self._ndvi_task: asyncio.Task | None = None

        self._fetchers: dict[Domain, Callable[[], Awaitable[Any]]] = {
            Domain.HEAT_MAP: self._fetch_heat_map,
            Domain.AIR_QUALITY: self._fetch_air_quality,
            Domain.SURFACE_TEMPERATURE: self._fetch_surface_temperature,
            Domain.VEGETATION_INDEX: self._vegetation_series,
            Domain.FOREST_COVERAGE: self._fetch_forest_coverage,
            Domain.CARBON_ESTIMATE: self._fetch_carbon_estimate,
        }

    # ------------------------------------------------------------------
    # Refresh contract
    # ------------------------------------------------------------------

    async def fetch_all(
        self,
        force_refresh: bool = False,
        domains: Iterable[Domain | str] | None = None,
    ) -> dict[str, dict[str, Any]]:
        """
        Refresh every domain (or ``domains``) concurrently.

        Args:
            force_refresh: Clear the whole TTL cache first
            domains: Subset of domains to refresh (default: all)

        Returns:
            Snapshot of every domain after the refresh
        """
        if force_refresh:
            self.service.cache.clear()
            logger.info("Cache cleared for force refresh")

        targets = [Domain(d) for d in domains] if domains else list(Domain)
        results = await asyncio.gather(
            *(self.refresh_one(d) for d in targets), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException) and not isinstance(
                result, Exception
            ):
                raise result

        self.last_updated = self._clock()
        return self.snapshot()

    async def refresh_one(self, domain: Domain | str) -> DomainStatus:
        """
        Run one domain's fetch and record the outcome.

        Raises:
            ValueError: Unknown domain name
        """
        domain = Domain(domain)
        status = self.statuses[domain]
        status.state = DomainState.LOADING
        started = time.perf_counter()

        try:
            payload = await self._fetchers[domain]()
        except Exception as e:
            status.state = DomainState.ERROR
            status.last_error = str(e)
            logger.error(f"{domain.value} refresh failed: {e}")
        else:
            status.last_error = None
            if _is_empty(payload):
                status.state = DomainState.NO_DATA
                logger.warning(f"{domain.value}: no data after processing")
            else:
                status.state = DomainState.SUCCESS
                status.last_payload = payload
                status.last_timestamp = self._clock()
                logger.info(f"{domain.value} refreshed")
        finally:
            DOMAIN_REFRESH_DURATION.labels(domain=domain.value).observe(
                time.perf_counter() - started
            )

        DOMAIN_REFRESH_TOTAL.labels(
            domain=domain.value, state=status.state.value
        ).inc()
        return status

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def status(self, domain: Domain | str) -> DomainStatus:
        return self.statuses[Domain(domain)]

    def snapshot(self, now: float | None = None) -> dict[str, dict[str, Any]]:
        now = self._clock() if now is None else now
        return {
            domain.value: status.to_dict(now)
            for domain, status in self.statuses.items()
        }

    def cache_stats(self) -> dict[str, Any]:
        return self.service.cache.stats()

    def purge_cache(self) -> int:
        """Drop expired cache entries so they do not accumulate."""
        removed = self.service.cache.purge_expired()
        if removed:
            logger.debug(f"Purged {removed} expired cache entries")
        return removed

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return (
            self._background_task is not None
            and not self._background_task.done()
        )

    def start(self) -> None:
        """Start the periodic passive refresh of the live domains."""
        if self.is_running:
            return
        self._background_task = asyncio.create_task(self._background_loop())
        logger.info(
            f"Background refresh every "
            f"{self.settings.background_refresh_minutes} min for "
            f"{self.settings.background_domains}"
        )

    async def stop(self) -> None:
        task, self._background_task = self._background_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Background refresh stopped")

    async def _background_loop(self) -> None:
        interval = self.settings.background_refresh_minutes * 60
        while True:
            await self._sleep(interval)
            self.purge_cache()
            try:
                await self.fetch_all(
                    force_refresh=False,
                    domains=self.settings.background_domains,
                )
            except Exception as e:
                logger.error(f"Background refresh failed: {e}")

    # ------------------------------------------------------------------
    # Domain fetchers
    # ------------------------------------------------------------------

    async def _fetch_heat_map(self) -> list[dict[str, Any]]:
        result = await process_weather_for_heat_map(
            self.service,
            batch_size=self.settings.heat_map_batch_size,
            batch_pause=self.settings.heat_map_batch_pause,
            sleep=self._sleep,
        )
        return result["data"]

    async def _fetch_air_quality(self) -> dict[str, Any] | None:
        lat, lng = self.settings.location_lat, self.settings.location_lng
        today = self.settings.local_today()
        week_ago = today - timedelta(days=7)
        two_weeks_ago = today - timedelta(days=14)

        aq_now, aq_prev = await asyncio.gather(
            self.service.fetch_air_quality_window(lat, lng, week_ago, today),
            self.service.fetch_air_quality_window(
                lat, lng, two_weeks_ago, week_ago
            ),
            return_exceptions=True,
        )
        for result in (aq_now, aq_prev):
            if isinstance(result, BaseException) and not isinstance(
                result, Exception
            ):
                raise result
        if isinstance(aq_now, Exception) and isinstance(aq_prev, Exception):
            raise aq_now
        if isinstance(aq_prev, Exception):
            logger.warning(f"Previous air-quality window missing: {aq_prev}")
            aq_prev = None
        if isinstance(aq_now, Exception):
            logger.warning(f"Current air-quality window missing: {aq_now}")
            aq_now = None

        pollutants = process_air_quality_before_after(aq_now, aq_prev)
        current_aqi = compute_current_aqi(aq_now)
        if not pollutants and current_aqi is None:
            return None
        return {"pollutants": pollutants, "current_aqi": current_aqi}

    async def _fetch_surface_temperature(self) -> list[dict[str, Any]]:
        weather_aff, weather_non = await asyncio.gather(
            self.service.fetch_weather_data(
                AFFORESTED_SITE.lat, AFFORESTED_SITE.lng
            ),
            self.service.fetch_weather_data(
                NON_PLANTED_SITE.lat, NON_PLANTED_SITE.lng
            ),
        )
        return process_surface_temperature_pair(
            weather_aff, weather_non, today=self.settings.local_today()
        )

    async def _vegetation_series(self) -> list[dict[str, Any]]:
        """NDVI series shared by the vegetation, coverage and carbon domains."""
        if self._ndvi_task is None or self._ndvi_task.done():
            self._ndvi_task = asyncio.create_task(
                process_ndvi_series(
                    self.service,
                    self.settings.location_lat,
                    self.settings.location_lng,
                    years=self.settings.vegetation_years,
                    current_year=self.settings.local_today().year,
                )
            )
        return await asyncio.shield(self._ndvi_task)

    async def _fetch_forest_coverage(self) -> list[dict[str, Any]]:
        return process_forest_coverage(await self._vegetation_series())

    async def _fetch_carbon_estimate(self) -> list[dict[str, Any]]:
        coverage = process_forest_coverage(await self._vegetation_series())
        return process_carbon_estimate(coverage)
