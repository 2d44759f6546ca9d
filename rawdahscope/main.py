import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from config.logging_config import get_logger, setup_logging
from config.settings.app_config import Settings, get_settings
from rawdahscope import __version__
from rawdahscope.api.routes import api_router
from rawdahscope.api.services.client_factory import ClientFactory
from rawdahscope.api.services.environmental_data_service import (
    EnvironmentalDataService,
)
from rawdahscope.core.dashboard.dashboard_coordinator import (
    DashboardCoordinator,
)
from rawdahscope.infrastructure.cache.ttl_cache import TTLCache

API_V1_PREFIX = "/api/v1"

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build clients and coordinator, start refreshing, clean up on exit.

    The initial ``fetch_all`` runs in the background so the API answers
    immediately with every domain in ``loading``.
    """
    settings: Settings = app.state.settings
    clients = ClientFactory.create_all(settings)
    service = EnvironmentalDataService(clients, TTLCache(), settings)
    coordinator = DashboardCoordinator(service, settings)
    app.state.coordinator = coordinator

    initial = asyncio.create_task(coordinator.fetch_all(force_refresh=False))
    coordinator.start()
    logger.info("RawdahScope started")
    try:
        yield
    finally:
        await coordinator.stop()
        initial.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await initial
        await clients.close_all()
        app.state.coordinator = None
        logger.info("RawdahScope stopped")


def create_application(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(
        log_level=settings.log_level,
        log_dir=settings.log_dir,
        json_logs=settings.json_logs,
    )

    app = FastAPI(
        title="RawdahScope",
        version=__version__,
        openapi_url=f"{API_V1_PREFIX}/openapi.json",
        docs_url=f"{API_V1_PREFIX}/docs",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.coordinator = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=API_V1_PREFIX)

    Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    @app.get("/health")
    async def health():
        coordinator = app.state.coordinator
        return {
            "status": "ok",
            "version": __version__,
            "background_refresh": bool(
                coordinator is not None and coordinator.is_running
            ),
        }

    return app


app = create_application()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("rawdahscope.main:app", host="0.0.0.0", port=8000)
