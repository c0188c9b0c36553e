"""Agricultural satellite data gateway.

load_dotenv() runs before settings are read so a local .env can supply the
Earthdata token and upstream overrides.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agri_eo_api import __version__
from agri_eo_api.config import Settings, load_settings
from agri_eo_api.gateway import Gateway, build_gateway
from agri_eo_api.routers import root, satellite

load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Keep gateway logs visible while muting noisy third-party info logs."""
    app_logger = logging.getLogger("agri_eo_api")
    app_logger.setLevel(level)
    if not app_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
        app_logger.addHandler(handler)
    app_logger.propagate = False

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _log_startup_configuration(settings: Settings, gateway: Gateway) -> None:
    cors = settings.cors_origins
    logger.info(
        "Startup config: cors=%s authMode=%s",
        "*" if cors == ["*"] else f"{len(cors)} origins",
        settings.auth_mode,
    )
    logger.info(
        "Startup config: cacheTtl=%ss categoryTtls=%s maxEntries=%s",
        settings.default_cache_ttl_seconds,
        settings.cache_ttls,
        settings.cache_max_entries or "unbounded",
    )
    logger.info(
        "Startup config: requestDeadline=%s chains=%s",
        f"{settings.request_deadline_seconds}s" if settings.request_deadline_seconds else "none",
        {name: len(chain) for name, chain in gateway.chains.items()},
    )


def create_app(settings: Settings | None = None, gateway: Gateway | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    gateway = gateway or build_gateway(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        _log_startup_configuration(settings, gateway)
        yield
        logger.info("Shutting down with %d cached entries", gateway.cache.size())

    app = FastAPI(title="Agri EO API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(root.router)
    app.include_router(satellite.router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
