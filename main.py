import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from shorturl_app.api.v1 import shorturl
from shorturl_app.config import Settings, settings
from shorturl_app.exceptions import InvalidUrl, RecordNotFound, ShortUrlError, WrongFormat
from shorturl_app.logging_config import configure_logging
from shorturl_app.schemas.url import HealthResponse
from shorturl_app.services.validator import UrlValidator, create_validator
from shorturl_app.storage.factory import GatewayFactory
from shorturl_app.storage.gateway import PersistenceGateway, watch_primary

logger = logging.getLogger("shorturl_app.main")


def create_app(
    config: Optional[Settings] = None,
    gateway: Optional[PersistenceGateway] = None,
    validator: Optional[UrlValidator] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Settings (defaults to the environment-loaded settings)
        gateway: Pre-built gateway; built from config at startup when omitted
        validator: Pre-built validator; built from config when omitted

    Returns:
        Configured FastAPI app (stores are attached in the lifespan)
    """
    config = config or settings
    configure_logging(config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        app.state.gateway = gateway or await GatewayFactory.create(config)
        app.state.validator = validator or create_validator(config)

        watcher = None
        if config.reconnect_interval > 0 and app.state.gateway.primary is not None:
            watcher = asyncio.create_task(watch_primary(app.state.gateway, config.reconnect_interval))

        logger.info("%s %s ready on port %s", config.app_name, config.app_version, config.port)
        yield

        # Shutdown
        if watcher is not None:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
        # Injected gateways belong to the caller
        if gateway is None:
            app.state.gateway.close()

    # Create FastAPI app
    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="URL shortener microservice with an in-memory fallback store",
        debug=config.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    views_dir = Path(config.views_dir)
    app.mount("/public", StaticFiles(directory=config.public_dir, check_dir=False), name="public")

    @app.get("/", include_in_schema=False)
    def read_root():
        """Landing page with the shorten form"""
        return FileResponse(views_dir / "index.html")

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request):
        """Health check endpoint"""
        return HealthResponse(
            status="healthy",
            environment=config.environment,
            store=request.app.state.gateway.state.value,
        )

    ######## Include routers
    app.include_router(shorturl.router)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map service errors to responses.

    Validation and lookup failures are normal outcomes: HTTP 200 with an
    ``error`` payload. Anything else is a 500 with a generic message.
    """

    async def expected_error(request: Request, exc: ShortUrlError):
        logger.debug("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": exc.message})

    async def server_error(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            {"error": ShortUrlError.message},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    for exc_class in (InvalidUrl, WrongFormat, RecordNotFound):
        app.add_exception_handler(exc_class, expected_error)
    app.add_exception_handler(ShortUrlError, server_error)
    app.add_exception_handler(Exception, server_error)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port)
