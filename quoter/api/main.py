"""FastAPI application for the quote service.

The server accepts connections as soon as it starts; bootstrap runs in the
background and /quote answers 503 until it has completed.

Note: Rate limiting is intentionally not implemented at the application level.
It should be handled at the infrastructure layer (reverse proxy / load balancer).
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quoter import __version__
from quoter.api.endpoints import get_coordinator, router
from quoter.bootstrap.coordinator import BootstrapCoordinator
from quoter.bootstrap.factory import ProviderFactory
from quoter.bootstrap.state import ServiceState
from quoter.config import Settings
from quoter.log import configure_logging

logger = structlog.get_logger()


def create_app(
    settings: Settings | None = None,
    coordinator: BootstrapCoordinator | None = None,
    factory: ProviderFactory | None = None,
    start_bootstrap: bool = True,
) -> FastAPI:
    """Build the application and its bootstrap coordinator.

    Args:
        settings: Configuration (read from the environment when omitted)
        coordinator: Pre-built coordinator, mostly for tests
        factory: Provider factory handed to a newly built coordinator
        start_bootstrap: Launch bootstrap when the application starts

    Returns:
        The FastAPI application
    """
    settings = settings or Settings.from_env()
    coordinator = coordinator or BootstrapCoordinator(settings, factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task = None
        if start_bootstrap and coordinator.state is ServiceState.UNINITIALIZED:
            # INITIALIZING before the server accepts its first connection
            coordinator.begin()
            task = asyncio.create_task(coordinator.run())
            app.state.bootstrap_task = task
        yield
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await coordinator.aclose()

    app = FastAPI(
        title="Swap Quoter",
        description="Quote orchestration service for a DEX routing engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.coordinator = coordinator
    app.include_router(router)

    @app.get("/health")
    async def health(
        coordinator: BootstrapCoordinator = Depends(get_coordinator),
    ) -> dict[str, object]:
        """Health check endpoint; answers 200 while initializing too."""
        ready = coordinator.is_ready
        return {
            "status": "OK" if ready else "INITIALIZING",
            "initialized": ready,
            "state": coordinator.state.value,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404, content={"success": False, "error": "Route not found"}
            )
        return JSONResponse(
            status_code=exc.status_code, content={"success": False, "error": str(exc.detail)}
        )

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=500, content={"success": False, "error": "Internal server error"}
        )

    return app


app = create_app()


def run() -> None:
    """Run the quote API server.

    Configuration via environment variables, see quoter.config.Settings.
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level, json=settings.log_json)
    logger.info(
        "starting_server", host=settings.host, port=settings.port, chain_id=settings.chain_id
    )
    uvicorn.run(
        "quoter.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
