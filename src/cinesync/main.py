"""FastAPI application factory and server entry point."""

import uvicorn
from fastapi import FastAPI

from cinesync import __version__
from cinesync.api.exception_handlers import register_exception_handlers
from cinesync.api.routers import api_router, health
from cinesync.config import Settings, get_settings
from cinesync.infrastructure.lifecycle import lifespan
from cinesync.infrastructure.observability import RequestLoggingMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Explicit settings (tests), defaults to the cached environment settings
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Synchronizes a linked Trakt account into the local library",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


def run() -> None:
    """Run the API server with uvicorn (console script entry point)."""
    settings = get_settings()
    uvicorn.run(
        "cinesync.main:app",
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
