"""FastAPI application factory and entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from schemefeed import __version__
from schemefeed.config import get_settings
from schemefeed.routers import health, schemes
from schemefeed.services.scheme_cache import build_scheme_cache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.environment == "development" else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting schemefeed API v%s in %s mode", __version__, settings.environment)

    # Reject a wildcard CORS policy in production
    settings.validate_production()

    if not settings.deepseek_api_key:
        logger.warning("DEEPSEEK_API_KEY not set; schemes will come from the synthetic tier")

    yield

    logger.info("schemefeed API shut down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Disable interactive docs in production to reduce attack surface
    docs_url = "/docs" if settings.environment == "development" else None
    redoc_url = "/redoc" if settings.environment == "development" else None
    openapi_url = "/openapi.json" if settings.environment == "development" else None

    app = FastAPI(
        title="schemefeed API",
        description="Government scheme feed with a resilient refresh cache",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
    )

    # One cache per application; routes reach it through get_scheme_cache
    app.state.scheme_cache = build_scheme_cache(settings)

    origins = [o.strip() for o in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        return response

    app.include_router(health.router)
    app.include_router(schemes.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "schemefeed.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment == "development"),
    )
