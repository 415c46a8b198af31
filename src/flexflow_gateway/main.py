"""Main entry point for the FlexFlow Gateway application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flexflow_gateway import __version__
from flexflow_gateway.api.models import ErrorResponse
from flexflow_gateway.api.routes import router
from flexflow_gateway.core.config import Settings, get_settings
from flexflow_gateway.core.logging import get_logger, setup_logging
from flexflow_gateway.rl import RateLimiter, RateLimitMiddleware, create_rate_limiter, get_rate_limit_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management
    Handles startup and shutdown procedures
    """
    settings = app.state.settings
    logger.info(
        "Gateway configuration",
        extra={
            "host": settings.HOST,
            "port": settings.PORT,
            "debug": settings.DEBUG,
            "log_level": settings.LOG_LEVEL,
            "rate_limiting_enabled": app.state.rate_limiter is not None,
            "rate_limit_algorithm": settings.RATE_LIMIT_ALGORITHM
        }
    )

    yield

    logger.info("Shutting down FlexFlow Gateway...")


async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler for unhandled errors, including counter store failures"""
    logger.error(
        "Unhandled exception",
        extra={
            "url": str(request.url),
            "method": request.method,
            "error": str(exc)
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="Internal server error occurred").model_dump()
    )


def create_app(
    settings: Optional[Settings] = None,
    limiter: Optional[RateLimiter] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The rate limiter (and its counter store) is created here, once per app,
    and kept on app.state. Pass `limiter` to supply a preconfigured one.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    config = get_rate_limit_config(settings)
    if limiter is None:
        limiter = create_rate_limiter(config)

    app = FastAPI(
        title="FlexFlow Gateway",
        description="Rate limited entry point for the FlexFlow time tracking API",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check and system status"
            },
            {
                "name": "rate-limiting",
                "description": "Rate limit tier introspection"
            }
        ]
    )
    app.state.settings = settings
    app.state.rate_limiter = limiter

    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter,
        exempt_paths=tuple(config.exempt_paths),
        trust_forwarded_for=config.trust_forwarded_for
    )

    # Added last so it wraps the limiter and 429 responses carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["RateLimit", "RateLimit-Policy", "RateLimit-Limit",
                        "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"]
    )

    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(router)

    return app


def main() -> None:
    """Main entry point for the application."""
    settings = get_settings()
    app = create_app(settings)
    get_logger(__name__).info("Starting FlexFlow Gateway", host=settings.HOST, port=settings.PORT)

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
        server_header=False,  # Don't reveal server info
        date_header=True,
    )


if __name__ == "__main__":
    main()
