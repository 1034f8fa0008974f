"""
Application factory.

Wires logging, middleware, exception handlers and routers onto a FastAPI app.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend import __version__
from backend.core.conf import settings
from backend.core.log import setup_logging
from backend.src.billing.shared.exceptions import BillingError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def register_init(app: FastAPI):
    """Startup / shutdown hooks."""
    logger.info(f"Starting {settings.FASTAPI_TITLE} ({settings.ENVIRONMENT})")

    yield

    from backend.database.db import async_engine
    await async_engine.dispose()


def register_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title=settings.FASTAPI_TITLE,
        version=__version__,
        description=settings.FASTAPI_DESCRIPTION,
        docs_url=settings.FASTAPI_DOCS_URL,
        redoc_url=settings.FASTAPI_REDOC_URL,
        openapi_url=settings.FASTAPI_OPENAPI_URL,
        lifespan=register_init,
    )

    register_middleware(app)
    register_exception(app)
    register_router(app)

    return app


def register_middleware(app: FastAPI) -> None:
    if settings.MIDDLEWARE_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=['*'],
            allow_headers=['*'],
            expose_headers=settings.CORS_EXPOSE_HEADERS,
        )


async def billing_exception_handler(request: Request, exc: BillingError) -> JSONResponse:
    """Render a BillingError as ``{success, error, code, details}`` with its status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception(app: FastAPI) -> None:
    app.exception_handler(BillingError)(billing_exception_handler)


def register_router(app: FastAPI) -> None:
    from backend.app.router import router

    app.include_router(router)
