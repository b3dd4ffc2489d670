"""FastAPI application for the Store Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from libs.db.base import Base
from libs.db.config import engine, wait_for_database
from services.store_service import models  # noqa: F401
from services.store_service.routers import (
    auth_router,
    categories_router,
    orders_router,
    products_router,
    reviews_router,
)
from slowapi.errors import RateLimitExceeded

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.uses_default_jwt_secret and settings.ENVIRONMENT != "local":
        logger.warning("JWT_SECRET is not set; tokens are signed with the default key")

    await wait_for_database(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Storefront Store Service",
        version="0.1.0",
        description="E-commerce API - accounts, catalog, reviews and orders.",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    app.include_router(auth_router, prefix="/api")
    app.include_router(categories_router, prefix="/api")
    app.include_router(products_router, prefix="/api")
    app.include_router(reviews_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")

    return app


app = create_app()
