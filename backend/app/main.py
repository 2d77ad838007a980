import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.api.v1 import yield_estimates
from app.config import settings
from app.core.logging import RequestLoggingMiddleware, setup_logging
from app.models.database import create_tables, dispose_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if settings.yield_cache_backend.lower() == "database":
        await create_tables()
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    setup_logging(json_format=settings.json_logs)

    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(yield_estimates.router, prefix="/api/v1/yield", tags=["yield"])

    @application.get("/health")
    async def health_check() -> dict:
        result: dict = {"status": "ok", "services": {}}
        backend = settings.yield_cache_backend.lower()
        result["services"]["yield_cache"] = backend

        if backend == "database":
            from app.models.database import get_session_factory

            try:
                async with get_session_factory()() as session:
                    await session.execute(text("SELECT 1"))
                result["services"]["database"] = "ok"
            except Exception as e:
                logger.warning("Health check: database unavailable: %s", e)
                result["services"]["database"] = f"error: {e}"
                result["status"] = "degraded"

        return result

    return application


app = create_app()
