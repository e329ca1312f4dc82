from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pagegrade.api_routers.v1 import api_router
from pagegrade.features.health.routes.health import router as health_router
from pagegrade.platform.cache.redis import create_async_redis_client, create_redis_client
from pagegrade.platform.config import settings
from pagegrade.platform.exceptions import add_exception_handlers
from pagegrade.platform.logger import get_logger

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Client handles are created once per process and shared by all requests
    if getattr(app.state, "redis", None) is None:
        app.state.redis = create_redis_client()
    if getattr(app.state, "async_redis", None) is None:
        app.state.async_redis = create_async_redis_client()
    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")

    yield

    app.state.redis.close()
    await app.state.async_redis.aclose()
    logger.info(f"{settings.APP_NAME} stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Queue a URL, score it for SEO and AI-search visibility, share the report.",
        version=VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # Root endpoint for basic info
    @app.get("/", tags=["Info"])
    def root():
        return {
            "app_name": f"{settings.APP_NAME} API",
            "description": "Page quality scoring for search engines and AI answer engines.",
            "version": VERSION,
            "docs_url": "/docs",
            "api_base": "/api/v1",
        }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()
