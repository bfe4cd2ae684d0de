# src/api/main.py

from fastapi import FastAPI
from contextlib import asynccontextmanager

from core.config.settings import settings
from core.containers.app_containers import AppContainer
from core.logging.logger import get_logger
from api.routes.health_router import router as health_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: AppContainer = app.container

    mongo_client = container.mongo_client()
    logger.info("Mongo Connected")

    yield

    mongo_client.close()
    logger.info("Mongo Disconnected")


def create_app() -> FastAPI:
    container = AppContainer()
    container.wire(modules=["api.routes.health_router"])
    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    app.container = container

    app.include_router(health_router)

    return app


app = create_app()
