import logging
from contextlib import asynccontextmanager
from typing import Mapping

from fastapi import FastAPI

from prequel.api.router import build_api_router
from prequel.core.config import settings
from prequel.core.database import engine
from prequel.core.prequelize import PrequelModel


def create_app(models: Mapping[str, PrequelModel], title: str = "Prequel API") -> FastAPI:
    """
    FastAPI application exposing CRUD routes for every bound model.

    Example:
        app = create_app(prequelize({"User": models.User}))
    """
    logging.basicConfig(level=settings.LOG_LEVEL)

    # Close the engine once everything is done and close all the sessions
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await engine.dispose()

    app = FastAPI(title=title, lifespan=lifespan)

    # Include the master router containing all model endpoints
    app.include_router(build_api_router(models))

    @app.get("/")
    async def root():
        return {"models": sorted(models)}

    return app
