"""FastAPI application wiring for siegekeeper."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siegekeeper import __version__
from siegekeeper.api import routes
from siegekeeper.api.runtime import ApiState, build_state
from siegekeeper.config import get_settings

logger = logging.getLogger(__name__)

DESCRIPTION = "Campaign storage with whole-campaign export, import and duplication."


def create_app(*, state_factory: Callable[[], ApiState] = build_state) -> FastAPI:
    """Build the API; ``state_factory`` runs once per lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        api_state = state_factory()
        app.state.api_state = api_state
        await api_state.startup()
        logger.info(
            "siegekeeper API ready (autosave after %.1fs of quiet)",
            api_state.autosave.delay_seconds,
        )
        try:
            yield
        finally:
            await api_state.shutdown()
            logger.info("siegekeeper API stopped")

    app = FastAPI(
        title="Siegekeeper API",
        description=DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.include_router(routes.router)
    return app


app = create_app()
