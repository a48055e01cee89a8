"""Runtime primitives backing the siegekeeper HTTP API."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from siegekeeper.config import Settings, get_settings
from siegekeeper.database import create_db_engine, init_db, make_session_factory
from siegekeeper.services import AutosaveCoordinator, CampaignService

logger = logging.getLogger(__name__)


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        session_factory: sessionmaker[Session] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_engine = session_factory is None
        if session_factory is None:
            engine = create_db_engine(self.settings.DATABASE_URL)
            init_db(engine)
            session_factory = make_session_factory(engine)
        self.engine: Engine = session_factory.kw["bind"]
        self.session_factory = session_factory
        self.campaigns = CampaignService(session_factory)
        self.autosave = AutosaveCoordinator(
            self.campaigns.touch,
            delay_seconds=self.settings.autosave_delay_seconds,
            check_interval_seconds=self.settings.autosave_check_interval_seconds,
        )

    async def startup(self) -> None:
        self.autosave.start()

    async def shutdown(self) -> None:
        await self.autosave.stop()
        if self._owns_engine:
            self.engine.dispose()
            logger.info("database engine disposed")


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
