"""Application factory for the ladder HTTP API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.engine import Engine

from api.errors import register_exception_handlers
from api.routes import api_router
from api.security import SecurityMiddleware, limiter, rate_limit_exceeded_handler
from challonge.cache import ParticipantCache
from challonge.client import ChallongeClient
from config import AppConfig
from db import create_db_engine, create_session_factory

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    *,
    engine: Engine | None = None,
    challonge_client: ChallongeClient | None = None,
    participant_cache: ParticipantCache | None = None,
) -> FastAPI:
    """Wire config, database and Challonge collaborators into a FastAPI app.

    An engine passed in is left open at shutdown; one created here is
    disposed with the app.
    """
    owns_engine = engine is None
    db_engine = engine if engine is not None else create_db_engine(config.database.url)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Ladder API starting (environment=%s)", config.server.environment)
        yield
        if owns_engine:
            db_engine.dispose()
        logger.info("Ladder API stopped")

    app = FastAPI(title="Ladder API", lifespan=lifespan)
    app.state.config = config
    app.state.engine = db_engine
    app.state.session_factory = create_session_factory(db_engine)
    app.state.challonge_client = challonge_client or ChallongeClient(config.challonge)
    app.state.participant_cache = participant_cache or ParticipantCache(
        ttl_seconds=config.challonge.participants_cache_ttl_seconds
    )

    limiter.enabled = config.rate_limit.enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Starlette runs the last-added middleware first.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityMiddleware, server=config.server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


__all__ = ["create_app"]
