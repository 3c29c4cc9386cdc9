from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import build_default_session, router
from logging_config import configure_logging


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    session = build_default_session()
    await session.start()
    try:
        yield
    finally:
        session.close()
        build_default_session.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Environment Monitor Analytics",
        description="Health-risk, trend and statistics service for IoT sensor readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
