"""
Startup and shutdown of the REST API.

On startup: logging, a configuration sanity check, then (when
``SEED_ON_STARTUP`` is set) schema creation and the idempotent seed.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from criollo_api.models import Base
from criollo_api.seed import seed
from criollo_shared.config.logging import rest_api_logger as logger
from criollo_shared.config.logging import setup_logging
from criollo_shared.config.settings import settings
from criollo_shared.infrastructure.db import SessionLocal, engine


def check_configuration() -> None:
    """Raise ``RuntimeError`` when production runs with unsafe settings."""
    problems = settings.production_problems()
    for problem in problems:
        logger.error("Unsafe configuration", problem=problem)
    if problems:
        raise RuntimeError("Refusing to start: " + "; ".join(problems))


def prepare_database() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed(db, demo=settings.seed_demo_data)
    logger.info("Database ready", demo_data=settings.seed_demo_data)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    check_configuration()
    logger.info(
        "El Criollo API starting",
        environment=settings.environment,
        port=settings.rest_api_port,
        restaurant=settings.restaurant_name,
    )

    if settings.seed_on_startup:
        prepare_database()

    yield

    engine.dispose()
    logger.info("El Criollo API stopped")
