# lifespan.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import config
from .database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema before serving; nothing to tear down."""
    logger.info("Starting %s with database %s", app.title, config.DB_PATH)
    init_db()
    yield
    logger.info("Shutting down %s", app.title)
