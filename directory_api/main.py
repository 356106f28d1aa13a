# main.py
import logging
import sqlite3

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .database import get_db
from .errors import register_exception_handlers
from .lifespan import lifespan
from .routes import attachments, establishments, users

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.LOG_FORMAT)


app = FastAPI(title="Establishment Directory", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(users.router)
app.include_router(establishments.router)
app.include_router(attachments.router)


@app.get("/")
def root():
    return {"message": "Establishment Directory API running"}

@app.get("/health")
def health():
    try:
        conn = get_db()
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
    except sqlite3.Error:
        logger.exception("Health check could not reach %s", config.DB_PATH)
        raise HTTPException(status_code=500, detail="Database not available")
    return {"backend": "running", "database": "connected"}
