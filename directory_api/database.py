# database.py
import logging
import sqlite3
from pathlib import Path

from . import config

logger = logging.getLogger(__name__)


def get_db():
    conn = sqlite3.connect(config.DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn

def init_db():
    Path(config.DB_PATH).parent.mkdir(parents=True, exist_ok=True)
    conn = get_db()
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            display_name TEXT,
            photo_url TEXT,
            created_at TEXT NOT NULL
        )
    """)

    # Owner and establishment references are checked by the application, not by FOREIGN KEY
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS establishments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            category TEXT NOT NULL,
            location TEXT NOT NULL,
            description TEXT,
            rating TEXT DEFAULT '5',
            cover_image TEXT,
            user_id INTEGER NOT NULL,
            created_at TEXT NOT NULL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS attachments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            file_name TEXT NOT NULL,
            file_type TEXT NOT NULL,
            file_size TEXT NOT NULL,
            file_path TEXT NOT NULL,
            storage_key TEXT,
            establishment_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            upload_date TEXT NOT NULL
        )
    """)
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_attachments_establishment ON attachments (establishment_id)"
    )

    conn.commit()
    conn.close()
    logger.info("Database ready at %s", config.DB_PATH)
