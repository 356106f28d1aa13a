# config.py
"""
Settings for the establishment directory.

Everything is read from the environment once, at import time. Tests and the
CLI override individual values by assigning to the module attributes.
"""
import os

# Storage gateway
DB_PATH = os.getenv("DIRECTORY_DB_PATH", "./data/directory.db")
DEFAULT_OWNER_ID = int(os.getenv("DIRECTORY_DEFAULT_OWNER_ID", "1"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "DIRECTORY_CORS_ORIGINS", "http://localhost:8080,http://127.0.0.1:8080"
    ).split(",")
    if origin.strip()
]
PASSWORD_HASH_ITERATIONS = 260_000

# Logging
LOG_LEVEL = os.getenv("DIRECTORY_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Client adapters: "rest" talks to the gateway above, "hosted" to Firestore + Supabase Storage
DATA_BACKEND = os.getenv("DIRECTORY_DATA_BACKEND", "rest")
API_BASE_URL = os.getenv("DIRECTORY_API_URL", "http://localhost:8000")
REQUEST_TIMEOUT_SEC = float(os.getenv("DIRECTORY_REQUEST_TIMEOUT_SEC", "12.0"))

FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "")
FIREBASE_API_KEY = os.getenv("FIREBASE_API_KEY", "")
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
STORAGE_BUCKET = os.getenv("DIRECTORY_STORAGE_BUCKET", "attachments")
