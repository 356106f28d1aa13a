# dependencies.py
from typing import Optional

from fastapi import Header, HTTPException

from . import config
from .storage import DatabaseStorage, storage


def get_storage() -> DatabaseStorage:
    return storage

def get_acting_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    """The caller's user id from X-User-Id, or the configured default owner when absent."""
    if x_user_id is None or x_user_id == "":
        return config.DEFAULT_OWNER_ID
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid X-User-Id header")

def parse_id(raw: str, entity: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {entity} ID")
