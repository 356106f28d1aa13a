# routes/users.py
import logging
import sqlite3

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_storage, parse_id
from ..models import UserOut, UserRegister
from ..storage import DatabaseStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

@router.post("/register", status_code=201, response_model=UserOut)
def register_user(data: UserRegister, store: DatabaseStorage = Depends(get_storage)):
    try:
        if store.get_user_by_username(data.username):
            raise HTTPException(status_code=400, detail="Username already exists")
        user = store.create_user(data.model_dump(exclude={"confirm_password"}))
    except sqlite3.IntegrityError as e:
        # lost a race with a concurrent registration, or the email is taken
        if "users.username" in str(e):
            raise HTTPException(status_code=400, detail="Username already exists")
        raise HTTPException(status_code=409, detail="Email already registered")
    except sqlite3.Error:
        logger.exception("Failed to create user %s", data.username)
        raise HTTPException(status_code=500, detail="Failed to create user")
    logger.info("Registered user %s (id=%s)", user["username"], user["id"])
    return user

@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, store: DatabaseStorage = Depends(get_storage)):
    uid = parse_id(user_id, "user")
    try:
        user = store.get_user(uid)
    except sqlite3.Error:
        logger.exception("Failed to get user %s", uid)
        raise HTTPException(status_code=500, detail="Failed to get user")
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
