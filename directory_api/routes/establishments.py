# routes/establishments.py
import logging
import sqlite3
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_acting_user_id, get_storage, parse_id
from ..models import (
    AttachmentOut,
    EstablishmentCreate,
    EstablishmentOut,
    EstablishmentUpdate,
    SuccessResponse,
)
from ..query import EstablishmentFilters
from ..storage import DatabaseStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/establishments", tags=["establishments"])

def _get_existing(store: DatabaseStorage, establishment_id: int, failure: str):
    try:
        establishment = store.get_establishment(establishment_id)
    except sqlite3.Error:
        logger.exception("Failed to look up establishment %s", establishment_id)
        raise HTTPException(status_code=500, detail=failure)
    if not establishment:
        raise HTTPException(status_code=404, detail="Establishment not found")
    return establishment

@router.get("", response_model=List[EstablishmentOut])
def list_establishments(
    category: Optional[str] = None,
    location: Optional[str] = None,
    rating: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    store: DatabaseStorage = Depends(get_storage),
):
    filters = EstablishmentFilters(category=category, location=location, rating=rating)
    try:
        return store.get_establishments(filters, sort_by)
    except sqlite3.Error:
        logger.exception("Failed to list establishments")
        raise HTTPException(status_code=500, detail="Failed to get establishments")

@router.get("/{establishment_id}", response_model=EstablishmentOut)
def get_establishment(establishment_id: str, store: DatabaseStorage = Depends(get_storage)):
    eid = parse_id(establishment_id, "establishment")
    return _get_existing(store, eid, "Failed to get establishment")

@router.post("", status_code=201, response_model=EstablishmentOut)
def create_establishment(
    data: EstablishmentCreate,
    acting_user_id: int = Depends(get_acting_user_id),
    store: DatabaseStorage = Depends(get_storage),
):
    owner_id = data.user_id or acting_user_id
    try:
        establishment = store.create_establishment(data.model_dump(exclude={"user_id"}), owner_id)
    except sqlite3.Error:
        logger.exception("Failed to create establishment %r", data.name)
        raise HTTPException(status_code=500, detail="Failed to create establishment")
    logger.info("Created establishment %s for user %s", establishment["id"], owner_id)
    return establishment

@router.patch("/{establishment_id}", response_model=SuccessResponse)
def update_establishment(
    establishment_id: str,
    data: EstablishmentUpdate,
    store: DatabaseStorage = Depends(get_storage),
):
    eid = parse_id(establishment_id, "establishment")
    _get_existing(store, eid, "Failed to update establishment")
    try:
        updated = store.update_establishment(eid, data.model_dump(exclude_unset=True))
    except sqlite3.Error:
        logger.exception("Failed to update establishment %s", eid)
        raise HTTPException(status_code=500, detail="Failed to update establishment")
    return {"success": updated}

@router.delete("/{establishment_id}", response_model=SuccessResponse)
def delete_establishment(establishment_id: str, store: DatabaseStorage = Depends(get_storage)):
    eid = parse_id(establishment_id, "establishment")
    _get_existing(store, eid, "Failed to delete establishment")
    try:
        deleted = store.delete_establishment(eid)
    except sqlite3.Error:
        logger.exception("Failed to delete establishment %s", eid)
        raise HTTPException(status_code=500, detail="Failed to delete establishment")
    return {"success": deleted}

@router.get("/{establishment_id}/attachments", response_model=List[AttachmentOut])
def list_attachments(establishment_id: str, store: DatabaseStorage = Depends(get_storage)):
    eid = parse_id(establishment_id, "establishment")
    _get_existing(store, eid, "Failed to get attachments")
    try:
        return store.get_attachments(eid)
    except sqlite3.Error:
        logger.exception("Failed to list attachments for establishment %s", eid)
        raise HTTPException(status_code=500, detail="Failed to get attachments")
