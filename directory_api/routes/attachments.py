# routes/attachments.py
import logging
import sqlite3

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_acting_user_id, get_storage, parse_id
from ..models import AttachmentCreate, AttachmentOut, SuccessResponse
from ..storage import DatabaseStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/attachments", tags=["attachments"])

@router.post("", status_code=201, response_model=AttachmentOut)
def create_attachment(
    data: AttachmentCreate,
    acting_user_id: int = Depends(get_acting_user_id),
    store: DatabaseStorage = Depends(get_storage),
):
    owner_id = data.user_id or acting_user_id
    try:
        if not store.get_establishment(data.establishment_id):
            raise HTTPException(status_code=404, detail="Establishment not found")
        attachment = store.create_attachment(data.model_dump(exclude={"user_id"}), owner_id)
    except sqlite3.Error:
        logger.exception("Failed to create attachment %r", data.file_name)
        raise HTTPException(status_code=500, detail="Failed to create attachment")
    return attachment

@router.get("/{attachment_id}", response_model=AttachmentOut)
def get_attachment(attachment_id: str, store: DatabaseStorage = Depends(get_storage)):
    aid = parse_id(attachment_id, "attachment")
    try:
        attachment = store.get_attachment(aid)
    except sqlite3.Error:
        logger.exception("Failed to get attachment %s", aid)
        raise HTTPException(status_code=500, detail="Failed to get attachment")
    if not attachment:
        raise HTTPException(status_code=404, detail="Attachment not found")
    return attachment

@router.delete("/{attachment_id}", response_model=SuccessResponse)
def delete_attachment(attachment_id: str, store: DatabaseStorage = Depends(get_storage)):
    aid = parse_id(attachment_id, "attachment")
    try:
        deleted = store.delete_attachment(aid)
    except sqlite3.Error:
        logger.exception("Failed to delete attachment %s", aid)
        raise HTTPException(status_code=500, detail="Failed to delete attachment")
    if not deleted:
        raise HTTPException(status_code=404, detail="Attachment not found")
    return {"success": True}
