"""Client backend that talks to the directory's own REST API."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from pydantic.alias_generators import to_camel

from .. import config
from ..errors import DirectoryClientError, describe_error_body
from ..models import ClientAttachment, ClientEstablishment
from ..query import EstablishmentFilters
from ..utils import parse_timestamp
from .base import REQUIRED_ATTACHMENT_FIELDS, REQUIRED_ESTABLISHMENT_FIELDS, clean_update

logger = logging.getLogger(__name__)


def to_client_establishment(row: Dict[str, Any]) -> ClientEstablishment:
    user_id = row.get("userId")
    return ClientEstablishment(
        id=str(row["id"]),
        name=row["name"],
        category=row["category"],
        location=row["location"],
        description=row.get("description") or None,
        rating=row.get("rating") or "5",
        cover_image=row.get("coverImage") or None,
        user_id=str(user_id) if user_id is not None else None,
        created_at=parse_timestamp(row.get("createdAt")) or datetime.now(timezone.utc),
    )

def to_client_attachment(row: Dict[str, Any]) -> ClientAttachment:
    return ClientAttachment(
        id=str(row["id"]),
        file_name=row["fileName"],
        file_type=row["fileType"],
        file_size=row["fileSize"],
        file_path=row["filePath"],
        storage_key=row.get("storageKey") or None,
        establishment_id=str(row["establishmentId"]),
        user_id=str(row["userId"]),
        upload_date=parse_timestamp(row.get("uploadDate")) or datetime.now(timezone.utc),
    )

def _numeric_id(value: Any, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DirectoryClientError(f"Invalid {what}: {value!r}")


class RestBackend:
    """DirectoryBackend over HTTP. ``session`` may be any requests-compatible client."""

    def __init__(self, base_url: Optional[str] = None, session=None, timeout: Optional[float] = None):
        self.base_url = (base_url if base_url is not None else config.API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or config.REQUEST_TIMEOUT_SEC

    def _request(self, method: str, path: str, params=None, json=None, allow_not_found: bool = False):
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, params=params, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            raise DirectoryClientError(f"Could not reach the directory API: {e}") from e

        if allow_not_found and resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            message = describe_error_body(resp.status_code, resp.text)
            logger.warning("%s %s failed with %s: %s", method, path, resp.status_code, message)
            raise DirectoryClientError(message, resp.status_code)
        return resp.json()

    # --- Establishments ---

    def list_establishments(
        self, filters: Optional[EstablishmentFilters] = None, sort_by: Optional[str] = None
    ) -> List[ClientEstablishment]:
        params = {}
        if filters:
            for key in ("category", "location", "rating"):
                value = getattr(filters, key)
                if value:
                    params[key] = value
        if sort_by:
            params["sortBy"] = sort_by
        rows = self._request("GET", "/api/establishments", params=params)
        return [to_client_establishment(row) for row in rows]

    def get_establishment(self, establishment_id: str) -> Optional[ClientEstablishment]:
        row = self._request("GET", f"/api/establishments/{establishment_id}", allow_not_found=True)
        return to_client_establishment(row) if row is not None else None

    def create_establishment(
        self, data: Dict[str, Any], acting_user_id: Optional[str] = None
    ) -> ClientEstablishment:
        if not all(data.get(field) for field in REQUIRED_ESTABLISHMENT_FIELDS):
            raise DirectoryClientError("Missing required fields: name, category, and location are required")

        body = {
            "name": data["name"],
            "category": data["category"],
            "location": data["location"],
            "description": data.get("description") or None,
            "rating": data.get("rating") or "5",
            "coverImage": data.get("cover_image") or None,
        }
        # without a user the gateway applies its configured default owner
        if acting_user_id is not None:
            body["userId"] = _numeric_id(acting_user_id, "user id")
        row = self._request("POST", "/api/establishments", json=body)
        return to_client_establishment(row)

    def update_establishment(self, establishment_id: str, data: Dict[str, Any]) -> bool:
        update = clean_update(data)
        if update.get("user_id") is not None:
            update["user_id"] = _numeric_id(update["user_id"], "user id")
        body = {to_camel(k): v for k, v in update.items()}
        result = self._request(
            "PATCH", f"/api/establishments/{establishment_id}", json=body, allow_not_found=True
        )
        return bool(result and result.get("success"))

    def delete_establishment(self, establishment_id: str) -> bool:
        result = self._request("DELETE", f"/api/establishments/{establishment_id}", allow_not_found=True)
        return bool(result and result.get("success"))

    # --- Attachments ---

    def list_attachments(self, establishment_id: str) -> List[ClientAttachment]:
        rows = self._request("GET", f"/api/establishments/{establishment_id}/attachments")
        return [to_client_attachment(row) for row in rows]

    def create_attachment(self, data: Dict[str, Any], acting_user_id: str) -> ClientAttachment:
        if not acting_user_id or not all(data.get(field) for field in REQUIRED_ATTACHMENT_FIELDS):
            raise DirectoryClientError("Missing required fields for attachment")

        body = {
            "fileName": data["file_name"],
            "fileType": data["file_type"],
            "fileSize": data["file_size"],
            "filePath": data["file_path"],
            "storageKey": data.get("storage_key"),
            "establishmentId": _numeric_id(data["establishment_id"], "establishment id"),
            "userId": _numeric_id(acting_user_id, "user id"),
        }
        row = self._request("POST", "/api/attachments", json=body)
        return to_client_attachment(row)

    def delete_attachment(self, attachment_id: str) -> bool:
        result = self._request("DELETE", f"/api/attachments/{attachment_id}", allow_not_found=True)
        return bool(result and result.get("success"))
