"""
Client backend over a hosted document store (Cloud Firestore REST API).

Documents live in the ``establishments`` and ``attachments`` collections
with camelCase field names. Filtering and ordering are pushed into the
store's structured queries using only equality and range operators.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic.alias_generators import to_camel

from .. import config
from ..errors import DirectoryClientError
from ..models import ClientAttachment, ClientEstablishment
from ..query import EstablishmentFilters, resolve_conditions, resolve_sort
from ..utils import parse_timestamp
from .base import REQUIRED_ATTACHMENT_FIELDS, REQUIRED_ESTABLISHMENT_FIELDS, clean_update

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1/projects/{project}/databases/(default)/documents"

ESTABLISHMENTS_COLLECTION = "establishments"
ATTACHMENTS_COLLECTION = "attachments"

FIELD_OPERATORS = {"==": "EQUAL", ">=": "GREATER_THAN_OR_EQUAL"}


# --- Firestore typed values ---

def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {"timestampValue": value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    return {"stringValue": str(value)}

def decode_value(value: Dict[str, Any]) -> Any:
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return value["booleanValue"]
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    return None

def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}

def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}

def document_id(document: Dict[str, Any]) -> str:
    return document["name"].rsplit("/", 1)[-1]

def field_filter(field: str, op: str, value: Any) -> Dict[str, Any]:
    return {
        "fieldFilter": {
            "field": {"fieldPath": to_camel(field)},
            "op": FIELD_OPERATORS[op],
            "value": encode_value(value),
        }
    }

def build_structured_query(
    collection: str, conditions: List[Tuple[str, str, Any]], order: Optional[Tuple[str, bool]] = None
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"from": [{"collectionId": collection}]}
    filters = [field_filter(field, op, value) for field, op, value in conditions]
    if len(filters) == 1:
        query["where"] = filters[0]
    elif filters:
        query["where"] = {"compositeFilter": {"op": "AND", "filters": filters}}
    if order:
        field, descending = order
        query["orderBy"] = [
            {"field": {"fieldPath": to_camel(field)}, "direction": "DESCENDING" if descending else "ASCENDING"}
        ]
    return query

def build_establishment_query(
    filters: Optional[EstablishmentFilters] = None, sort_by: Optional[str] = None
) -> Dict[str, Any]:
    conditions = [(c.field, c.op, c.value) for c in resolve_conditions(filters)]
    return build_structured_query(ESTABLISHMENTS_COLLECTION, conditions, resolve_sort(sort_by))


# --- documents -> canonical shapes ---

def _created(fields: Dict[str, Any], document: Dict[str, Any], key: str) -> datetime:
    value = fields.get(key)
    if isinstance(value, datetime):
        return value
    return parse_timestamp(document.get("createTime")) or datetime.now(timezone.utc)

def to_client_establishment(document: Dict[str, Any]) -> ClientEstablishment:
    fields = decode_fields(document.get("fields", {}))
    user_id = fields.get("userId")
    return ClientEstablishment(
        id=document_id(document),
        name=fields.get("name", ""),
        category=fields.get("category", ""),
        location=fields.get("location", ""),
        description=fields.get("description") or None,
        rating=fields.get("rating") or "5",
        cover_image=fields.get("coverImage") or None,
        user_id=str(user_id) if user_id not in (None, "") else None,
        created_at=_created(fields, document, "createdAt"),
    )

def to_client_attachment(document: Dict[str, Any]) -> ClientAttachment:
    fields = decode_fields(document.get("fields", {}))
    return ClientAttachment(
        id=document_id(document),
        file_name=fields.get("fileName", ""),
        file_type=fields.get("fileType", ""),
        file_size=fields.get("fileSize", ""),
        file_path=fields.get("filePath", ""),
        storage_key=fields.get("storageKey") or None,
        establishment_id=str(fields.get("establishmentId", "")),
        user_id=str(fields.get("userId", "")),
        upload_date=_created(fields, document, "uploadDate"),
    )


def hosted_error_message(resp, fallback: str) -> str:
    try:
        error = resp.json().get("error")
    except ValueError:
        return f"{fallback} ({resp.status_code})"
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str):
        return error
    return f"{fallback} ({resp.status_code})"


class HostedBackend:
    """
    DirectoryBackend over Firestore.

    ``auth`` is an optional object with an ``id_token`` attribute (normally
    an AuthSession); when it holds a token, requests are made as that user.
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        api_key: Optional[str] = None,
        auth=None,
        session=None,
        timeout: Optional[float] = None,
    ):
        self.project_id = project_id or config.FIREBASE_PROJECT_ID
        if not self.project_id:
            raise ValueError("FIREBASE_PROJECT_ID is required for the hosted backend")
        self.api_key = api_key if api_key is not None else config.FIREBASE_API_KEY
        self.auth = auth
        self.session = session or requests.Session()
        self.timeout = timeout or config.REQUEST_TIMEOUT_SEC
        self.base_url = FIRESTORE_URL.format(project=self.project_id)

    def _request(self, method: str, path: str, params=None, json=None, allow_not_found: bool = False):
        params = list(params or [])
        if self.api_key:
            params.append(("key", self.api_key))
        headers = {}
        token = getattr(self.auth, "id_token", None)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            resp = self.session.request(
                method, f"{self.base_url}{path}",
                params=params, json=json, headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DirectoryClientError(f"Could not reach the document store: {e}") from e

        if allow_not_found and resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            message = hosted_error_message(resp, f"Document store request failed: {method} {path}")
            logger.warning("%s %s failed with %s: %s", method, path, resp.status_code, message)
            raise DirectoryClientError(message, resp.status_code)
        if not resp.content:
            return {}
        return resp.json()

    def _run_query(self, structured_query: Dict[str, Any]) -> List[Dict[str, Any]]:
        results = self._request("POST", ":runQuery", json={"structuredQuery": structured_query})
        # entries without "document" only carry read metadata
        return [item["document"] for item in results or [] if "document" in item]

    # --- Establishments ---

    def list_establishments(
        self, filters: Optional[EstablishmentFilters] = None, sort_by: Optional[str] = None
    ) -> List[ClientEstablishment]:
        documents = self._run_query(build_establishment_query(filters, sort_by))
        return [to_client_establishment(doc) for doc in documents]

    def get_establishment(self, establishment_id: str) -> Optional[ClientEstablishment]:
        document = self._request("GET", f"/{ESTABLISHMENTS_COLLECTION}/{establishment_id}", allow_not_found=True)
        return to_client_establishment(document) if document is not None else None

    def create_establishment(
        self, data: Dict[str, Any], acting_user_id: Optional[str] = None
    ) -> ClientEstablishment:
        if not all(data.get(field) for field in REQUIRED_ESTABLISHMENT_FIELDS):
            raise DirectoryClientError("Missing required fields: name, category, and location are required")

        fields = {
            "name": data["name"],
            "category": data["category"],
            "location": data["location"],
            "description": data.get("description") or None,
            "rating": data.get("rating") or "5",
            "coverImage": data.get("cover_image") or None,
            "createdAt": datetime.now(timezone.utc),
        }
        if acting_user_id is not None:
            fields["userId"] = str(acting_user_id)
        document = self._request("POST", f"/{ESTABLISHMENTS_COLLECTION}", json={"fields": encode_fields(fields)})
        return to_client_establishment(document)

    def update_establishment(self, establishment_id: str, data: Dict[str, Any]) -> bool:
        update = {to_camel(k): v for k, v in clean_update(data).items()}
        if "userId" in update and update["userId"] is not None:
            update["userId"] = str(update["userId"])
        # a PATCH without an update mask replaces the whole document
        if not update:
            return self.get_establishment(establishment_id) is not None
        params = [("updateMask.fieldPaths", field) for field in update]
        params.append(("currentDocument.exists", "true"))
        result = self._request(
            "PATCH", f"/{ESTABLISHMENTS_COLLECTION}/{establishment_id}",
            params=params, json={"fields": encode_fields(update)}, allow_not_found=True,
        )
        return result is not None

    def delete_establishment(self, establishment_id: str) -> bool:
        if self.get_establishment(establishment_id) is None:
            return False
        for document in self._attachment_documents(establishment_id):
            self._request("DELETE", f"/{ATTACHMENTS_COLLECTION}/{document_id(document)}")
        result = self._request(
            "DELETE", f"/{ESTABLISHMENTS_COLLECTION}/{establishment_id}",
            params=[("currentDocument.exists", "true")], allow_not_found=True,
        )
        return result is not None

    # --- Attachments ---

    def _attachment_documents(self, establishment_id: str) -> List[Dict[str, Any]]:
        query = build_structured_query(
            ATTACHMENTS_COLLECTION, [("establishment_id", "==", str(establishment_id))]
        )
        return self._run_query(query)

    def list_attachments(self, establishment_id: str) -> List[ClientAttachment]:
        return [to_client_attachment(doc) for doc in self._attachment_documents(establishment_id)]

    def create_attachment(self, data: Dict[str, Any], acting_user_id: str) -> ClientAttachment:
        if not acting_user_id or not all(data.get(field) for field in REQUIRED_ATTACHMENT_FIELDS):
            raise DirectoryClientError("Missing required fields for attachment")
        establishment_id = str(data["establishment_id"])
        if self.get_establishment(establishment_id) is None:
            raise DirectoryClientError("Establishment not found", 404)

        fields = {
            "fileName": data["file_name"],
            "fileType": data["file_type"],
            "fileSize": data["file_size"],
            "filePath": data["file_path"],
            "storageKey": data.get("storage_key"),
            "establishmentId": establishment_id,
            "userId": str(acting_user_id),
            "uploadDate": datetime.now(timezone.utc),
        }
        document = self._request("POST", f"/{ATTACHMENTS_COLLECTION}", json={"fields": encode_fields(fields)})
        return to_client_attachment(document)

    def delete_attachment(self, attachment_id: str) -> bool:
        result = self._request(
            "DELETE", f"/{ATTACHMENTS_COLLECTION}/{attachment_id}",
            params=[("currentDocument.exists", "true")], allow_not_found=True,
        )
        return result is not None
