"""Blob storage for attachment files (Supabase Storage REST API)."""
import base64
import json
import logging
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urlparse

import requests

from .. import config
from ..errors import DirectoryClientError
from ..models import ClientAttachment
from ..utils import file_extension, file_type_from_name, format_file_size, format_megabytes, parse_timestamp

logger = logging.getLogger(__name__)

KEY_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class StorageKeyError(DirectoryClientError):
    """The storage key of an attachment cannot be worked out from its record."""


@dataclass
class LocalFile:
    name: str
    content: bytes
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path) -> "LocalFile":
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def mime_type(self) -> str:
        return self.content_type or file_type_from_name(self.name)


def establishment_prefix(establishment_id: str) -> str:
    return f"establishments/{establishment_id}"

def generate_storage_key(establishment_id: str, file_name: str) -> str:
    """establishments/<id>/<epoch ms>_<13 random chars>.<original extension>"""
    suffix = "".join(random.choices(KEY_SUFFIX_ALPHABET, k=13))
    return f"{establishment_prefix(establishment_id)}/{int(time.time() * 1000)}_{suffix}.{file_extension(file_name)}"


class ObjectStorage:

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        bucket: Optional[str] = None,
        session=None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or config.SUPABASE_URL).rstrip("/")
        if not self.base_url:
            raise ValueError("SUPABASE_URL is required for object storage")
        self.bucket = bucket or config.STORAGE_BUCKET
        self.timeout = timeout or config.REQUEST_TIMEOUT_SEC
        self.session = session or requests.Session()
        api_key = api_key if api_key is not None else config.SUPABASE_ANON_KEY
        if api_key:
            self.session.headers.update({"apikey": api_key, "Authorization": f"Bearer {api_key}"})

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{key}"

    def key_from_url(self, url: str) -> str:
        """Recover a storage key from a public URL by locating the bucket in its path."""
        path = urlparse(url).path
        marker = f"/{self.bucket}/"
        index = path.find(marker)
        if index == -1 or not path[index + len(marker):]:
            raise StorageKeyError(f"Cannot determine the storage key for {url}")
        return unquote(path[index + len(marker):])

    def _check(self, resp, action: str) -> None:
        if resp.status_code < 400:
            return
        try:
            body = resp.json()
            detail = body.get("message") or body.get("error") or resp.text
        except ValueError:
            detail = resp.text or str(resp.status_code)
        logger.warning("%s failed with %s: %s", action, resp.status_code, detail)
        raise DirectoryClientError(f"{action} failed: {detail}", resp.status_code)

    def upload(self, file: LocalFile, establishment_id: str, acting_user_id: str) -> ClientAttachment:
        key = generate_storage_key(establishment_id, file.name)
        metadata = {
            "userId": str(acting_user_id),
            "establishmentId": str(establishment_id),
            "contentType": file.mime_type,
        }
        headers = {
            "Content-Type": file.mime_type,
            "cache-control": "max-age=3600",
            "x-upsert": "false",
            "x-metadata": base64.b64encode(json.dumps(metadata).encode("utf-8")).decode("ascii"),
        }
        try:
            resp = self.session.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{key}",
                data=file.content, headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DirectoryClientError(f"Upload failed: {e}") from e
        self._check(resp, "Upload")
        logger.info("Uploaded %s (%d bytes) as %s", file.name, file.size, key)

        return ClientAttachment(
            id=key,
            file_name=file.name,
            file_type=file.mime_type,
            file_size=format_megabytes(file.size),
            file_path=self.public_url(key),
            storage_key=key,
            establishment_id=str(establishment_id),
            user_id=str(acting_user_id),
            upload_date=datetime.now(timezone.utc),
        )

    def list(self, establishment_id: str) -> List[ClientAttachment]:
        """Blobs stored for an establishment. Missing metadata is guessed from the file name."""
        prefix = establishment_prefix(establishment_id)
        try:
            resp = self.session.post(
                f"{self.base_url}/storage/v1/object/list/{self.bucket}",
                json={"prefix": prefix, "limit": 100, "offset": 0, "sortBy": {"column": "name", "order": "asc"}},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DirectoryClientError(f"Listing files failed: {e}") from e
        self._check(resp, "Listing files")

        attachments = []
        for item in resp.json() or []:
            # folders have no id
            if item.get("id") is None:
                continue
            key = f"{prefix}/{item['name']}"
            metadata = item.get("metadata") or {}
            user_metadata = item.get("user_metadata") or {}
            attachments.append(ClientAttachment(
                id=item["id"],
                file_name=item["name"],
                file_type=metadata.get("mimetype") or file_type_from_name(item["name"]),
                file_size=format_file_size(metadata.get("size") or 0),
                file_path=self.public_url(key),
                storage_key=key,
                establishment_id=str(establishment_id),
                user_id=str(user_metadata.get("userId") or metadata.get("userId") or ""),
                upload_date=parse_timestamp(item.get("created_at")) or datetime.now(timezone.utc),
            ))
        return attachments

    def delete(self, attachment: ClientAttachment) -> bool:
        key = attachment.storage_key or self.key_from_url(attachment.file_path)
        try:
            resp = self.session.delete(
                f"{self.base_url}/storage/v1/object/{self.bucket}",
                json={"prefixes": [key]}, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DirectoryClientError(f"Delete failed: {e}") from e
        self._check(resp, "Delete")
        logger.info("Deleted stored file %s", key)
        return True
