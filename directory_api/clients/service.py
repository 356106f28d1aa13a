"""
Establishment and attachment operations for an application front end.

Build one DirectoryService at startup and hand it to whatever needs it.
Failures are logged and re-raised as DirectoryClientError for the caller
to show to the user.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from .. import config
from ..errors import DirectoryClientError
from ..models import ClientAttachment, ClientEstablishment
from ..query import EstablishmentFilters
from .base import DirectoryBackend
from .hosted import HostedBackend
from .object_storage import LocalFile, ObjectStorage, StorageKeyError
from .rest import RestBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_backend(name: Optional[str] = None, auth=None) -> DirectoryBackend:
    """Pick the data backend named by DIRECTORY_DATA_BACKEND ("rest" or "hosted")."""
    name = (name or config.DATA_BACKEND).strip().lower()
    if name == "rest":
        return RestBackend()
    if name == "hosted":
        return HostedBackend(auth=auth)
    raise ValueError(f"Unknown data backend {name!r}; expected 'rest' or 'hosted'")


class DirectoryService:

    def __init__(self, backend: DirectoryBackend, storage: ObjectStorage, max_workers: int = 4):
        self.backend = backend
        self.storage = storage
        self.max_workers = max_workers

    def _run(self, action: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except DirectoryClientError as e:
            logger.error("%s: %s", action, e.message)
            raise

    def _delete_stored_file(self, attachment: ClientAttachment) -> None:
        """Remove the attachment's blob; a file outside the bucket is left alone and logged."""
        try:
            self.storage.delete(attachment)
        except StorageKeyError as e:
            logger.warning("Keeping stored file for attachment %s: %s", attachment.id, e.message)

    # --- Establishments ---

    def add_establishment(self, data: Dict[str, Any], acting_user_id: Optional[str] = None) -> ClientEstablishment:
        return self._run(
            "Error adding establishment",
            lambda: self.backend.create_establishment(data, acting_user_id),
        )

    def list_establishments(
        self, filters: Optional[EstablishmentFilters] = None, sort_by: Optional[str] = None
    ) -> List[ClientEstablishment]:
        return self._run(
            "Error loading establishments",
            lambda: self.backend.list_establishments(filters, sort_by),
        )

    def get_establishment(self, establishment_id: str) -> Optional[ClientEstablishment]:
        return self._run(
            "Error loading establishment",
            lambda: self.backend.get_establishment(establishment_id),
        )

    def update_establishment(self, establishment_id: str, data: Dict[str, Any]) -> bool:
        return self._run(
            "Error updating establishment",
            lambda: self.backend.update_establishment(establishment_id, data),
        )

    def delete_establishment(self, establishment_id: str) -> bool:
        """Delete stored files, then the establishment and its attachment records."""
        def delete():
            for attachment in self.backend.list_attachments(establishment_id):
                self._delete_stored_file(attachment)
            return self.backend.delete_establishment(establishment_id)

        return self._run("Error deleting establishment", delete)

    def create_establishment_with_files(
        self,
        data: Dict[str, Any],
        acting_user_id: str,
        cover_image: Optional[LocalFile] = None,
        files: Sequence[LocalFile] = (),
    ) -> ClientEstablishment:
        """Create an establishment, then upload its cover image and documents."""
        establishment = self.add_establishment(data, acting_user_id)

        if cover_image is not None:
            cover = self.upload_attachment(cover_image, establishment.id, acting_user_id)
            self.update_establishment(establishment.id, {"cover_image": cover.file_path})
            establishment = establishment.model_copy(update={"cover_image": cover.file_path})

        if files:
            self.upload_attachments(files, establishment.id, acting_user_id)
        return establishment

    # --- Attachments ---

    def upload_attachment(self, file: LocalFile, establishment_id: str, acting_user_id: str) -> ClientAttachment:
        """Store the blob, then record it against the establishment."""
        def upload():
            stored = self.storage.upload(file, establishment_id, acting_user_id)
            return self.backend.create_attachment(
                {
                    "file_name": stored.file_name,
                    "file_type": stored.file_type,
                    "file_size": stored.file_size,
                    "file_path": stored.file_path,
                    "storage_key": stored.storage_key,
                    "establishment_id": establishment_id,
                },
                acting_user_id,
            )

        return self._run("Error uploading file", upload)

    def upload_attachments(
        self, files: Sequence[LocalFile], establishment_id: str, acting_user_id: str
    ) -> List[ClientAttachment]:
        """
        Upload files in parallel. Each upload stands alone: when one fails the
        others still complete and are kept, and the first failure is raised
        once every upload has finished.
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(self.upload_attachment, file, establishment_id, acting_user_id)
                for file in files
            ]
            wait(futures)

        failures = [f.exception() for f in futures if f.exception() is not None]
        if failures:
            logger.error(
                "%d of %d uploads failed for establishment %s", len(failures), len(futures), establishment_id
            )
            raise failures[0]
        return [f.result() for f in futures]

    def list_attachments(self, establishment_id: str) -> List[ClientAttachment]:
        return self._run(
            "Error loading attachments",
            lambda: self.backend.list_attachments(establishment_id),
        )

    def delete_attachment(self, attachment: ClientAttachment) -> bool:
        def delete():
            self._delete_stored_file(attachment)
            return self.backend.delete_attachment(attachment.id)

        return self._run("Error deleting file", delete)
