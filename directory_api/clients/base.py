"""
The operations every data backend offers to client code.

Identifiers are strings and timestamps are aware datetimes whichever store
the data came from; see ``ClientEstablishment`` and ``ClientAttachment``.
"""
from typing import Any, Dict, List, Optional, Protocol

from ..models import ClientAttachment, ClientEstablishment
from ..query import EstablishmentFilters
from ..storage import ESTABLISHMENT_COLUMNS


class DirectoryBackend(Protocol):

    def list_establishments(
        self, filters: Optional[EstablishmentFilters] = None, sort_by: Optional[str] = None
    ) -> List[ClientEstablishment]:
        ...

    def get_establishment(self, establishment_id: str) -> Optional[ClientEstablishment]:
        """None when no establishment has this id."""
        ...

    def create_establishment(
        self, data: Dict[str, Any], acting_user_id: Optional[str] = None
    ) -> ClientEstablishment:
        ...

    def update_establishment(self, establishment_id: str, data: Dict[str, Any]) -> bool:
        """False when the establishment does not exist."""
        ...

    def delete_establishment(self, establishment_id: str) -> bool:
        """Removes the establishment's attachments too. False when it does not exist."""
        ...

    def list_attachments(self, establishment_id: str) -> List[ClientAttachment]:
        ...

    def create_attachment(self, data: Dict[str, Any], acting_user_id: str) -> ClientAttachment:
        ...

    def delete_attachment(self, attachment_id: str) -> bool:
        ...


REQUIRED_ESTABLISHMENT_FIELDS = ("name", "category", "location")
REQUIRED_ATTACHMENT_FIELDS = ("file_name", "file_type", "file_size", "file_path", "establishment_id")


def clean_update(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only updatable establishment columns and turn cleared optional text into None."""
    update = {k: v for k, v in data.items() if k in ESTABLISHMENT_COLUMNS}
    for field in ("description", "cover_image"):
        if update.get(field) == "":
            update[field] = None
    return update
