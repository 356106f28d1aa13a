"""
ObjectStorage tests with a mocked HTTP session.
"""
import base64
import json
import re
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from directory_api.clients.object_storage import LocalFile, ObjectStorage, StorageKeyError, generate_storage_key
from directory_api.errors import DirectoryClientError
from directory_api.models import ClientAttachment
from tests.helpers import make_response

SUPABASE = "https://proj.supabase.co"


@pytest.fixture
def session():
    s = Mock()
    s.headers = {}
    return s


@pytest.fixture
def storage(session):
    return ObjectStorage(base_url=SUPABASE, api_key="anon", bucket="attachments", session=session)


def attachment(**overrides):
    data = dict(
        id="1",
        file_name="menu.pdf",
        file_type="application/pdf",
        file_size="1.00 MB",
        file_path=f"{SUPABASE}/storage/v1/object/public/attachments/establishments/7/1700000000000_abc.pdf",
        storage_key="establishments/7/1700000000000_abc.pdf",
        establishment_id="7",
        user_id="1",
        upload_date=datetime.now(timezone.utc),
    )
    data.update(overrides)
    return ClientAttachment(**data)


def test_storage_key_layout():
    key = generate_storage_key("42", "Annual Report.final.PDF")
    assert re.fullmatch(r"establishments/42/\d{13}_[a-z0-9]{13}\.PDF", key)
    assert generate_storage_key("42", "a.pdf") != generate_storage_key("42", "a.pdf")


def test_api_key_headers(session, storage):
    assert session.headers["apikey"] == "anon"
    assert session.headers["Authorization"] == "Bearer anon"


def test_upload(session, storage):
    session.post.return_value = make_response(200, {"Key": "attachments/whatever"})
    file = LocalFile(name="photo.png", content=b"x" * (3 * 1024 * 1024))

    result = storage.upload(file, "7", "1")

    url = session.post.call_args[0][0]
    kwargs = session.post.call_args[1]
    assert url.startswith(f"{SUPABASE}/storage/v1/object/attachments/establishments/7/")
    assert url.endswith(".png")
    assert kwargs["headers"]["Content-Type"] == "image/png"
    assert kwargs["headers"]["x-upsert"] == "false"
    metadata = json.loads(base64.b64decode(kwargs["headers"]["x-metadata"]))
    assert metadata == {"userId": "1", "establishmentId": "7", "contentType": "image/png"}

    assert result.file_size == "3.00 MB"
    assert result.file_type == "image/png"
    assert result.storage_key == result.id
    assert result.file_path == f"{SUPABASE}/storage/v1/object/public/attachments/{result.storage_key}"


def test_upload_failure(session, storage):
    session.post.return_value = make_response(409, {"statusCode": "409", "error": "Duplicate",
                                                    "message": "The resource already exists"})
    with pytest.raises(DirectoryClientError, match="Upload failed: The resource already exists"):
        storage.upload(LocalFile(name="a.pdf", content=b"1"), "7", "1")


def test_list_uses_metadata_and_falls_back_to_extension(session, storage):
    session.post.return_value = make_response(200, [
        {
            "name": "1_a.pdf",
            "id": "obj-1",
            "created_at": "2024-03-01T12:00:00.000Z",
            "metadata": {"size": 1536, "mimetype": "application/pdf"},
            "user_metadata": {"userId": "5"},
        },
        {"name": "2_b.xlsx", "id": "obj-2", "created_at": None, "metadata": None},
        {"name": "nested", "id": None, "metadata": None},
    ])

    files = storage.list("7")

    assert session.post.call_args[1]["json"]["prefix"] == "establishments/7"
    assert [f.id for f in files] == ["obj-1", "obj-2"]
    assert files[0].file_size == "1.5 KB"
    assert files[0].user_id == "5"
    assert files[0].upload_date == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert files[1].file_type == "application/vnd.ms-excel"
    assert files[1].file_size == "0 B"
    assert files[1].storage_key == "establishments/7/2_b.xlsx"


def test_delete_uses_recorded_key(session, storage):
    session.delete.return_value = make_response(200, [{"name": "x"}])
    assert storage.delete(attachment(file_path="https://cdn.example.com/moved/elsewhere.pdf")) is True
    assert session.delete.call_args[1]["json"] == {"prefixes": ["establishments/7/1700000000000_abc.pdf"]}


def test_delete_recovers_key_from_url(session, storage):
    session.delete.return_value = make_response(200, [])
    storage.delete(attachment(storage_key=None))
    assert session.delete.call_args[1]["json"] == {"prefixes": ["establishments/7/1700000000000_abc.pdf"]}


def test_key_from_unrelated_url_fails(storage):
    with pytest.raises(StorageKeyError):
        storage.key_from_url("https://cdn.example.com/files/a.pdf")


def test_local_file_from_path(tmp_path):
    path = tmp_path / "notes.doc"
    path.write_bytes(b"hello")
    file = LocalFile.from_path(path)
    assert file.name == "notes.doc"
    assert file.size == 5
    assert file.mime_type == "application/msword"
