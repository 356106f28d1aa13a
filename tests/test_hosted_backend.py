"""
HostedBackend tests with a mocked HTTP session.
"""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from directory_api.clients.hosted import (
    HostedBackend,
    build_establishment_query,
    decode_value,
    encode_value,
    to_client_establishment,
)
from directory_api.errors import DirectoryClientError
from directory_api.query import EstablishmentFilters
from tests.helpers import make_response

BASE = "https://firestore.googleapis.com/v1/projects/demo/databases/(default)/documents"


def establishment_doc(doc_id, name="Cafe", rating="5", created="2024-05-01T10:00:00.123456789Z", **extra):
    fields = {
        "name": {"stringValue": name},
        "category": {"stringValue": "Restaurant"},
        "location": {"stringValue": "Downtown"},
        "rating": {"stringValue": rating},
        "createdAt": {"timestampValue": created},
    }
    fields.update(extra)
    return {"name": f"projects/demo/databases/(default)/documents/establishments/{doc_id}", "fields": fields}


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def backend(session):
    return HostedBackend(project_id="demo", api_key="", session=session)


def sent(session, call_index=-1):
    args, kwargs = session.request.call_args_list[call_index]
    return args[0], args[1], kwargs


def test_value_encoding():
    assert encode_value("5") == {"stringValue": "5"}
    assert encode_value(None) == {"nullValue": None}
    assert encode_value(True) == {"booleanValue": True}
    assert encode_value(3) == {"integerValue": "3"}
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert encode_value(stamp) == {"timestampValue": "2024-01-02T03:04:05Z"}
    assert decode_value({"integerValue": "12"}) == 12
    assert decode_value({"timestampValue": "2024-01-02T03:04:05Z"}) == stamp


def test_structured_query_for_filters_and_sort():
    query = build_establishment_query(
        EstablishmentFilters(category="Retail", location="All locations", rating="4+ stars"), "Name A-Z"
    )
    assert query["from"] == [{"collectionId": "establishments"}]
    filters = query["where"]["compositeFilter"]["filters"]
    assert query["where"]["compositeFilter"]["op"] == "AND"
    assert [f["fieldFilter"]["op"] for f in filters] == ["EQUAL", "GREATER_THAN_OR_EQUAL"]
    assert filters[1]["fieldFilter"]["value"] == {"stringValue": "4"}
    assert query["orderBy"] == [{"field": {"fieldPath": "name"}, "direction": "ASCENDING"}]


def test_single_filter_and_default_sort():
    query = build_establishment_query(EstablishmentFilters(rating="5 stars"))
    assert query["where"]["fieldFilter"]["field"] == {"fieldPath": "rating"}
    assert query["orderBy"] == [{"field": {"fieldPath": "createdAt"}, "direction": "DESCENDING"}]


def test_unknown_sort_has_no_order():
    assert "orderBy" not in build_establishment_query(None, "Popular")
    assert "where" not in build_establishment_query(None, "Popular")


def test_document_conversion():
    establishment = to_client_establishment(
        establishment_doc("abc123", description={"stringValue": ""}, userId={"stringValue": "uid-1"})
    )
    assert establishment.id == "abc123"
    assert establishment.description is None
    assert establishment.user_id == "uid-1"
    assert establishment.created_at == datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)


def test_list_establishments_runs_query(backend, session):
    session.request.return_value = make_response(200, [
        {"document": establishment_doc("a", name="A")},
        {"document": establishment_doc("b", name="B")},
        {"readTime": "2024-05-01T10:00:00Z"},
    ])

    results = backend.list_establishments(EstablishmentFilters(category="Restaurant"), "Newest first")

    assert [e.name for e in results] == ["A", "B"]
    method, url, kwargs = sent(session)
    assert method == "POST"
    assert url == f"{BASE}:runQuery"
    assert kwargs["json"]["structuredQuery"]["where"]["fieldFilter"]["value"] == {"stringValue": "Restaurant"}


def test_get_missing_returns_none(backend, session):
    session.request.return_value = make_response(404, {"error": {"code": 404, "message": "not found"}})
    assert backend.get_establishment("nope") is None


def test_create_establishment(backend, session):
    session.request.return_value = make_response(200, establishment_doc("new1", name="Shop"))

    created = backend.create_establishment(
        {"name": "Shop", "category": "Retail", "location": "Uptown", "description": ""}, acting_user_id="uid-9"
    )

    assert created.id == "new1"
    method, url, kwargs = sent(session)
    assert (method, url) == ("POST", f"{BASE}/establishments")
    fields = kwargs["json"]["fields"]
    assert fields["userId"] == {"stringValue": "uid-9"}
    assert fields["description"] == {"nullValue": None}
    assert fields["rating"] == {"stringValue": "5"}
    assert "timestampValue" in fields["createdAt"]


def test_update_sends_mask_and_precondition(backend, session):
    session.request.return_value = make_response(200, establishment_doc("e1"))

    assert backend.update_establishment("e1", {"id": "e1", "name": "Renamed", "cover_image": ""}) is True

    method, url, kwargs = sent(session)
    assert (method, url) == ("PATCH", f"{BASE}/establishments/e1")
    assert ("updateMask.fieldPaths", "name") in kwargs["params"]
    assert ("updateMask.fieldPaths", "coverImage") in kwargs["params"]
    assert ("currentDocument.exists", "true") in kwargs["params"]
    assert kwargs["json"]["fields"] == {"name": {"stringValue": "Renamed"}, "coverImage": {"nullValue": None}}


def test_update_with_nothing_to_change_sends_no_patch(backend, session):
    session.request.return_value = make_response(200, establishment_doc("e1"))
    assert backend.update_establishment("e1", {"id": "e1", "created_at": "x"}) is True

    session.request.return_value = make_response(404, {"error": {"message": "not found"}})
    assert backend.update_establishment("gone", {}) is False

    methods = [args[0] for args, _ in session.request.call_args_list]
    assert methods == ["GET", "GET"]


def test_update_ignores_unknown_fields(backend, session):
    session.request.return_value = make_response(200, establishment_doc("e1"))

    backend.update_establishment("e1", {"name": "Renamed", "popularity": 9})

    _, _, kwargs = sent(session)
    assert [value for key, value in kwargs["params"] if key == "updateMask.fieldPaths"] == ["name"]
    assert kwargs["json"]["fields"] == {"name": {"stringValue": "Renamed"}}


def test_update_missing_returns_false(backend, session):
    session.request.return_value = make_response(404, {"error": {"message": "No document to update"}})
    assert backend.update_establishment("gone", {"name": "x"}) is False


def test_delete_cascades_to_attachment_documents(backend, session):
    attachment_doc = {
        "name": "projects/demo/databases/(default)/documents/attachments/att1",
        "fields": {"establishmentId": {"stringValue": "e1"}},
    }
    session.request.side_effect = [
        make_response(200, establishment_doc("e1")),   # existence check
        make_response(200, [{"document": attachment_doc}]),  # attachment query
        make_response(200, {}),  # delete attachment
        make_response(200, {}),  # delete establishment
    ]

    assert backend.delete_establishment("e1") is True

    calls = [(args[0], args[1]) for args, _ in session.request.call_args_list]
    assert calls[2] == ("DELETE", f"{BASE}/attachments/att1")
    assert calls[3] == ("DELETE", f"{BASE}/establishments/e1")


def test_create_attachment_checks_establishment(backend, session):
    session.request.return_value = make_response(404, {"error": {"message": "missing"}})
    with pytest.raises(DirectoryClientError, match="Establishment not found"):
        backend.create_attachment(
            {
                "file_name": "a.pdf",
                "file_type": "application/pdf",
                "file_size": "1.00 MB",
                "file_path": "https://x/a.pdf",
                "establishment_id": "e404",
            },
            acting_user_id="uid",
        )
    # only the lookup was made
    assert session.request.call_count == 1


def test_errors_carry_the_store_message(backend, session):
    session.request.return_value = make_response(403, {"error": {"code": 403, "message": "Missing or insufficient permissions."}})
    with pytest.raises(DirectoryClientError) as excinfo:
        backend.list_establishments()
    assert excinfo.value.message == "Missing or insufficient permissions."
    assert excinfo.value.status_code == 403


def test_auth_token_is_sent(session):
    auth = Mock(id_token="token-123")
    backend = HostedBackend(project_id="demo", api_key="k", auth=auth, session=session)
    session.request.return_value = make_response(200, [])

    backend.list_establishments()

    _, _, kwargs = sent(session)
    assert kwargs["headers"] == {"Authorization": "Bearer token-123"}
    assert ("key", "k") in kwargs["params"]


def test_project_id_is_required(monkeypatch):
    monkeypatch.setattr("directory_api.config.FIREBASE_PROJECT_ID", "")
    with pytest.raises(ValueError):
        HostedBackend(session=Mock())
