import json

import pytest

from slingshot.export.postman import SCHEMA_V21, convert_url, export_collection
from slingshot.parser.postman import parse_postman
from slingshot.store.base import NotFoundError
from slingshot.store.memory import InMemoryStore
from slingshot.store.models import (
    Collection,
    Folder,
    FormField,
    KeyValue,
    Request,
    RequestFields,
    Secret,
    Variable,
)


def _by_name(items, name):
    return [i for i in items if i.name == name][0]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def collection(store):
    """Collection with Users > Admin, a root request and one request per body mode."""
    collection = store.create_collection(
        Collection(
            name="Shop",
            description="Shop API",
            variables=[Variable(key="baseUrl", value="https://api.example.com")],
        )
    )
    store.create_secret(Secret(key="token", value="s3cret", collection_id=collection.id))
    users = store.create_folder(Folder(collection_id=collection.id, name="Users", description="people"))
    admin = store.create_folder(Folder(collection_id=collection.id, name="Admin", parent_folder_id=users.id))

    store.create_request(Request(collection_id=collection.id, name="Health", url="{{baseUrl}}/health"))
    store.create_request(
        Request(
            collection_id=collection.id,
            folder_id=users.id,
            name="List users",
            url="{{baseUrl}}/users",
            headers=[KeyValue(key="Accept", value="application/json")],
            params=[KeyValue(key="limit", value="10"), KeyValue(key="debug", value="1", enabled=False)],
        )
    )
    store.create_request(
        Request(
            collection_id=collection.id,
            folder_id=admin.id,
            name="Update user",
            method="PUT",
            url="{{baseUrl}}/users/:id",
            path_params=[KeyValue(key="id", value="42")],
            request_type="raw",
            content_type="json",
            body='{"name": "a"}',
        )
    )
    store.create_request(
        Request(
            collection_id=collection.id,
            folder_id=admin.id,
            name="Upload",
            method="POST",
            url="{{baseUrl}}/upload",
            request_type="form-data",
            form_data=[
                FormField(key="title", value="me"),
                FormField(key="file", value="/tmp/me.png", type="file"),
            ],
        )
    )
    store.create_request(
        Request(
            collection_id=collection.id,
            name="Login",
            method="POST",
            url="{{baseUrl}}/login",
            request_type="url-encoded",
            url_encoded_data=[KeyValue(key="user", value="alice"), KeyValue(key="otp", value="", enabled=False)],
        )
    )
    return collection


class TestBundle:
    def test_info_block(self, store, collection):
        bundle = export_collection(store, collection.id)
        assert bundle["info"] == {
            "_postman_id": collection.id,
            "name": "Shop",
            "description": "Shop API",
            "schema": SCHEMA_V21,
        }

    def test_root_requests_before_folders(self, store, collection):
        items = export_collection(store, collection.id)["item"]
        assert [i["name"] for i in items] == ["Health", "Login", "Users"]
        users = items[2]
        assert users["description"] == "people"
        assert [i["name"] for i in users["item"]] == ["List users", "Admin"]
        assert [i["name"] for i in users["item"][1]["item"]] == ["Update user", "Upload"]

    def test_secrets_only_on_request(self, store, collection):
        plain = export_collection(store, collection.id)["variable"]
        assert [v["key"] for v in plain] == ["baseUrl"]
        full = export_collection(store, collection.id, include_secrets=True)["variable"]
        assert {v["key"]: v["value"] for v in full} == {"baseUrl": "https://api.example.com", "token": "s3cret"}

    def test_draft_edits_not_exported(self, store, collection):
        health = _by_name(store.list_requests(collection.id), "Health")
        store.update_request(health.with_draft(RequestFields(method="DELETE", url="{{baseUrl}}/other")))
        item = export_collection(store, collection.id)["item"][0]
        assert item["request"]["method"] == "GET"
        assert item["request"]["url"]["raw"] == "{{baseUrl}}/health"

    def test_missing_collection(self, store):
        with pytest.raises(NotFoundError):
            export_collection(store, "nope")

    def test_bundle_is_json_serializable(self, store, collection):
        assert json.loads(json.dumps(export_collection(store, collection.id)))["info"]["name"] == "Shop"


class TestUrl:
    def test_variable_host(self):
        url = convert_url(Request(collection_id="c", name="r", url="{{baseUrl}}/users/:id", path_params=[KeyValue(key="id", value="7")]))
        assert url["host"] == ["{{baseUrl}}"]
        assert url["path"] == ["users", ":id"]
        assert url["variable"] == [{"key": "id", "value": "7"}]

    def test_absolute_url_parts(self):
        url = convert_url(Request(collection_id="c", name="r", url="https://api.example.com:8443/v1/items?x=1"))
        assert url["raw"] == "https://api.example.com:8443/v1/items?x=1"
        assert url["protocol"] == "https"
        assert url["host"] == ["api", "example", "com"]
        assert url["port"] == "8443"
        assert url["path"] == ["v1", "items"]
        assert "query" not in url

    def test_raw_url_only_carries_enabled_params(self):
        request = Request(
            collection_id="c",
            name="r",
            url="https://h/items?stale=1",
            params=[KeyValue(key="a", value="1"), KeyValue(key="b", value="2", enabled=False)],
        )
        url = convert_url(request)
        assert url["raw"] == "https://h/items?a=1"
        assert url["query"] == [
            {"key": "a", "value": "1", "disabled": False},
            {"key": "b", "value": "2", "disabled": True},
        ]


class TestRoundTrip:
    @pytest.fixture
    def reimported(self, store, collection):
        bundle = export_collection(store, collection.id)
        return parse_postman(json.dumps(bundle))

    def test_collection_metadata(self, reimported):
        assert reimported.collection_name == "Shop"
        assert reimported.description == "Shop API"
        assert [(v.key, v.value) for v in reimported.variables] == [("baseUrl", "https://api.example.com")]

    def test_folder_tree(self, reimported):
        assert reimported.folder_names == ["Users", "Admin"]
        users = _by_name(reimported.folders, "Users")
        admin = _by_name(reimported.folders, "Admin")
        assert admin.parent_folder_id == users.id
        assert _by_name(reimported.requests, "List users").folder_id == users.id
        assert _by_name(reimported.requests, "Update user").folder_id == admin.id
        assert _by_name(reimported.requests, "Health").folder_id is None

    def test_query_rows_keep_enabled_state(self, reimported):
        request = _by_name(reimported.requests, "List users")
        assert request.url == "{{baseUrl}}/users?limit=10"
        assert [(p.key, p.value, p.enabled) for p in request.params] == [
            ("limit", "10", True),
            ("debug", "1", False),
        ]
        assert [(h.key, h.value) for h in request.headers] == [("Accept", "application/json")]

    def test_path_variable_values(self, reimported):
        request = _by_name(reimported.requests, "Update user")
        assert request.method == "PUT"
        assert [(p.key, p.value) for p in request.path_params] == [("id", "42")]

    def test_raw_body(self, reimported):
        request = _by_name(reimported.requests, "Update user")
        assert request.request_type == "raw"
        assert request.content_type == "json"
        assert request.body == '{"name": "a"}'

    def test_form_data_body(self, reimported):
        request = _by_name(reimported.requests, "Upload")
        assert request.request_type == "form-data"
        assert [(f.key, f.value, f.type) for f in request.form_data] == [
            ("title", "me", "text"),
            ("file", "/tmp/me.png", "file"),
        ]

    def test_urlencoded_body(self, reimported):
        request = _by_name(reimported.requests, "Login")
        assert request.request_type == "url-encoded"
        assert [(p.key, p.enabled) for p in request.url_encoded_data] == [("user", True), ("otp", False)]
