import json
from pathlib import Path

import pytest

from slingshot.parser.errors import SchemaError, SpecFormatError
from slingshot.parser.postman import extract_url, parse_postman

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample():
    return parse_postman((FIXTURES / "sample.postman.json").read_text(encoding="utf-8"))


def _by_name(items, name):
    return [i for i in items if i.name == name][0]


class TestFolderTree:
    def test_one_folder_per_group(self, sample):
        assert sample.folder_names == ["Users", "Admin"]

    def test_nested_group_parent(self, sample):
        users = _by_name(sample.folders, "Users")
        admin = _by_name(sample.folders, "Admin")
        assert users.parent_folder_id is None
        assert admin.parent_folder_id == users.id

    def test_leaves_attach_to_enclosing_group(self, sample):
        users = _by_name(sample.folders, "Users")
        admin = _by_name(sample.folders, "Admin")
        assert _by_name(sample.requests, "List users").folder_id == users.id
        assert _by_name(sample.requests, "Get user").folder_id == admin.id
        assert _by_name(sample.requests, "Create user").folder_id == admin.id
        assert _by_name(sample.requests, "Login").folder_id is None

    def test_generated_tree(self):
        def group(name, children):
            return {"name": name, "item": children}

        def leaf(name):
            return {"name": name, "request": {"method": "GET", "url": f"https://x.test/{name}"}}

        doc = {
            "info": {"name": "Tree", "schema": "https://schema.getpostman.com/json/collection/v2.0.0/collection.json"},
            "item": [
                group("g1", [leaf("l1"), group("g2", [leaf("l2"), group("g3", [leaf("l3")])])]),
                group("g4", []),
                leaf("l4"),
            ],
        }
        result = parse_postman(json.dumps(doc))
        folders = {f.name: f for f in result.folders}
        assert len(folders) == 4
        expected = {"l1": "g1", "l2": "g2", "l3": "g3"}
        for request in result.requests:
            if request.name in expected:
                assert request.folder_id == folders[expected[request.name]].id
            else:
                assert request.folder_id is None
        assert folders["g3"].parent_folder_id == folders["g2"].id
        assert folders["g2"].parent_folder_id == folders["g1"].id


class TestPostmanParser:
    def test_metadata_and_variables(self, sample):
        assert sample.collection_name == "Sample API"
        assert sample.description == "Users and orders"
        assert [(v.key, v.value) for v in sample.variables] == [
            ("host", "https://api.example.com"),
            ("token", "secret"),
        ]

    def test_name_override(self):
        text = (FIXTURES / "sample.postman.json").read_text(encoding="utf-8")
        assert parse_postman(text, name="Other").collection_name == "Other"

    def test_query_params_and_headers(self, sample):
        request = _by_name(sample.requests, "List users")
        assert request.url == "{{host}}/api/users?page=1&size=20"
        assert [(p.key, p.value, p.enabled) for p in request.params] == [("page", "1", True), ("size", "20", True)]
        assert [(h.key, h.value, h.enabled) for h in request.headers] == [("Accept", "application/json", True)]

    def test_path_params_from_raw_url(self, sample):
        request = _by_name(sample.requests, "Get user")
        assert [p.key for p in request.path_params] == ["userId"]
        assert request.path_params[0].value == ""

    def test_raw_body(self, sample):
        request = _by_name(sample.requests, "Create user")
        assert request.method == "POST"
        assert request.request_type == "raw"
        assert request.content_type == "json"
        assert request.body == '{"name": "Bob"}'

    def test_url_encoded_body_and_url_parts(self, sample):
        request = _by_name(sample.requests, "Login")
        assert request.method == "POST"
        assert request.url == "https://auth.example.com:8443/login"
        assert request.request_type == "url-encoded"
        assert [(f.key, f.value) for f in request.url_encoded_data] == [("username", "bob"), ("password", "pw")]

    def test_form_data_and_unknown_method(self, sample):
        request = _by_name(sample.requests, "Upload")
        assert request.method == "GET"
        assert request.request_type == "form-data"
        assert [(f.key, f.type, f.value) for f in request.form_data] == [
            ("note", "text", "hello"),
            ("file", "file", "/tmp/a.png"),
        ]

    def test_raw_language_mapping(self):
        doc = {
            "info": {"name": "x"},
            "item": [
                {
                    "name": "xml",
                    "request": {
                        "method": "POST",
                        "url": "https://x.test",
                        "body": {"mode": "raw", "raw": "<a/>", "options": {"raw": {"language": "xml"}}},
                    },
                }
            ],
        }
        assert parse_postman(json.dumps(doc)).requests[0].content_type == "xml"

    def test_wrapped_collection(self):
        doc = {"collection": {"info": {"name": "Wrapped"}, "item": []}}
        assert parse_postman(json.dumps(doc)).collection_name == "Wrapped"


class TestExtractUrl:
    def test_string(self):
        assert extract_url("https://a.test/x") == "https://a.test/x"

    def test_parts_without_raw(self):
        assert extract_url({"protocol": "http", "host": "localhost", "port": 3000, "path": "items"}) == (
            "http://localhost:3000/items"
        )

    def test_empty(self):
        assert extract_url(None) == ""


class TestErrors:
    def test_invalid_json(self):
        with pytest.raises(SpecFormatError):
            parse_postman("info: yaml is not accepted")

    def test_missing_info(self):
        with pytest.raises(SchemaError, match="missing info"):
            parse_postman('{"item": []}')

    def test_unsupported_schema(self):
        doc = {"info": {"name": "x", "schema": "https://schema.getpostman.com/json/collection/v1.0.0/"}}
        with pytest.raises(SchemaError, match="Unsupported"):
            parse_postman(json.dumps(doc))


class TestNonStringValues:
    def test_numeric_keys_and_values_coerced(self):
        doc = {
            "info": {"name": "x"},
            "variable": [{"key": 1, "value": 0}],
            "item": [
                {
                    "name": 42,
                    "request": {
                        "method": "POST",
                        "url": {"raw": "https://a.test/x", "query": [{"key": 7, "value": 8}]},
                        "header": [{"key": "X-Retry", "value": 3}],
                        "body": {"mode": "urlencoded", "urlencoded": [{"key": 5, "value": True}]},
                    },
                }
            ],
        }
        result = parse_postman(json.dumps(doc))
        assert [(v.key, v.value) for v in result.variables] == [("1", "0")]
        request = result.requests[0]
        assert request.name == "42"
        assert [(p.key, p.value) for p in request.params] == [("7", "8")]
        assert [(h.key, h.value) for h in request.headers] == [("X-Retry", "3")]
        assert [(f.key, f.value) for f in request.url_encoded_data] == [("5", "True")]

    def test_structured_raw_body_serialized(self):
        doc = {
            "info": {"name": "x"},
            "item": [{"name": "r", "request": {"method": "POST", "url": "https://a.test", "body": {"mode": "raw", "raw": {"a": 1}}}}],
        }
        assert json.loads(parse_postman(json.dumps(doc)).requests[0].body) == {"a": 1}

    def test_host_parts_may_be_numbers(self):
        assert extract_url({"protocol": "http", "host": [127, 0, 0, 1], "path": ["a"]}) == "http://127.0.0.1/a"

    def test_numeric_raw_url_and_path_parts(self):
        doc = {
            "info": {"name": "x"},
            "item": [
                {"name": "a", "request": {"url": {"raw": 12345}}},
                {"name": "b", "request": {"url": {"host": ["h"], "path": ["v", 2]}}},
            ],
        }
        a, b = parse_postman(json.dumps(doc)).requests
        assert a.url == "12345"
        assert b.url == "h/v/2"
