import json

from slingshot.dispatch.wire import (
    FormProxyRequest,
    ProxyRequest,
    apply_query,
    build_call,
    build_form,
    build_structured,
    format_headers,
    path_param_map,
    prepare_url,
    validate_url,
)
from slingshot.parser.swagger import parse_openapi
from slingshot.resolver import resolve_fields
from slingshot.store.models import FormField, KeyValue, RequestFields


class TestValidateUrl:
    def test_missing(self):
        assert validate_url("") == "URL is required"
        assert validate_url("   ") == "URL is required"

    def test_without_scheme_is_valid(self):
        assert validate_url("api.example.com/users") is None

    def test_malformed(self):
        assert validate_url("http://") == "Invalid URL format"
        assert validate_url("http://host:port/x") == "Invalid URL format"

    def test_unresolved_variable_in_host(self):
        assert validate_url("{{baseUrl}}/users") == "Invalid URL format"


class TestPrepareUrl:
    def test_adds_scheme(self):
        assert prepare_url("localhost:3000/x", []) == "http://localhost:3000/x"

    def test_substitutes_enabled_path_params(self):
        params = [KeyValue(key="id", value="a b"), KeyValue(key="org", value="x", enabled=False)]
        assert prepare_url("https://x.test/:org/users/:id", params) == "https://x.test/:org/users/a%20b"

    def test_does_not_touch_longer_names(self):
        params = [KeyValue(key="id", value="1")]
        assert prepare_url("https://x.test/:id/:idx", params) == "https://x.test/1/:idx"


class TestQueryParams:
    def test_params_become_query_string(self):
        fields = RequestFields(url="https://api.example.com/users", params=[KeyValue(key="limit", value="10")])
        assert build_structured(fields, 30, True).url == "https://api.example.com/users?limit=10"

    def test_disabled_param_removed_from_url(self):
        fields = RequestFields(
            url="https://x.test/a?secret=1&page=2",
            params=[KeyValue(key="secret", value="1", enabled=False), KeyValue(key="page", value="2")],
        )
        assert build_structured(fields, 30, True).url == "https://x.test/a?page=2"

    def test_all_disabled_drops_query(self):
        fields = RequestFields(url="https://x.test/a?secret=1", params=[KeyValue(key="secret", value="1", enabled=False)])
        assert build_structured(fields, 30, True).url == "https://x.test/a"

    def test_no_rows_keeps_url_query(self):
        assert apply_query("https://x.test/a?q=1#top", []) == "https://x.test/a?q=1#top"

    def test_fragment_kept(self):
        assert apply_query("https://x.test/a?old=1#top", [KeyValue(key="q", value="a b")]) == "https://x.test/a?q=a+b#top"

    def test_form_routing_uses_params(self):
        fields = RequestFields(
            method="POST",
            url="https://x.test/login",
            request_type="url-encoded",
            params=[KeyValue(key="next", value="/home")],
        )
        assert build_form(fields, 30, True).url == "https://x.test/login?next=%2Fhome"

    def test_openapi_query_params_reach_the_wire(self):
        doc = (
            "openapi: 3.0.0\n"
            "info: {title: T}\n"
            "servers: [{url: 'https://api.example.com'}]\n"
            "paths:\n"
            "  /users:\n"
            "    get:\n"
            "      parameters:\n"
            "        - {name: limit, in: query, schema: {type: integer, example: 10}}\n"
        )
        draft = parse_openapi(doc).requests[0]
        fields = resolve_fields(draft, {"baseUrl": "https://api.example.com"})
        assert build_structured(fields, 30, True).url == "https://api.example.com/users?limit=10"


class TestHelpers:
    def test_format_headers_filters_disabled_and_empty(self):
        headers = [
            KeyValue(key="Accept", value="*/*"),
            KeyValue(key="X-Off", value="1", enabled=False),
            KeyValue(key="X-Empty", value=""),
        ]
        assert format_headers(headers) == ["Accept: */*"]

    def test_path_param_map(self):
        params = [KeyValue(key="id", value="7"), KeyValue(key="blank", value="")]
        assert path_param_map(params) == {":id": "7"}


class TestBuildStructured:
    def test_get_has_no_body(self):
        fields = RequestFields(method="GET", url="https://x.test", request_type="raw", body="{}")
        request = build_structured(fields, timeout=10, follow_redirects=False)
        assert request.body is None
        assert request.to_wire() == {
            "method": "GET",
            "url": "https://x.test",
            "headers": [],
            "timeout": 10,
            "followRedirects": False,
        }

    def test_post_raw_body_adds_content_type(self):
        fields = RequestFields(method="POST", url="https://x.test", request_type="raw", content_type="json", body="{}")
        request = build_structured(fields, timeout=30, follow_redirects=True)
        assert request.body == "{}"
        assert "Content-Type: application/json" in request.headers

    def test_existing_content_type_kept(self):
        fields = RequestFields(
            method="PUT",
            url="https://x.test",
            headers=[KeyValue(key="content-type", value="text/csv")],
            request_type="raw",
            body="a,b",
        )
        request = build_structured(fields, timeout=30, follow_redirects=True)
        assert request.headers == ["content-type: text/csv"]

    def test_path_params_forwarded(self):
        fields = RequestFields(url="https://x.test/users/:id", path_params=[KeyValue(key="id", value="42")])
        wire = build_structured(fields, timeout=30, follow_redirects=True).to_wire()
        assert wire["url"] == "https://x.test/users/42"
        assert wire["path_params"] == {":id": "42"}

    def test_wire_alias_roundtrip(self):
        request = ProxyRequest.model_validate({"method": "GET", "url": "u", "followRedirects": False})
        assert request.follow_redirects is False


class TestBuildForm:
    def test_routing(self):
        assert isinstance(build_call(RequestFields(request_type="url-encoded"), 30, True), FormProxyRequest)
        assert isinstance(build_call(RequestFields(request_type="raw"), 30, True), ProxyRequest)

    def test_multipart_fields_and_files(self):
        fields = RequestFields(
            method="POST",
            url="https://x.test/upload/:id",
            headers=[KeyValue(key="X-A", value="1"), KeyValue(key="X-B", value="2")],
            path_params=[KeyValue(key="id", value="5")],
            request_type="form-data",
            form_data=[
                FormField(key="note", value="hi"),
                FormField(key="skip", value="x", enabled=False),
                FormField(key="empty", value=""),
                FormField(key="doc", value="/tmp/doc.pdf", type="file"),
            ],
        )
        request = build_form(fields, timeout=12, follow_redirects=True)
        assert request.fields == [("note", "hi")]
        assert request.files == [("doc", "/tmp/doc.pdf")]
        params = request.query_params()
        assert params["url"] == "https://x.test/upload/5"
        assert params["method"] == "POST"
        assert params["timeout"] == "12"
        assert params["followRedirects"] == "true"
        assert params["contentType"] == "multipart/form-data"
        assert params["headers"] == "X-A: 1,X-B: 2"
        assert json.loads(params["path_params"]) == {":id": "5"}

    def test_url_encoded(self):
        fields = RequestFields(
            method="POST",
            url="https://x.test/login",
            request_type="url-encoded",
            url_encoded_data=[KeyValue(key="user", value="bob"), KeyValue(key="pw", value="")],
        )
        request = build_form(fields, timeout=30, follow_redirects=False)
        assert request.fields == [("user", "bob"), ("pw", "")]
        assert request.query_params()["contentType"] == "application/x-www-form-urlencoded"
        assert "headers" not in request.query_params()

    def test_get_form_has_no_payload(self):
        fields = RequestFields(method="GET", url="https://x.test", request_type="url-encoded",
                               url_encoded_data=[KeyValue(key="a", value="1")])
        assert build_form(fields, timeout=30, follow_redirects=True).fields == []
