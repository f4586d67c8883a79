"""Postman Collection v2.0 / v2.1 importer.

Groups become folders (nested through ``parent_folder_id``), leaves become
requests attached to their enclosing group.
"""

import json
from urllib.parse import parse_qsl, urlsplit

from .base import (
    HTTP_METHODS,
    FolderDraft,
    ImportResult,
    RequestDraft,
    extract_path_params,
)
from .errors import SchemaError, SpecFormatError, SpecImportError
from slingshot.store.models import FormField, KeyValue, Variable

DEFAULT_NAME = "Postman Import"
SUPPORTED_SCHEMAS = ("v2.0", "v2.1")

RAW_LANGUAGES = {"json": "json", "xml": "xml", "html": "html", "text": "text"}


def parse_postman(text: str, name: str | None = None) -> ImportResult:
    """Parse a Postman collection export into an ImportResult."""
    try:
        try:
            collection = json.loads(text)
        except ValueError as e:
            raise SpecFormatError("Invalid JSON format") from e
        if isinstance(collection, dict) and "info" not in collection and isinstance(collection.get("collection"), dict):
            collection = collection["collection"]
        _validate(collection)
        return _build(collection, name)
    except SpecImportError as e:
        raise type(e)(f"Failed to process Postman collection: {e}") from e


def _validate(collection) -> None:
    if not isinstance(collection, dict):
        raise SchemaError("Invalid collection format")
    info = collection.get("info")
    if not isinstance(info, dict):
        raise SchemaError("Not a valid Postman collection - missing info object")
    schema = info.get("schema")
    if schema and not any(v in str(schema) for v in SUPPORTED_SCHEMAS):
        raise SchemaError(f"Unsupported Postman collection version. Expected v2.1 or v2.0, got: {schema}")


def _build(collection: dict, name: str | None) -> ImportResult:
    info = collection["info"]
    folders: list[FolderDraft] = []
    requests: list[RequestDraft] = []
    _parse_items(collection.get("item") or [], None, folders, requests)

    return ImportResult(
        collection_name=name or str(info.get("name") or DEFAULT_NAME),
        description=_text(info.get("description")),
        variables=_parse_variables(collection.get("variable")),
        folders=folders,
        requests=requests,
    )


def _text(value) -> str:
    # Descriptions may be plain strings or {"content": ..., "type": ...} objects.
    if isinstance(value, dict):
        return str(value.get("content") or "")
    if value is None:
        return ""
    return str(value)


def _parse_variables(variables) -> list[Variable]:
    if not isinstance(variables, list):
        return []
    return [
        Variable(key=str(v["key"]), value=_text(v.get("value")), description=_text(v.get("description")))
        for v in variables
        if isinstance(v, dict) and v.get("key")
    ]


def _parse_items(
    items: list, parent_id: str | None, folders: list[FolderDraft], requests: list[RequestDraft]
) -> None:
    """Recursively parse items (supports nested folders)."""
    for item in items:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("item"), list):
            folder = FolderDraft(
                name=str(item.get("name") or "Untitled Folder"),
                parent_folder_id=parent_id,
                description=_text(item.get("description")),
            )
            folders.append(folder)
            _parse_items(item["item"], folder.id, folders, requests)
        elif isinstance(item.get("request"), (dict, str)):
            requests.append(_parse_request(item, parent_id))


def _parse_request(item: dict, folder_id: str | None) -> RequestDraft:
    req = item["request"]
    if isinstance(req, str):
        # A bare string request is shorthand for GET <url>.
        req = {"url": req}

    method = str(req.get("method") or "GET").upper()
    if method not in HTTP_METHODS:
        method = "GET"

    url = extract_url(req.get("url"))
    request = RequestDraft(
        name=str(item.get("name") or "Untitled Request"),
        folder_id=folder_id,
        method=method,
        url=url,
        headers=_parse_pairs(req.get("header")),
        params=_parse_query_params(req.get("url")),
        # Some exports only carry path variables inside the raw URL string,
        # so this must run on the already-extracted URL.
        path_params=extract_path_params(url),
    )
    _fill_path_variables(request, req.get("url"))
    _apply_body(request, req.get("body"))
    return request


def _fill_path_variables(request: RequestDraft, url_data) -> None:
    """Take path parameter values from ``url.variable`` when the export has them."""
    variables = url_data.get("variable") if isinstance(url_data, dict) else None
    if not isinstance(variables, list):
        return
    values = {str(v["key"]): _text(v.get("value")) for v in variables if isinstance(v, dict) and v.get("key")}
    for param in request.path_params:
        if param.key in values:
            param.value = values[param.key]


def extract_url(url_data) -> str:
    """URL from a raw string, a ``raw`` attribute, or protocol/host/port/path parts."""
    if not url_data:
        return ""
    if isinstance(url_data, str):
        return url_data
    if not isinstance(url_data, dict):
        return ""
    if url_data.get("raw"):
        return str(url_data["raw"])

    url = ""
    if url_data.get("protocol"):
        url += f"{url_data['protocol']}://"
    host = url_data.get("host")
    if host:
        url += ".".join(str(h) for h in host) if isinstance(host, list) else str(host)
    if url_data.get("port"):
        url += f":{url_data['port']}"
    path = url_data.get("path")
    if path:
        parts = [str(p.get("value", "")) if isinstance(p, dict) else str(p) for p in path] if isinstance(path, list) else [str(path)]
        url += "/" + "/".join(parts)
    return url


def _parse_pairs(pairs) -> list[KeyValue]:
    if not isinstance(pairs, list):
        return []
    return [
        KeyValue(
            key=str(p["key"]),
            value=_text(p.get("value")),
            description=_text(p.get("description")),
            enabled=not p.get("disabled", False),
        )
        for p in pairs
        if isinstance(p, dict) and p.get("key")
    ]


def _parse_query_params(url_data) -> list[KeyValue]:
    if isinstance(url_data, dict) and isinstance(url_data.get("query"), list):
        return _parse_pairs(url_data["query"])

    raw = url_data.get("raw") if isinstance(url_data, dict) else url_data
    if not raw or not isinstance(raw, str):
        return []
    query = urlsplit(raw).query
    return [KeyValue(key=k, value=v) for k, v in parse_qsl(query, keep_blank_values=True)]


def _apply_body(request: RequestDraft, body) -> None:
    if not isinstance(body, dict):
        return

    mode = body.get("mode") or "none"
    if mode == "raw":
        request.request_type = "raw"
        request.content_type = _raw_content_type(body.get("options"))
        raw = body.get("raw")
        if raw is None:
            raw = ""
        request.body = raw if isinstance(raw, str) else json.dumps(raw, indent=2)
    elif mode == "formdata":
        request.request_type = "form-data"
        request.content_type = "text"
        request.form_data = [
            FormField(
                key=str(f["key"]),
                value=_form_value(f),
                type="file" if f.get("type") == "file" else "text",
                enabled=not f.get("disabled", False),
            )
            for f in body.get("formdata") or []
            if isinstance(f, dict) and f.get("key")
        ]
    elif mode == "urlencoded":
        request.request_type = "url-encoded"
        request.content_type = "text"
        request.url_encoded_data = _parse_pairs(body.get("urlencoded"))


def _form_value(field: dict) -> str:
    if field.get("type") == "file":
        src = field.get("src")
        if isinstance(src, list):
            src = src[0] if src else ""
        return str(src or "")
    return _text(field.get("value"))


def _raw_content_type(options) -> str:
    language = ((options or {}).get("raw") or {}).get("language")
    return RAW_LANGUAGES.get(language, "json")
