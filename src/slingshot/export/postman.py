"""Export a stored collection as a Postman Collection v2.1 bundle."""

import logging
from urllib.parse import urlsplit

from slingshot.dispatch.wire import apply_query
from slingshot.store.base import NotFoundError, Store
from slingshot.store.models import Collection, Folder, Request

logger = logging.getLogger(__name__)

SCHEMA_V21 = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

RAW_LANGUAGES = {"json": "json", "xml": "xml", "html": "html", "text": "text"}


def export_collection(store: Store, collection_id: str, include_secrets: bool = False) -> dict:
    """Build the Postman bundle for a collection.

    Folders nest as groups, requests keep their saved fields (unsaved drafts
    are not exported). Collection secrets are only written out when
    ``include_secrets`` is set.
    """
    collection = store.get_collection(collection_id)
    if collection is None:
        raise NotFoundError(f"Collection not found: {collection_id}")

    folders = store.list_folders(collection_id)
    requests = store.list_requests(collection_id)
    folder_ids = {f.id for f in folders}

    by_folder: dict[str | None, list[Request]] = {}
    for request in requests:
        # A dangling folder reference exports at the root.
        key = request.folder_id if request.folder_id in folder_ids else None
        by_folder.setdefault(key, []).append(request)

    items = [convert_request(r) for r in by_folder.get(None, [])]
    items += [
        _convert_folder(folder, folders, by_folder)
        for folder in folders
        if folder.parent_folder_id not in folder_ids
    ]

    logger.info("Exported collection %r: %d folders, %d requests", collection.name, len(folders), len(requests))
    return {
        "info": {
            "_postman_id": collection.id,
            "name": collection.name,
            "description": collection.description,
            "schema": SCHEMA_V21,
        },
        "item": items,
        "variable": _convert_variables(store, collection, include_secrets),
    }


def _convert_folder(folder: Folder, folders: list[Folder], by_folder: dict, seen: frozenset = frozenset()) -> dict:
    seen = seen | {folder.id}
    items = [convert_request(r) for r in by_folder.get(folder.id, [])]
    items += [
        _convert_folder(child, folders, by_folder, seen)
        for child in folders
        if child.parent_folder_id == folder.id and child.id not in seen
    ]
    group = {"name": folder.name, "item": items}
    if folder.description:
        group["description"] = folder.description
    return group


def _convert_variables(store: Store, collection: Collection, include_secrets: bool) -> list[dict]:
    rows = [(v.key, v.value) for v in collection.variables]
    if include_secrets:
        rows += [(s.key, s.value) for s in store.list_collection_secrets(collection.id)]
    return [{"key": key.strip(), "value": value, "type": "string"} for key, value in rows if key.strip()]


def _pairs(rows) -> list[dict]:
    return [
        {"key": row.key.strip(), "value": row.value, "disabled": not row.enabled}
        for row in rows
        if row.key.strip()
    ]


def convert_url(request: Request) -> dict:
    raw = apply_query(request.url, request.params)
    url: dict = {"raw": raw}

    base = request.url.partition("?")[0].partition("#")[0]
    parts = urlsplit(base)
    if parts.scheme and parts.netloc:
        url["protocol"] = parts.scheme
        url["host"] = parts.hostname.split(".") if parts.hostname else []
        if parts.port:
            url["port"] = str(parts.port)
        path = parts.path
    else:
        # Variable-based URLs such as {{baseUrl}}/users keep the token as the host.
        host, _, path = base.partition("/")
        url["host"] = [host] if host else []
    url["path"] = [segment for segment in path.split("/") if segment]

    query = _pairs(request.params)
    if query:
        url["query"] = query
    variables = [{"key": p.key, "value": p.value} for p in request.path_params if p.key]
    if variables:
        url["variable"] = variables
    return url


def _convert_body(request: Request) -> dict | None:
    if request.request_type == "form-data":
        fields = []
        for field in request.form_data:
            if not field.key.strip():
                continue
            entry = {"key": field.key.strip(), "type": field.type, "disabled": not field.enabled}
            entry["src" if field.type == "file" else "value"] = field.value
            fields.append(entry)
        return {"mode": "formdata", "formdata": fields}
    if request.request_type == "url-encoded":
        return {"mode": "urlencoded", "urlencoded": _pairs(request.url_encoded_data)}
    if request.request_type == "raw":
        return {
            "mode": "raw",
            "raw": request.body,
            "options": {"raw": {"language": RAW_LANGUAGES.get(request.content_type, "text")}},
        }
    return None


def convert_request(request: Request) -> dict:
    entry = {
        "name": request.name,
        "request": {
            "method": request.method.upper(),
            "header": _pairs(request.headers),
            "url": convert_url(request),
        },
    }
    body = _convert_body(request)
    if body is not None:
        entry["request"]["body"] = body
    return entry
