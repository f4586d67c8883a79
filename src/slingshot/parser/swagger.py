"""OpenAPI / Swagger document importer.

Parses OpenAPI 3.x and Swagger 2.0 documents (JSON or YAML) into an
ImportResult: one folder per first tag, one request per operation.
"""

import json
import logging

import yaml

from .base import (
    HTTP_METHODS,
    FolderDraft,
    ImportResult,
    RequestDraft,
    convert_path_parameters,
    form_fields_from_schema,
    parameter_example,
)
from .errors import SchemaError, SpecFormatError, SpecImportError, UnsupportedVersionError
from .schema import deref, example_body
from slingshot.store.models import KeyValue, Variable

logger = logging.getLogger(__name__)

DEFAULT_NAME = "OpenAPI Import"
DEFAULT_FOLDER = "Default"
BASE_URL_TOKEN = "{{baseUrl}}"

# Request body media types, most preferred first.
BODY_PREFERENCE = (
    "application/json",
    "application/x-www-form-urlencoded",
    "multipart/form-data",
)


def load_document(text: str):
    """Parse JSON, falling back to YAML."""
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SpecFormatError("Invalid JSON or YAML format") from e


def parse_openapi(text: str, name: str | None = None) -> ImportResult:
    """Parse an OpenAPI/Swagger document into an ImportResult."""
    try:
        doc = load_document(text)
        _validate(doc)
        return _build(doc, name)
    except SpecImportError as e:
        raise type(e)(f"Failed to process OpenAPI specification: {e}") from e


def _validate(doc) -> None:
    if not isinstance(doc, dict):
        raise SpecFormatError("Invalid specification format")

    if "openapi" in doc:
        version = str(doc["openapi"])
        if not version.startswith("3."):
            raise UnsupportedVersionError(f"Unsupported OpenAPI version: {version}")
    elif "swagger" in doc:
        version = str(doc["swagger"])
        if version != "2.0":
            raise UnsupportedVersionError(f"Unsupported Swagger version: {version}")
    else:
        raise SchemaError("Not a valid OpenAPI or Swagger specification")

    if not isinstance(doc.get("info"), dict):
        raise SchemaError("Missing info object")
    if not isinstance(doc.get("paths", {}), dict):
        raise SchemaError("paths must be an object")


def _build(doc: dict, name: str | None) -> ImportResult:
    info = doc["info"]
    folders: dict[str, FolderDraft] = {}
    requests: list[RequestDraft] = []

    for path, path_item in (doc.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        shared_params = path_item.get("parameters") or []
        for method in HTTP_METHODS:
            operation = path_item.get(method.lower())
            if not isinstance(operation, dict):
                continue
            tags = operation.get("tags") or []
            folder_name = str(tags[0]) if tags else DEFAULT_FOLDER
            if folder_name not in folders:
                folders[folder_name] = FolderDraft(name=folder_name)
            request = _parse_operation(doc, path, method, operation, shared_params)
            request.folder_id = folders[folder_name].id
            request.folder_name = folder_name
            requests.append(request)

    logger.debug("Imported %d operations into %d folders", len(requests), len(folders))
    return ImportResult(
        collection_name=name or info.get("title") or DEFAULT_NAME,
        description=info.get("description") or "",
        variables=_extract_variables(doc),
        folders=list(folders.values()),
        requests=requests,
    )


def base_url(doc: dict) -> str:
    if "openapi" in doc:
        servers = doc.get("servers") or []
        if not servers or not isinstance(servers[0], dict):
            return ""
        url = servers[0].get("url") or ""
        for key, variable in (servers[0].get("variables") or {}).items():
            default = (variable or {}).get("default")
            if default is not None:
                url = url.replace("{" + key + "}", str(default))
        return url

    host = doc.get("host")
    if not host:
        return ""
    scheme = (doc.get("schemes") or ["https"])[0]
    return f"{scheme}://{host}{doc.get('basePath', '')}"


def _extract_variables(doc: dict) -> list[Variable]:
    variables = []
    url = base_url(doc)
    if url:
        variables.append(Variable(key="baseUrl", value=url))

    if "openapi" in doc:
        for server in doc.get("servers") or []:
            if not isinstance(server, dict):
                continue
            for key, variable in (server.get("variables") or {}).items():
                variable = variable or {}
                variables.append(
                    Variable(
                        key=key,
                        value=str(variable.get("default", "")),
                        description=variable.get("description") or "",
                    )
                )
    return variables


def _merge_parameters(doc: dict, shared: list, own: list) -> list[dict]:
    """Path-level parameters overridden by operation-level ones (same name+in)."""
    merged: dict[tuple, dict] = {}
    for raw in list(shared) + list(own):
        param = deref(raw, doc)
        if not isinstance(param, dict) or "name" not in param:
            continue
        merged[(param["name"], param.get("in"))] = param
    return list(merged.values())


def _parse_operation(doc: dict, path: str, method: str, operation: dict, shared_params: list) -> RequestDraft:
    headers, params, path_params = [], [], []
    body_params, form_params = [], []

    for param in _merge_parameters(doc, shared_params, operation.get("parameters") or []):
        location = param.get("in")
        if location == "body":
            body_params.append(param)
            continue
        if location == "formData":
            form_params.append(param)
            continue
        row = KeyValue(
            key=str(param["name"]),
            value=parameter_example(param),
            description=param.get("description") or "",
        )
        if location == "header":
            headers.append(row)
        elif location == "query":
            params.append(row)
        elif location == "path":
            path_params.append(row)

    request = RequestDraft(
        name=str(operation.get("summary") or operation.get("operationId") or f"{method} {path}"),
        method=method,
        url=BASE_URL_TOKEN + convert_path_parameters(path),
        headers=headers,
        params=params,
        path_params=path_params,
    )

    if "requestBody" in operation:
        _apply_request_body(request, deref(operation["requestBody"], doc), doc)
    elif body_params:
        request.request_type = "raw"
        request.content_type = "json"
        request.body = example_body(body_params[0].get("schema"), doc)
    elif form_params:
        _apply_swagger_form(request, form_params, operation.get("consumes") or doc.get("consumes") or [])
    return request


def select_content_type(content_types: list[str]) -> str:
    for preferred in BODY_PREFERENCE:
        if preferred in content_types:
            return preferred
    return content_types[0]


def content_type_label(media_type: str) -> str:
    if "json" in media_type:
        return "json"
    if "xml" in media_type:
        return "xml"
    if "html" in media_type:
        return "html"
    if media_type.startswith("text/"):
        return "text"
    return "json"


def _apply_request_body(request: RequestDraft, request_body, doc: dict) -> None:
    content = (request_body or {}).get("content") or {}
    if not isinstance(content, dict) or not content:
        return

    media_type = select_content_type(list(content))
    schema = deref((content[media_type] or {}).get("schema"), doc)

    if "form-urlencoded" in media_type:
        request.request_type = "url-encoded"
        request.content_type = "text"
        request.url_encoded_data = form_fields_from_schema(schema, multipart=False)
    elif "form-data" in media_type:
        request.request_type = "form-data"
        request.content_type = "text"
        request.form_data = form_fields_from_schema(schema, multipart=True)
    else:
        request.request_type = "raw"
        request.content_type = content_type_label(media_type)
        request.body = example_body((content[media_type] or {}).get("schema"), doc)


def _apply_swagger_form(request: RequestDraft, form_params: list[dict], consumes: list[str]) -> None:
    properties = {
        p["name"]: {"type": p.get("type", "string"), **({"example": p["example"]} if "example" in p else {})}
        for p in form_params
    }
    has_file = any(p.get("type") == "file" for p in form_params)
    if has_file or "multipart/form-data" in consumes:
        request.request_type = "form-data"
        request.content_type = "text"
        request.form_data = form_fields_from_schema({"properties": properties}, multipart=True)
        for row, param in zip(request.form_data, form_params):
            if param.get("type") == "file":
                row.type = "file"
    else:
        request.request_type = "url-encoded"
        request.content_type = "text"
        request.url_encoded_data = form_fields_from_schema({"properties": properties}, multipart=False)
