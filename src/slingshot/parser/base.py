"""Unified data models for imported API documents.

All importers (OpenAPI/Swagger, Postman) convert their input into these
models before anything is written to the store.
"""

import re

from pydantic import BaseModel, Field

from slingshot.store.models import FormField, KeyValue, RequestFields, Variable, new_id

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

PATH_TEMPLATE_RE = re.compile(r"\{([^}]+)\}")
PATH_PARAM_RE = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")


class FolderDraft(BaseModel):
    """A folder to create. ``parent_folder_id`` refers to another draft's id."""

    id: str = Field(default_factory=new_id)
    name: str
    parent_folder_id: str | None = None
    description: str = ""


class RequestDraft(RequestFields):
    """A request to create, attached to a folder draft by id."""

    name: str
    folder_id: str | None = None
    folder_name: str | None = None


class ImportResult(BaseModel):
    collection_name: str
    description: str = ""
    variables: list[Variable] = []
    folders: list[FolderDraft] = []
    requests: list[RequestDraft] = []

    @property
    def folder_names(self) -> list[str]:
        return [f.name for f in self.folders]


def convert_path_parameters(path: str) -> str:
    """Rewrite ``/users/{id}`` to ``/users/:id``."""
    return PATH_TEMPLATE_RE.sub(r":\1", path)


def extract_path_params(url: str) -> list[KeyValue]:
    """One empty, enabled path parameter per ``:name`` token in the URL."""
    return [KeyValue(key=name, value="") for name in PATH_PARAM_RE.findall(url or "")]


def parameter_example(param: dict) -> str:
    """Example value for an OpenAPI/Swagger parameter, always as a string."""
    schema = param.get("schema") or {}
    if "example" in param:
        return _stringify(param["example"])
    if "example" in schema:
        return _stringify(schema["example"])

    param_type = param.get("type") or schema.get("type") or "string"
    if param_type in ("integer", "number"):
        return "0"
    if param_type == "boolean":
        return "false"
    if param_type == "array":
        return "[]"
    if param_type == "object":
        return "{}"
    return ""


def _stringify(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def form_fields_from_schema(schema: dict | None, multipart: bool) -> list:
    """Top-level schema properties as form rows.

    Binary string properties in a multipart body become file fields.
    """
    if not schema:
        return []
    rows = []
    for key, prop in (schema.get("properties") or {}).items():
        prop = prop or {}
        example = prop.get("example")
        value = "" if example is None else _stringify(example)
        if multipart:
            is_file = prop.get("type") == "string" and prop.get("format") in ("binary", "base64")
            rows.append(FormField(key=key, value=value, type="file" if is_file else "text"))
        else:
            rows.append(KeyValue(key=key, value=value))
    return rows
