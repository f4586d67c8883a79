"""Persistent data model.

Collections own folders and requests. Folders form a tree through
``parent_folder_id``. A request carries its saved fields and, optionally,
an unsaved draft overlay of the same fields.
"""

import uuid
from typing import Literal

from pydantic import BaseModel, Field

RequestType = Literal["none", "raw", "form-data", "url-encoded"]

# Fields compared when deciding whether a draft diverges from the saved request.
TRACKED_FIELDS = (
    "method",
    "url",
    "headers",
    "params",
    "path_params",
    "request_type",
    "content_type",
    "body",
    "form_data",
    "url_encoded_data",
)


def new_id() -> str:
    return str(uuid.uuid4())


class KeyValue(BaseModel):
    """A header, query parameter, path parameter or url-encoded field."""

    id: str = Field(default_factory=new_id)
    key: str
    value: str = ""
    enabled: bool = True  # disabled entries stay in the UI but are never sent
    description: str = ""


class FormField(KeyValue):
    """A multipart form field. For ``file`` fields the value is a file path."""

    type: Literal["text", "file"] = "text"


class Variable(BaseModel):
    key: str
    value: str = ""
    description: str = ""


class RequestFields(BaseModel):
    """The editable part of a request, shared by saved fields and drafts."""

    method: str = "GET"
    url: str = ""
    headers: list[KeyValue] = []
    params: list[KeyValue] = []
    path_params: list[KeyValue] = []
    request_type: RequestType = "none"
    content_type: str = "json"
    body: str = ""
    form_data: list[FormField] = []
    url_encoded_data: list[KeyValue] = []


def _comparable(value):
    if isinstance(value, list):
        return [item.model_dump(exclude={"id"}) for item in value]
    return value


def changed_fields(saved: RequestFields, current: RequestFields) -> list[str]:
    """Names of tracked fields whose values differ.

    List fields are compared structurally, ignoring the generated row ids.
    """
    return [
        name
        for name in TRACKED_FIELDS
        if _comparable(getattr(saved, name)) != _comparable(getattr(current, name))
    ]


class ResponseSnapshot(BaseModel):
    """Last received response, kept for display without re-sending."""

    status: int
    status_text: str = ""
    headers: list[dict] = []
    body: str = ""
    response_time: str = ""
    response_size: str = ""
    is_binary: bool = False
    received_at: str = ""


class Collection(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    environment_id: str | None = None
    variables: list[Variable] = []
    follow_redirects: bool = True
    timeout: int = Field(default=30, ge=1, le=300)
    parse_ansi_colors: bool = False


class Folder(BaseModel):
    id: str = Field(default_factory=new_id)
    collection_id: str
    parent_folder_id: str | None = None
    name: str
    description: str = ""


class Request(RequestFields):
    """A saved request plus an optional draft overlay.

    ``draft is None`` is the plain saved state; otherwise the overlay holds
    the in-progress edits of every tracked field.
    """

    id: str = Field(default_factory=new_id)
    collection_id: str
    folder_id: str | None = None
    name: str
    response_snapshot: ResponseSnapshot | None = None
    draft: RequestFields | None = None

    def saved_fields(self) -> RequestFields:
        return RequestFields(**self.model_dump(include=set(TRACKED_FIELDS)))

    def effective_fields(self) -> RequestFields:
        """Fields as the user currently sees them (draft if any)."""
        if self.draft is not None:
            return self.draft.model_copy(deep=True)
        return self.saved_fields()

    @property
    def has_draft_edits(self) -> bool:
        return self.draft is not None and bool(changed_fields(self.saved_fields(), self.draft))

    def with_draft(self, draft: RequestFields | None) -> "Request":
        return self.model_copy(update={"draft": draft}, deep=True)

    def apply_draft(self) -> "Request":
        """Commit the overlay onto the saved fields and clear it."""
        if self.draft is None:
            return self.model_copy(deep=True)
        updates = self.draft.model_dump(include=set(TRACKED_FIELDS))
        merged = self.model_dump()
        merged.update(updates)
        merged["draft"] = None
        return Request(**merged)

    def discard_draft(self) -> "Request":
        return self.with_draft(None)

    def to_record(self) -> dict:
        """Flatten into the persisted layout with ``draft_*`` columns."""
        record = self.model_dump(exclude={"draft"})
        draft = self.draft.model_dump() if self.draft is not None else {}
        for name in TRACKED_FIELDS:
            record[f"draft_{name}"] = draft.get(name)
        record["has_draft_edits"] = self.has_draft_edits
        return record

    @classmethod
    def from_record(cls, record: dict) -> "Request":
        """Inverse of :meth:`to_record`.

        A draft column only shadows its saved counterpart when
        ``has_draft_edits`` is set and the column is not null.
        """
        data = {k: v for k, v in record.items() if not k.startswith("draft_") and k != "has_draft_edits"}
        request = cls(**data)
        if not record.get("has_draft_edits"):
            return request

        overlay = request.saved_fields().model_dump()
        for name in TRACKED_FIELDS:
            value = record.get(f"draft_{name}")
            if value is not None:
                overlay[name] = value
        return request.with_draft(RequestFields(**overlay))


class Environment(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""


class Secret(BaseModel):
    """A persisted variable scoped to a collection or an environment.

    Values arrive here already decrypted by the encryption layer.
    """

    id: str = Field(default_factory=new_id)
    key: str
    value: str = ""
    collection_id: str | None = None
    environment_id: str | None = None
