"""Map proxy results and transport failures to exactly one outcome."""

from datetime import datetime, timezone
from typing import Annotated, Literal

import requests
from pydantic import BaseModel, Field

from slingshot.store.models import ResponseSnapshot
from .wire import ProxyResponse

STATUS_TEXTS = {
    200: "OK",
    201: "Created",
    204: "No Content",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

# Header names that get a documentation link in the UI.
DOCUMENTED_HEADERS = frozenset(
    {
        "content-type",
        "cache-control",
        "authorization",
        "accept",
        "user-agent",
        "referer",
        "origin",
        "host",
        "cookie",
        "set-cookie",
    }
)


class ResponseHeader(BaseModel):
    name: str
    value: str
    documented: bool = False


class Success(BaseModel):
    kind: Literal["success"] = "success"
    status: int
    status_text: str
    headers: list[ResponseHeader] = []
    raw_headers: dict[str, str] = {}
    body: str = ""
    binary_data: str | None = None
    is_binary: bool = False
    response_time: str
    response_size: str
    received_at: str

    def to_snapshot(self) -> ResponseSnapshot:
        return ResponseSnapshot(
            status=self.status,
            status_text=self.status_text,
            headers=[h.model_dump() for h in self.headers],
            body=self.body,
            response_time=self.response_time,
            response_size=self.response_size,
            is_binary=self.is_binary,
            received_at=self.received_at,
        )


class Failed(BaseModel):
    kind: Literal["failed"] = "failed"
    error_type: str | None = None
    error_title: str | None = None
    error_message: str | None = None
    response_time: str
    received_at: str


class Cancelled(BaseModel):
    kind: Literal["cancelled"] = "cancelled"
    response_time: str
    received_at: str


Outcome = Annotated[Success | Failed | Cancelled, Field(discriminator="kind")]


def canonical_header_name(name: str) -> str:
    """``content-TYPE`` -> ``Content-Type``."""
    return "-".join(word[:1].upper() + word[1:].lower() for word in name.split("-"))


def is_documented_header(name: str) -> bool:
    return name.lower() in DOCUMENTED_HEADERS


def status_text(status: int | None) -> str:
    return STATUS_TEXTS.get(status, "Unknown")


def format_response_time(elapsed_ms: float) -> str:
    return f"{elapsed_ms:.2f} ms"


def format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):.2f} MB"
    if size >= 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size} B"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def cancelled(elapsed_ms: float) -> Cancelled:
    return Cancelled(response_time=format_response_time(elapsed_ms), received_at=_now())


def failed(error_type: str | None, title: str | None, message: str | None, elapsed_ms: float) -> Failed:
    return Failed(
        error_type=error_type,
        error_title=title,
        error_message=message,
        response_time=format_response_time(elapsed_ms),
        received_at=_now(),
    )


def classify_response(response: ProxyResponse, elapsed_ms: float) -> Success | Failed | Cancelled:
    if not response.success:
        if response.cancelled:
            return cancelled(elapsed_ms)
        # Proxy-classified errors pass through untouched.
        return failed(response.error_type, response.error_title, response.error_message, elapsed_ms)

    raw_headers = response.response_headers or {}
    if isinstance(response.response_size, int):
        size = format_size(response.response_size)
    else:
        size = response.response_size or format_size(0)
    if isinstance(response.response_time, (int, float)):
        response_time = format_response_time(response.response_time)
    else:
        response_time = response.response_time or format_response_time(elapsed_ms)

    return Success(
        status=response.response_status or 0,
        status_text=status_text(response.response_status),
        headers=[
            ResponseHeader(name=canonical_header_name(k), value=v, documented=is_documented_header(k))
            for k, v in raw_headers.items()
        ],
        raw_headers=raw_headers,
        body=f"[Binary content - {size}]" if response.is_binary else (response.response_data or ""),
        binary_data=response.response_data if response.is_binary else None,
        is_binary=response.is_binary,
        response_time=response_time,
        response_size=size,
        received_at=_now(),
    )


def classify_exception(error: BaseException, elapsed_ms: float) -> Failed:
    # ConnectTimeout is both a Timeout and a ConnectionError; report it as a timeout.
    if isinstance(error, requests.Timeout):
        return failed("timeout", "Request Timed Out", str(error), elapsed_ms)
    if isinstance(error, requests.ConnectionError):
        return failed(
            "connection_error", "Proxy Connection Failed", f"Failed to connect to proxy: {error}", elapsed_ms
        )
    return failed("unknown_error", "Request Failed", str(error), elapsed_ms)
