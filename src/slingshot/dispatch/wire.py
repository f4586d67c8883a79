"""Wire contract with the transport proxy and the request build step.

Requests whose body type is ``form-data`` or ``url-encoded`` go through
the form endpoint; everything else is described as JSON to the structured
endpoint.
"""

import json
import re
from urllib.parse import quote, urlencode, urlsplit

from pydantic import BaseModel, ConfigDict, Field

from slingshot.store.models import KeyValue, RequestFields

BODYLESS_METHODS = ("GET", "HEAD", "OPTIONS")
FORM_TYPES = ("form-data", "url-encoded")
SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

FORM_CONTENT_TYPES = {
    "form-data": "multipart/form-data",
    "url-encoded": "application/x-www-form-urlencoded",
}

# Internal body content-type labels and the header value they imply.
MIME_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "text": "text/plain",
}


class ProxyRequest(BaseModel):
    """Body posted to the structured endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    method: str
    url: str
    headers: list[str] = []
    timeout: int = 30
    follow_redirects: bool = Field(default=True, alias="followRedirects")
    body: str | None = None
    path_params: dict[str, str] | None = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class FormProxyRequest(BaseModel):
    """Query parameters and payload for the form endpoint.

    ``files`` pairs a field name with a local file path.
    """

    url: str
    method: str
    timeout: int = 30
    follow_redirects: bool = True
    content_type: str
    headers: list[str] = []
    path_params: dict[str, str] = {}
    fields: list[tuple[str, str]] = []
    files: list[tuple[str, str]] = []

    def query_params(self) -> dict[str, str]:
        params = {
            "url": self.url,
            "method": self.method,
            "timeout": str(self.timeout),
            "followRedirects": "true" if self.follow_redirects else "false",
            "contentType": self.content_type,
        }
        if self.headers:
            params["headers"] = ",".join(self.headers)
        if self.path_params:
            params["path_params"] = json.dumps(self.path_params)
        return params


class ProxyResponse(BaseModel):
    success: bool
    response_status: int | None = None
    response_headers: dict[str, str] | None = None
    response_data: str | None = None
    response_time: str | float | None = None
    response_size: str | int | None = None
    content_type: str | None = None
    is_binary: bool = False
    cancelled: bool = False
    error_type: str | None = None
    error_title: str | None = None
    error_message: str | None = None


def validate_url(url: str) -> str | None:
    """Error message for a missing or malformed URL, else None."""
    if not url or not url.strip():
        return "URL is required"
    normalized = url if SCHEME_RE.match(url) else f"http://{url}"
    try:
        parts = urlsplit(normalized)
        parts.port  # raises on a non-numeric port
    except ValueError:
        return "Invalid URL format"
    host = parts.hostname or ""
    if not host or any(c in host for c in " {}<>\\^`|\"\t\n"):
        return "Invalid URL format"
    return None


def apply_query(url: str, params: list[KeyValue] | None) -> str:
    """Rebuild the query string of ``url`` from the enabled ``params`` rows.

    Without any rows the URL is returned unchanged; otherwise the rows replace
    whatever query the URL carried, so disabled rows are never sent.
    """
    if not params:
        return url
    url, hash_sep, fragment = url.partition("#")
    base = url.partition("?")[0]
    pairs = [(p.key, p.value or "") for p in params if p.enabled and p.key]
    query = "?" + urlencode(pairs) if pairs else ""
    return base + query + hash_sep + fragment


def prepare_url(url: str, path_params: list[KeyValue], params: list[KeyValue] | None = None) -> str:
    """Add a default scheme, substitute ``:name`` path parameters and apply query rows."""
    if url and not SCHEME_RE.match(url):
        url = f"http://{url}"
    for param in path_params:
        if param.enabled and param.key:
            pattern = re.compile(":" + re.escape(param.key) + r"(?![A-Za-z0-9_])")
            replacement = quote(param.value or "", safe="")
            url = pattern.sub(lambda _m: replacement, url)
    return apply_query(url, params)


def path_param_map(path_params: list[KeyValue]) -> dict[str, str]:
    """Path parameters as the ``:name -> value`` map the proxy applies itself."""
    return {f":{p.key}": p.value for p in path_params if p.enabled and p.key and p.value}


def format_headers(headers: list[KeyValue]) -> list[str]:
    return [f"{h.key}: {h.value}" for h in headers if h.enabled and h.key and h.value]


def uses_form_routing(fields: RequestFields) -> bool:
    return fields.request_type in FORM_TYPES


def mime_type(label: str) -> str:
    if "/" in label:
        return label
    return MIME_TYPES.get(label, "application/json")


def build_structured(fields: RequestFields, timeout: int, follow_redirects: bool) -> ProxyRequest:
    method = fields.method.upper()
    request = ProxyRequest(
        method=method,
        url=prepare_url(fields.url, fields.path_params, fields.params),
        headers=format_headers(fields.headers),
        timeout=timeout,
        follow_redirects=follow_redirects,
        path_params=path_param_map(fields.path_params) or None,
    )
    if method not in BODYLESS_METHODS and fields.request_type == "raw" and fields.body:
        request.body = fields.body
        has_content_type = any(h.lower().startswith("content-type:") for h in request.headers)
        if not has_content_type and fields.content_type:
            request.headers.append(f"Content-Type: {mime_type(fields.content_type)}")
    return request


def build_form(fields: RequestFields, timeout: int, follow_redirects: bool) -> FormProxyRequest:
    method = fields.method.upper()
    request = FormProxyRequest(
        url=prepare_url(fields.url, fields.path_params, fields.params),
        method=method,
        timeout=timeout,
        follow_redirects=follow_redirects,
        content_type=FORM_CONTENT_TYPES[fields.request_type],
        headers=format_headers(fields.headers),
        path_params=path_param_map(fields.path_params),
    )
    if method in BODYLESS_METHODS:
        return request

    if fields.request_type == "form-data":
        for field in fields.form_data:
            if not (field.enabled and field.key and field.value):
                continue
            if field.type == "file":
                request.files.append((field.key, field.value))
            else:
                request.fields.append((field.key, field.value))
    else:
        request.fields = [(f.key, f.value or "") for f in fields.url_encoded_data if f.enabled and f.key]
    return request


def build_call(fields: RequestFields, timeout: int, follow_redirects: bool) -> ProxyRequest | FormProxyRequest:
    if uses_form_routing(fields):
        return build_form(fields, timeout, follow_redirects)
    return build_structured(fields, timeout, follow_redirects)
