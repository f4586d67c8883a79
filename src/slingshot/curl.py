"""Render request fields as a curl command line."""

import re
import shlex
from urllib.parse import quote, urlencode

from slingshot.dispatch.wire import apply_query, mime_type
from slingshot.store.models import RequestFields


def _substitute_path_params(url: str, fields: RequestFields) -> str:
    for param in fields.path_params:
        if not (param.enabled and param.key):
            continue
        replacement = quote(param.value or "", safe="")
        url = url.replace("{" + param.key + "}", replacement)
        url = re.sub(":" + re.escape(param.key) + r"(?![A-Za-z0-9_])", lambda _m: replacement, url)
    return url


def generate_curl(fields: RequestFields, follow_redirects: bool = True, timeout: int = 30) -> str:
    """Build a curl command for already-resolved request fields."""
    parts = ["curl"]
    method = fields.method.upper()
    if method != "GET":
        parts += ["-X", shlex.quote(method)]

    url = apply_query(_substitute_path_params(fields.url or "", fields), fields.params)
    parts.append(shlex.quote(url))

    for header in fields.headers:
        if header.enabled and header.key:
            parts += ["-H", shlex.quote(f"{header.key}: {header.value or ''}")]

    if fields.request_type != "none" and method not in ("GET", "HEAD"):
        parts += _body_args(fields)

    if not follow_redirects:
        parts += ["--max-redirs", "0"]
    if timeout != 30:
        parts += ["--max-time", str(timeout)]
    return " ".join(parts)


def _body_args(fields: RequestFields) -> list[str]:
    args = []
    if fields.request_type == "raw" and fields.body:
        has_content_type = any(h.enabled and h.key.lower() == "content-type" for h in fields.headers)
        if not has_content_type and fields.content_type:
            args += ["-H", shlex.quote(f"Content-Type: {mime_type(fields.content_type)}")]
        args += ["-d", shlex.quote(fields.body)]
    elif fields.request_type == "form-data":
        for field in fields.form_data:
            if not (field.enabled and field.key):
                continue
            if field.type == "file":
                args += ["-F", shlex.quote(f"{field.key}=@{field.value or 'filename'}")]
            else:
                args += ["-F", shlex.quote(f"{field.key}={field.value or ''}")]
    elif fields.request_type == "url-encoded":
        pairs = [(f.key, f.value or "") for f in fields.url_encoded_data if f.enabled and f.key]
        if pairs:
            args += ["-H", shlex.quote("Content-Type: application/x-www-form-urlencoded")]
            args += ["-d", shlex.quote(urlencode(pairs))]
    return args
