"""Import a request from a curl command line."""

import base64
import re
import shlex
from urllib.parse import parse_qsl, urlsplit

from .base import RequestDraft, extract_path_params
from .errors import CurlParseError
from .swagger import content_type_label
from slingshot.store.models import FormField, KeyValue

LINE_CONTINUATION_RE = re.compile(r"\\\s*\n\s*")

DATA_OPTIONS = ("-d", "--data", "--data-raw", "--data-binary", "--data-ascii", "--data-urlencode")
# Options that never take a value. Unknown long options are assumed to take one.
FLAG_OPTIONS = frozenset(
    {
        "-L", "--location", "-v", "--verbose", "-s", "--silent", "-S", "--show-error",
        "-k", "--insecure", "-i", "--include", "--compressed", "-f", "--fail", "-g", "--globoff",
    }
)
# Short options whose value is irrelevant to the request.
SKIPPED_SHORT_OPTIONS = ("-o", "-e", "-x", "-w", "-T", "-r", "-c", "-E", "-K")


class CurlRequest(RequestDraft):
    """A request read from a curl command, with its transfer settings."""

    follow_redirects: bool = True
    timeout: int = 30


def parse_curl(command: str) -> CurlRequest:
    """Parse ``curl ...`` into a request draft.

    Raises CurlParseError when the text is not a curl command, a quote is
    left open, an option misses its value, or no URL is given.
    """
    if not command or not command.strip():
        raise CurlParseError("Curl command is required")
    normalized = LINE_CONTINUATION_RE.sub(" ", command.strip())
    try:
        tokens = shlex.split(normalized)
    except ValueError as e:
        raise CurlParseError(f"Invalid curl command: {e}") from e
    if not tokens or tokens[0].lower() != "curl":
        raise CurlParseError('Command must start with "curl"')

    method = None
    url = ""
    headers: list[KeyValue] = []
    data: list[str] = []
    urlencode_data = False
    form: list[FormField] = []
    follow_redirects = True
    timeout = 30

    args = iter(tokens[1:])
    for token in args:
        if not token.startswith("-"):
            url = url or token
            continue

        if token.startswith("-X") and len(token) > 2:
            method = token[2:].upper()
        elif token in FLAG_OPTIONS:
            if token in ("-L", "--location"):
                follow_redirects = True
        elif token in ("-X", "--request"):
            method = _value(args, token).upper()
        elif token in ("-H", "--header"):
            header = _header(_value(args, token))
            if header is not None:
                headers.append(header)
        elif token in DATA_OPTIONS:
            data.append(_value(args, token))
            urlencode_data = urlencode_data or token == "--data-urlencode"
        elif token in ("-F", "--form"):
            field = _form_field(_value(args, token))
            if field is not None:
                form.append(field)
        elif token in ("-u", "--user"):
            credentials = base64.b64encode(_value(args, token).encode()).decode()
            headers.append(KeyValue(key="Authorization", value=f"Basic {credentials}"))
        elif token in ("-A", "--user-agent"):
            headers.append(KeyValue(key="User-Agent", value=_value(args, token)))
        elif token in ("-b", "--cookie"):
            headers.append(KeyValue(key="Cookie", value=_value(args, token)))
        elif token == "--url":
            url = _value(args, token)
        elif token in ("-m", "--max-time"):
            timeout = _int(_value(args, token), timeout)
        elif token == "--max-redirs":
            follow_redirects = _int(_value(args, token), 1) > 0
        elif token in SKIPPED_SHORT_OPTIONS or token.startswith("--"):
            next(args, None)

    if not url:
        raise CurlParseError("No URL found in curl command")

    has_body = bool(data or form)
    method = method or ("POST" if has_body else "GET")
    path = urlsplit(url).path or "/"
    request = CurlRequest(
        name=f"{method} {path}",
        method=method,
        url=url,
        headers=headers,
        params=[KeyValue(key=k, value=v) for k, v in parse_qsl(urlsplit(url).query, keep_blank_values=True)],
        path_params=extract_path_params(url.split("?", 1)[0]),
        follow_redirects=follow_redirects,
        timeout=timeout,
    )
    if form:
        request.request_type = "form-data"
        request.content_type = "text"
        request.form_data = form
    elif data:
        _apply_data(request, "&".join(data), urlencode_data)
    return request


def _value(args, option: str) -> str:
    value = next(args, None)
    if value is None:
        raise CurlParseError(f"Missing value for {option} option")
    return value


def _int(text: str, default: int) -> int:
    try:
        return int(float(text))
    except ValueError:
        return default


def _header(text: str) -> KeyValue | None:
    key, sep, value = text.partition(":")
    if not sep or not key.strip():
        return None
    return KeyValue(key=key.strip(), value=value.strip())


def _form_field(text: str) -> FormField | None:
    key, _, value = text.partition("=")
    if not key:
        return None
    if value.startswith("@"):
        return FormField(key=key, value=value[1:].split(";", 1)[0], type="file")
    return FormField(key=key, value=value)


def _header_value(request: CurlRequest, name: str) -> str:
    for header in request.headers:
        if header.key.lower() == name:
            return header.value
    return ""


def _apply_data(request: CurlRequest, data: str, urlencoded: bool) -> None:
    declared = _header_value(request, "content-type").lower()
    stripped = data.strip()
    looks_structured = stripped.startswith(("{", "[", "<"))
    if "x-www-form-urlencoded" in declared or urlencoded or (
        not declared and not looks_structured and "=" in data and "&" in data
    ):
        request.request_type = "url-encoded"
        request.content_type = "text"
        request.url_encoded_data = [KeyValue(key=k, value=v) for k, v in parse_qsl(data, keep_blank_values=True)]
        return

    request.request_type = "raw"
    request.body = data
    if declared:
        request.content_type = content_type_label(declared)
    elif stripped.startswith(("{", "[")):
        request.content_type = "json"
    elif stripped.startswith("<"):
        request.content_type = "xml"
    else:
        request.content_type = "text"
