"""Auto-detect the format of an API document and import it."""

import json
import re
from pathlib import PurePosixPath
from urllib.parse import urlsplit

import yaml

from .base import ImportResult
from .errors import SpecFormatError
from .postman import parse_postman
from .swagger import parse_openapi


def _load(text: str):
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return None


def detect_format(text: str) -> str:
    """Detect the format of an API document.

    Returns: 'openapi', 'postman', or 'unknown'.
    """
    data = _load(text)
    if not isinstance(data, dict):
        return "unknown"

    info = data.get("info") if isinstance(data.get("info"), dict) else {}
    if isinstance(data.get("collection"), dict):
        return "postman"
    if "postman" in str(info.get("schema", "")) or "_postman_id" in info:
        return "postman"
    if "openapi" in data or "swagger" in data or ("info" in data and "paths" in data):
        return "openapi"
    return "unknown"


def import_document(text: str, name: str | None = None, fmt: str = "auto") -> ImportResult:
    """Import an OpenAPI or Postman document, detecting the format if asked."""
    if fmt == "auto":
        fmt = detect_format(text)

    if fmt == "openapi":
        return parse_openapi(text, name)
    elif fmt == "postman":
        return parse_postman(text, name)
    raise SpecFormatError("Unrecognized document: expected an OpenAPI/Swagger specification or a Postman collection")


def default_name(text: str, fmt: str, url: str = "") -> str:
    """Collection name taken from the document, else from the URL's file name."""
    data = _load(text)
    if isinstance(data, dict):
        info = data.get("info") if isinstance(data.get("info"), dict) else {}
        if fmt == "postman":
            wrapped = data.get("collection") if isinstance(data.get("collection"), dict) else {}
            return info.get("name") or (wrapped.get("info") or {}).get("name") or "Imported Collection"
        if fmt == "openapi" and info.get("title"):
            return str(info["title"])
    elif fmt == "openapi":
        match = re.search(r"title:\s*['\"]?([^'\"\n]+)['\"]?", text, re.IGNORECASE)
        if match:
            return match.group(1).strip()

    filename = PurePosixPath(urlsplit(url).path).name if url else ""
    if filename:
        return filename.rsplit(".", 1)[0] if "." in filename else filename
    return "Imported Collection"
