"""Download API documents for URL-based import."""

import logging
from urllib.parse import urlsplit

import requests

logger = logging.getLogger(__name__)

MAX_DOCUMENT_SIZE = 10 * 1024 * 1024
ACCEPT = "application/json, application/x-yaml, text/yaml, text/plain, */*"
BINARY_TYPES = ("application/octet-stream", "application/pdf", "image/", "video/", "audio/")


class FetchError(Exception):
    """The document could not be downloaded or is not a text document."""


def fetch_document(url: str, timeout: int = 30) -> str:
    """Fetch a text document (JSON or YAML) from ``url``."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise FetchError("Invalid URL format")

    try:
        response = requests.get(url, headers={"Accept": ACCEPT}, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"Unable to access the URL: {e}") from e

    if response.status_code == 404:
        raise FetchError("File not found at the specified URL")
    if response.status_code == 403:
        raise FetchError("Access denied to the specified URL")
    if not response.ok:
        raise FetchError(f"Failed to fetch: {response.status_code} {response.reason}")

    content_type = response.headers.get("Content-Type", "")
    if any(kind in content_type for kind in BINARY_TYPES):
        raise FetchError("Binary files are not supported")

    content = response.text
    if not content.strip():
        raise FetchError("The file appears to be empty")
    if len(content) > MAX_DOCUMENT_SIZE:
        raise FetchError("File size must be less than 10MB")

    logger.debug("Fetched %d characters from %s", len(content), url)
    return content
