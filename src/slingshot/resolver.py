"""Resolve ``{{name}}`` tokens in request fields against variable scopes.

Scopes are merged into one flat mapping in this order, later scopes
overwriting earlier ones: collection inline variables, persisted
collection secrets, then secrets of the collection's linked environment.

Tokens with no matching variable are left exactly as written, braces
included, so the user can see what is missing.
"""

import logging
import re
from collections.abc import Iterable, Mapping

from slingshot.store.base import Store
from slingshot.store.models import Collection, RequestFields

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{\{([^}]*)\}\}")


def substitute(text: str, variables: Mapping[str, str]) -> str:
    if not text or "{{" not in text:
        return text

    def _replace(match: re.Match) -> str:
        key = match.group(1).strip()
        if key in variables:
            return variables[key]
        return match.group(0)

    return TOKEN_RE.sub(_replace, text)


def unresolved_tokens(text: str, variables: Mapping[str, str]) -> list[str]:
    """Names of tokens in ``text`` that no scope defines."""
    return [m.strip() for m in TOKEN_RE.findall(text or "") if m.strip() not in variables]


def merge_scopes(*scopes: Iterable) -> dict[str, str]:
    """Merge scopes given lowest precedence first; last write wins."""
    merged: dict[str, str] = {}
    for scope in scopes:
        for variable in scope:
            merged[variable.key.strip()] = variable.value
    return merged


def resolve_fields(fields: RequestFields, variables: Mapping[str, str]) -> RequestFields:
    """Return a resolved copy of ``fields``; the input is not modified."""
    resolved = fields.model_copy(deep=True)
    resolved.url = substitute(resolved.url, variables)
    resolved.body = substitute(resolved.body, variables)
    for row in resolved.headers + resolved.params + resolved.path_params + resolved.url_encoded_data:
        row.key = substitute(row.key, variables)
        row.value = substitute(row.value, variables)
    for field in resolved.form_data:
        field.key = substitute(field.key, variables)
        if field.type != "file":
            field.value = substitute(field.value, variables)
    return resolved


class VariableResolver:
    """Loads a collection's variable scopes from the store and applies them."""

    def __init__(self, store: Store):
        self.store = store

    def load_variables(self, collection: Collection | None) -> dict[str, str]:
        if collection is None:
            return {}

        scopes = [collection.variables]
        try:
            scopes.append(self.store.list_collection_secrets(collection.id))
        except Exception:
            logger.exception("Failed to load collection secrets for %s", collection.id)
        if collection.environment_id:
            try:
                scopes.append(self.store.list_environment_secrets(collection.environment_id))
            except Exception:
                logger.exception("Failed to load environment secrets for %s", collection.environment_id)
        return merge_scopes(*scopes)

    def resolve(self, collection: Collection | None, fields: RequestFields) -> RequestFields:
        variables = self.load_variables(collection)
        resolved = resolve_fields(fields, variables)
        missing = unresolved_tokens(resolved.url, variables)
        if missing:
            logger.debug("Unresolved variables in URL: %s", ", ".join(missing))
        return resolved
