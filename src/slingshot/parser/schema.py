"""Example value synthesis from OpenAPI / Swagger schemas."""

import json
import logging

logger = logging.getLogger(__name__)


def resolve_ref(doc: dict, ref: str):
    """Resolve a local ``#/a/b`` JSON pointer against the document root.

    Returns None when the pointer is external or does not resolve.
    """
    if not ref.startswith("#/"):
        return None
    node = doc
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return node


def generate_example(schema, doc: dict, visited: set[str] | None = None):
    """Build an example value for ``schema``.

    ``visited`` holds the ``$ref`` pointers currently being expanded; meeting
    one of them again yields ``{}`` instead of recursing.
    """
    if visited is None:
        visited = set()
    if not isinstance(schema, dict):
        return None

    ref = schema.get("$ref")
    if ref:
        if ref in visited:
            return {}
        target = resolve_ref(doc, ref)
        if target is None:
            logger.debug("Unresolvable schema reference %s", ref)
            return {}
        visited.add(ref)
        try:
            return generate_example(target, doc, visited)
        finally:
            visited.discard(ref)

    if "example" in schema:
        return schema["example"]

    if "allOf" in schema:
        merged = {}
        for part in schema["allOf"]:
            value = generate_example(part, doc, visited)
            if isinstance(value, dict):
                merged.update(value)
        return merged
    for key in ("oneOf", "anyOf"):
        if schema.get(key):
            return generate_example(schema[key][0], doc, visited)

    schema_type = schema.get("type")
    if schema_type is None and "properties" in schema:
        schema_type = "object"

    if schema_type == "string":
        return schema["enum"][0] if schema.get("enum") else "string"
    if schema_type in ("number", "integer"):
        return 0
    if schema_type == "boolean":
        return False
    if schema_type == "array":
        if "items" in schema:
            return [generate_example(schema["items"], doc, visited)]
        return []
    if schema_type == "object":
        return {
            name: generate_example(prop, doc, visited)
            for name, prop in (schema.get("properties") or {}).items()
        }
    return None


def example_body(schema, doc: dict) -> str:
    """Example request body rendered as indented JSON ("" without a schema)."""
    if not schema:
        return ""
    return json.dumps(generate_example(schema, doc), indent=2, default=str)


def deref(node, doc: dict):
    """Follow ``$ref`` chains on a parameter or body object, stopping on cycles."""
    seen = set()
    while isinstance(node, dict) and "$ref" in node and node["$ref"] not in seen:
        seen.add(node["$ref"])
        target = resolve_ref(doc, node["$ref"])
        if target is None:
            return {}
        node = target
    return node
