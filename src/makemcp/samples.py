"""Mock payloads for tool descriptions."""

from __future__ import annotations

import json
from typing import Any, Dict

from .openapi import schema_type


_STRING_FORMATS = {
    "date-time": "2024-01-01T00:00:00Z",
    "date": "2024-01-01",
    "time": "00:00:00",
    "email": "user@example.com",
    "uuid": "00000000-0000-0000-0000-000000000000",
    "uri": "https://example.com",
    "url": "https://example.com",
    "hostname": "example.com",
    "ipv4": "192.0.2.1",
    "ipv6": "2001:db8::1",
    "byte": "U3dhZ2dlcg==",
    "binary": "<binary>",
    "password": "********",
}


class MockGenerator:
    """Builds example values from a schema, ignoring ``required``.

    Traversal stops at ``max_depth`` nested levels; unresolved references
    render as strings.
    """

    def __init__(self, max_depth: int = 8) -> None:
        self.max_depth = max_depth

    def render(self, schema: Any) -> str:
        return json.dumps(self.generate(schema), indent=2)

    def generate(self, schema: Any, depth: int = 0) -> Any:
        if not isinstance(schema, dict):
            return None
        if "$ref" in schema:
            return "string"
        for key in ("example", "default"):
            if key in schema:
                return schema[key]
        examples = schema.get("examples")
        if isinstance(examples, list) and examples:
            return examples[0]
        enum = schema.get("enum")
        if isinstance(enum, list) and enum:
            return enum[0]
        if depth >= self.max_depth:
            return None

        if isinstance(schema.get("allOf"), list):
            return self._merge_all_of(schema["allOf"], depth)
        for key in ("oneOf", "anyOf"):
            options = schema.get(key)
            if isinstance(options, list) and options:
                return self.generate(options[0], depth)

        kind = schema_type(schema)
        if kind is None:
            kind = "object" if "properties" in schema else "array" if "items" in schema else None
        if kind == "object":
            return self._object(schema, depth)
        if kind == "array":
            item = self.generate(schema.get("items") or {}, depth + 1)
            return [] if item is None else [item]
        if kind == "integer":
            return int(schema.get("minimum", 0))
        if kind == "number":
            return schema.get("minimum", 0.0)
        if kind == "boolean":
            return True
        if kind == "string":
            return _STRING_FORMATS.get(str(schema.get("format")), "string")
        return None

    def _object(self, schema: Dict[str, Any], depth: int) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for name, prop in (schema.get("properties") or {}).items():
            result[name] = self.generate(prop, depth + 1)
        extra = schema.get("additionalProperties")
        if not result and isinstance(extra, dict):
            result["key"] = self.generate(extra, depth + 1)
        return result

    def _merge_all_of(self, parts: list, depth: int) -> Any:
        merged: Dict[str, Any] = {}
        for part in parts:
            value = self.generate(part, depth)
            if isinstance(value, dict):
                merged.update(value)
            elif value is not None and not merged:
                return value
        return merged
