"""Prefix-encoded tool arguments and their HTTP parameter locations."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Tuple
from urllib.parse import urlencode

from .models import ToolParams


PATH = "path"
QUERY = "query"
HEADER = "header"
COOKIE = "cookie"
BODY = "body"
FORM = "form"
MULTIPART = "multipart"

SEPARATOR = "__"
KNOWN_PREFIXES = (PATH, QUERY, HEADER, COOKIE, BODY, FORM, MULTIPART)


def prefixed(location: str, name: str) -> str:
    return f"{location}{SEPARATOR}{name}"


def split_prefix(key: str) -> Tuple[str, str]:
    location, sep, name = key.partition(SEPARATOR)
    if not sep:
        return "", key
    return location, name


def split_arguments(arguments: Mapping[str, Any]) -> ToolParams:
    """Split flat tool arguments into the five request locations.

    ``form__`` and ``multipart__`` keys land in ``body`` with the prefix kept,
    since the body serializers select on it. A bare ``body`` key carries an
    unstructured body. Anything else without a known prefix is dropped.
    """
    params = ToolParams()
    targets = {
        PATH: params.path,
        QUERY: params.query,
        HEADER: params.header,
        COOKIE: params.cookie,
        BODY: params.body,
    }
    for key, value in arguments.items():
        if key == BODY:
            params.body[BODY] = value
            continue
        location, name = split_prefix(key)
        if location in targets:
            targets[location][name] = value
        elif location in (FORM, MULTIPART):
            params.body[key] = value
    return params


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"))


def encode_query(query: Mapping[str, Any]) -> str:
    """Encode query values sorted by key; list values repeat the key."""
    pairs: List[Tuple[str, str]] = []
    for key in sorted(query):
        value = query[key]
        if isinstance(value, (list, tuple)):
            pairs.extend((key, format_value(item)) for item in value)
        else:
            pairs.append((key, format_value(value)))
    return urlencode(pairs)


def encode_cookies(cookies: Mapping[str, Any]) -> str:
    return "; ".join(f"{key}={format_value(value)}" for key, value in cookies.items())


def strip_prefix(body: Dict[str, Any], location: str) -> Dict[str, Any]:
    marker = f"{location}{SEPARATOR}"
    return {key[len(marker):]: value for key, value in body.items() if key.startswith(marker)}
