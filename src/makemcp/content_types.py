"""Request body strategies keyed by content type."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from .errors import HandlerBuildError
from .models import ToolInputProperty
from .openapi import property_type
from .params import BODY, FORM, MULTIPART, format_value, prefixed, strip_prefix


ExtractedParameters = Tuple[Dict[str, ToolInputProperty], List[str]]


@dataclass(frozen=True)
class RequestBody:
    content: Optional[bytes] = None
    files: Optional[List[Tuple[str, Tuple[None, str]]]] = None


def _schema(media: Dict[str, Any]) -> Dict[str, Any]:
    schema = (media or {}).get("schema")
    return schema if isinstance(schema, dict) else {}


def _has_properties(media: Dict[str, Any]) -> bool:
    properties = _schema(media).get("properties")
    return isinstance(properties, dict) and bool(properties)


def _extract_properties(media: Dict[str, Any], prefix: str) -> ExtractedParameters:
    properties: Dict[str, ToolInputProperty] = {}
    required: List[str] = []
    if not _has_properties(media):
        return properties, required

    schema = _schema(media)
    for name, prop in schema["properties"].items():
        description = prop.get("description") if isinstance(prop, dict) else None
        properties[prefixed(prefix, name)] = ToolInputProperty(
            type=property_type(prop), description=str(description or "")
        )
    for name in schema.get("required") or []:
        required.append(prefixed(prefix, name))
    return properties, required


def _fallback_body(description: str) -> ExtractedParameters:
    return {BODY: ToolInputProperty(type="string", description=description)}, [BODY]


def _single_body(body: Dict[str, Any]) -> Tuple[Any, bool]:
    if BODY in body and len(body) == 1:
        return body[BODY], True
    return None, False


def _examples(media: Dict[str, Any]) -> str:
    result = ""
    if "example" in media:
        result += json.dumps(media["example"])
    for key, example in (media.get("examples") or {}).items():
        value = example.get("value", example) if isinstance(example, dict) else example
        result = f"{result}\n- {key}: {json.dumps(value)}"
    return result


class ContentTypeHandler:
    content_types: Tuple[str, ...] = ()

    def extract_parameters(self, media: Dict[str, Any]) -> ExtractedParameters:
        raise NotImplementedError

    def build_body(self, body: Dict[str, Any]) -> Optional[RequestBody]:
        raise NotImplementedError


class JsonContentTypeHandler(ContentTypeHandler):
    content_types = ("application/json", "*/*", "application/hal+json", "application/vnd.api+json")

    def extract_parameters(self, media: Dict[str, Any]) -> ExtractedParameters:
        return _extract_properties(media, BODY)

    def build_body(self, body: Dict[str, Any]) -> Optional[RequestBody]:
        if not body:
            return None
        try:
            return RequestBody(content=json.dumps(body).encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise HandlerBuildError(f"failed to marshal JSON body: {exc}") from exc


class XmlContentTypeHandler(ContentTypeHandler):
    """Structured XML bodies are sent as JSON; XML marshalling is not attempted."""

    content_types = ("application/xml", "text/xml")

    def extract_parameters(self, media: Dict[str, Any]) -> ExtractedParameters:
        if _has_properties(media):
            return _extract_properties(media, BODY)
        return _fallback_body("XML request body content")

    def build_body(self, body: Dict[str, Any]) -> Optional[RequestBody]:
        if not body:
            return None
        value, single = _single_body(body)
        if single:
            if isinstance(value, str):
                return RequestBody(content=value.encode("utf-8"))
            raise HandlerBuildError("XML body parameter must be a string containing valid XML")
        try:
            return RequestBody(content=json.dumps(body).encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise HandlerBuildError(
                f"failed to marshal XML body (using JSON fallback): {exc}"
            ) from exc


class FormUrlEncodedHandler(ContentTypeHandler):
    content_types = ("application/x-www-form-urlencoded",)

    def extract_parameters(self, media: Dict[str, Any]) -> ExtractedParameters:
        if not _has_properties(media):
            return _fallback_body("Form URL-encoded request body. " + _examples(media or {}))
        return _extract_properties(media, FORM)

    def build_body(self, body: Dict[str, Any]) -> Optional[RequestBody]:
        if not body:
            return None
        value, single = _single_body(body)
        if single:
            if isinstance(value, str):
                return RequestBody(content=value.encode("utf-8"))
            raise HandlerBuildError("form body parameter must be a string")

        fields = strip_prefix(body, FORM)
        if not fields:
            raise HandlerBuildError("no form__ prefixed parameters found for form URL encoding")
        encoded = urlencode([(key, format_value(fields[key])) for key in sorted(fields)])
        return RequestBody(content=encoded.encode("utf-8"))


class MultipartFormDataHandler(ContentTypeHandler):
    """Every part is written as a text field, ``binary`` properties included."""

    content_types = ("multipart/form-data",)

    def extract_parameters(self, media: Dict[str, Any]) -> ExtractedParameters:
        if not _has_properties(media):
            return _fallback_body("Multipart form data request body")
        properties, required = _extract_properties(media, MULTIPART)
        for name, prop in _schema(media)["properties"].items():
            if isinstance(prop, dict) and prop.get("format") == "binary":
                properties[prefixed(MULTIPART, name)].type = "file"
        return properties, required

    def build_body(self, body: Dict[str, Any]) -> Optional[RequestBody]:
        if not body:
            return None
        value, single = _single_body(body)
        if single:
            if isinstance(value, str):
                return RequestBody(content=value.encode("utf-8"))
            raise HandlerBuildError("multipart body parameter must be a string")

        fields = strip_prefix(body, MULTIPART)
        if not fields:
            raise HandlerBuildError(
                "no multipart__ prefixed parameters found for multipart form data"
            )
        # (None, value) makes httpx write a plain form field rather than a file part
        return RequestBody(files=[(key, (None, format_value(value))) for key, value in fields.items()])


class PlainTextHandler(ContentTypeHandler):
    content_types = ("text/plain", "text/*")

    def extract_parameters(self, media: Dict[str, Any]) -> ExtractedParameters:
        return _fallback_body("Plain text request body content")

    def build_body(self, body: Dict[str, Any]) -> Optional[RequestBody]:
        if not body:
            return None
        value, single = _single_body(body)
        if not single:
            raise HandlerBuildError("plain text content type requires a 'body' parameter")
        if not isinstance(value, str):
            raise HandlerBuildError("plain text body parameter must be a string")
        return RequestBody(content=value.encode("utf-8"))


class ContentTypeRegistry:
    """Ordered content type strategies; registration order sets priority."""

    def __init__(self) -> None:
        self._handlers: List[ContentTypeHandler] = []
        self.fallback: ContentTypeHandler = JsonContentTypeHandler()
        for handler in (
            JsonContentTypeHandler(),
            XmlContentTypeHandler(),
            FormUrlEncodedHandler(),
            MultipartFormDataHandler(),
            PlainTextHandler(),
        ):
            self.register(handler)

    def register(self, handler: ContentTypeHandler) -> None:
        self._handlers.append(handler)

    def content_types(self) -> List[str]:
        return [content_type for handler in self._handlers for content_type in handler.content_types]

    def get_handler(self, content_type: str) -> ContentTypeHandler:
        media_type = content_type.split(";", 1)[0].strip().lower()
        for handler in self._handlers:
            if media_type in handler.content_types:
                return handler

        major, sep, _ = media_type.partition("/")
        if sep:
            wildcard = f"{major}/*"
            for handler in self._handlers:
                if wildcard in handler.content_types:
                    return handler

        return self.fallback

    def determine_content_type(self, content: Dict[str, Any]) -> str:
        """Pick the request body media type with the highest priority."""
        if not content:
            return ""
        for content_type in self.content_types():
            if content_type in content:
                return content_type
        return next(iter(content))
