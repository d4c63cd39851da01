"""OpenAPI document loader with $ref resolution."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import unquote, urldefrag, urljoin

import httpx
import yaml
from openapi_pydantic import OpenAPI
from openapi_pydantic.v3.v3_0 import OpenAPI as OpenAPI_30
from pydantic import ValidationError

from .errors import SpecInvalidError, SpecMalformedError, SpecUnreachableError


logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")


@dataclass
class Document:
    """A parsed OpenAPI document with references inlined where possible."""

    spec: Dict[str, Any]
    location: str
    diagnostics: List[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        return str((self.spec.get("info") or {}).get("title") or "")

    @property
    def version(self) -> str:
        return str((self.spec.get("info") or {}).get("version") or "")

    def operations(self) -> Iterator[Tuple[str, str, Dict[str, Any]]]:
        """Yield ``(METHOD, path, operation)`` in document order.

        Path-level parameters are merged into each operation; an operation
        parameter with the same name and location replaces the shared one.
        """
        paths = self.spec.get("paths") or {}
        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                continue
            shared = [p for p in path_item.get("parameters") or [] if isinstance(p, dict)]
            for method, operation in path_item.items():
                if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                    continue
                merged = dict(operation)
                merged["parameters"] = _merge_parameters(shared, operation.get("parameters") or [])
                yield method.upper(), path, merged


def _merge_parameters(
    shared: List[Dict[str, Any]], own: List[Any]
) -> List[Dict[str, Any]]:
    own_params = [p for p in own if isinstance(p, dict)]
    overridden = {(p.get("name"), p.get("in")) for p in own_params}
    return [p for p in shared if (p.get("name"), p.get("in")) not in overridden] + own_params


class OpenAPILoader:
    def __init__(self, timeout_seconds: float = 30) -> None:
        self.timeout_seconds = timeout_seconds

    async def load(self, location: str, strict: bool = False) -> Document:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=True) as client:
            try:
                raw = await self.fetch(client, location)
            except (OSError, httpx.HTTPError) as exc:
                raise SpecUnreachableError(
                    f"failed to read OpenAPI specification from {location}: {exc}"
                ) from exc
            spec = self.parse(raw, location)
            self._check_version(spec, location)

            diagnostics = self._validate(spec)
            resolver = RefResolver(client, self, location, spec)
            resolved = await resolver.resolve()
            diagnostics.extend(resolver.diagnostics)

        if diagnostics:
            if strict:
                raise SpecInvalidError(diagnostics)
            logger.warning(
                "OpenAPI document %s has %d validation error(s); continuing in permissive mode",
                location,
                len(diagnostics),
            )
            for diagnostic in diagnostics:
                logger.debug("OpenAPI diagnostic: %s", diagnostic)

        return Document(spec=resolved, location=location, diagnostics=diagnostics)

    async def fetch(self, client: httpx.AsyncClient, location: str) -> bytes:
        if _is_remote(location):
            response = await client.get(location)
            response.raise_for_status()
            return response.content
        return Path(_local_path(location)).read_bytes()

    def parse(self, raw: bytes, location: str) -> Dict[str, Any]:
        text = raw.decode("utf-8-sig", errors="replace")
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            try:
                # round trip through JSON so YAML int keys and dates become strings
                data = json.loads(json.dumps(yaml.safe_load(text), default=str))
            except yaml.YAMLError as exc:
                raise SpecMalformedError(f"failed to parse {location}: {exc}") from exc
        if not isinstance(data, dict):
            raise SpecMalformedError(f"failed to parse {location}: document is not an object")
        return data

    def _check_version(self, spec: Dict[str, Any], location: str) -> None:
        version = str(spec.get("openapi") or "")
        if not version.startswith("3."):
            found = version or ("swagger " + str(spec["swagger"]) if "swagger" in spec else "none")
            raise SpecMalformedError(
                f"{location} is not an OpenAPI 3.x document (version: {found})"
            )

    def _validate(self, spec: Dict[str, Any]) -> List[str]:
        model = OpenAPI_30 if str(spec.get("openapi")).startswith("3.0") else OpenAPI
        try:
            model.model_validate(spec)
        except ValidationError as exc:
            return [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]
        return []


class RefResolver:
    """Inlines ``$ref`` nodes from the same document, local files or URLs.

    References that close a cycle are left in place so traversal stays finite;
    consumers treat a leftover ``$ref`` as an unresolved string schema.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        loader: OpenAPILoader,
        location: str,
        spec: Dict[str, Any],
    ) -> None:
        self.client = client
        self.loader = loader
        self.root_uri = _document_uri(location)
        self.diagnostics: List[str] = []
        self._documents: Dict[str, Any] = {self.root_uri: spec}
        self._resolved: Dict[Tuple[str, str], Any] = {}
        self._failed: set[str] = set()

    async def resolve(self) -> Dict[str, Any]:
        return await self._walk(self._documents[self.root_uri], self.root_uri, ())

    async def _walk(self, node: Any, base_uri: str, stack: Tuple[Tuple[str, str], ...]) -> Any:
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str):
                return await self._follow(node, ref, base_uri, stack)
            return {key: await self._walk(value, base_uri, stack) for key, value in node.items()}
        if isinstance(node, list):
            return [await self._walk(item, base_uri, stack) for item in node]
        return node

    async def _follow(
        self,
        node: Dict[str, Any],
        ref: str,
        base_uri: str,
        stack: Tuple[Tuple[str, str], ...],
    ) -> Any:
        target_uri, fragment = urldefrag(urljoin(base_uri, ref))
        target_uri = target_uri or base_uri
        key = (target_uri, fragment)

        if key in stack:
            return node
        resolved = self._resolved.get(key)
        if resolved is None:
            document = await self._document(target_uri)
            if document is None:
                return node
            try:
                target = _pointer(document, fragment)
            except LookupError:
                self.diagnostics.append(f"unresolved reference {ref!r} (from {base_uri})")
                return node
            resolved = await self._walk(target, target_uri, stack + (key,))
            self._resolved[key] = resolved

        if isinstance(resolved, dict) and len(node) > 1:
            # sibling keys next to $ref (3.1 style) override the target
            siblings = {k: v for k, v in node.items() if k != "$ref"}
            resolved = {**resolved, **await self._walk(siblings, base_uri, stack)}
        return resolved

    async def _document(self, uri: str) -> Optional[Any]:
        if uri in self._documents:
            return self._documents[uri]
        if uri in self._failed:
            return None
        try:
            raw = await self.loader.fetch(self.client, uri)
            document = self.loader.parse(raw, uri)
        except (OSError, httpx.HTTPError, SpecMalformedError) as exc:
            self._failed.add(uri)
            self.diagnostics.append(f"failed to load referenced document {uri}: {exc}")
            return None
        self._documents[uri] = document
        return document


def _pointer(document: Any, fragment: str) -> Any:
    if not fragment:
        return document
    if not fragment.startswith("/"):
        raise LookupError(fragment)
    current = document
    for token in fragment[1:].split("/"):
        token = unquote(token).replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            raise LookupError(fragment)
    return current


def _is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def _local_path(location: str) -> str:
    if location.startswith("file://"):
        return unquote(location[len("file://"):])
    return location


def _document_uri(location: str) -> str:
    if _is_remote(location) or location.startswith("file://"):
        return location
    return Path(location).resolve().as_uri()


def schema_type(schema: Any) -> Optional[str]:
    """Return the first declared type of a schema, if any."""
    if not isinstance(schema, dict):
        return None
    declared = schema.get("type")
    if isinstance(declared, list):
        return str(declared[0]) if declared else None
    if isinstance(declared, str):
        return declared
    return None


def property_type(schema: Any) -> str:
    """Tool input type for a schema; anything undeclared or unresolved is a string."""
    declared = schema_type(schema)
    if declared:
        return declared
    if isinstance(schema, dict) and "$ref" not in schema:
        if "properties" in schema:
            return "object"
        if "items" in schema:
            return "array"
    return "string"
