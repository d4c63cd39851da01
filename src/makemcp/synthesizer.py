"""Turns OpenAPI operations into MCP tool descriptors."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .content_types import ContentTypeRegistry
from .models import (
    HandlerInput,
    OpenAPIToolDescriptor,
    ToolAnnotations,
    ToolInputProperty,
    ToolInputSchema,
)
from .openapi import PARAMETER_LOCATIONS, Document, property_type
from .params import prefixed
from .samples import MockGenerator


logger = logging.getLogger(__name__)

DOCUMENTED_CONTENT_TYPES = ("text/xml", "application/xml", "text/plain")


class ToolSynthesizer:
    def __init__(
        self,
        registry: Optional[ContentTypeRegistry] = None,
        max_sample_depth: int = 8,
    ) -> None:
        self.registry = registry or ContentTypeRegistry()
        self.mocks = MockGenerator(max_depth=max_sample_depth)

    def synthesize(self, document: Document) -> List[OpenAPIToolDescriptor]:
        tools: List[OpenAPIToolDescriptor] = []
        for method, path, operation in document.operations():
            tool = self.create_tool(method, path, operation)
            logger.debug("Synthesized tool %s for %s %s", tool.name, method, path)
            tools.append(tool)
        return tools

    def create_tool(self, method: str, path: str, operation: Dict[str, Any]) -> OpenAPIToolDescriptor:
        method = method.upper()
        content = _request_content(operation)
        content_type = self.registry.determine_content_type(content)
        name = tool_name(method, path, operation.get("operationId"))

        return OpenAPIToolDescriptor(
            name=name,
            description=self._description(method, path, operation, content, content_type),
            input_schema=self._input_schema(operation, content, content_type),
            annotations=annotations_for(method, name),
            handler_input=HandlerInput(method=method, path=path, content_type=content_type),
        )

    def _input_schema(
        self, operation: Dict[str, Any], content: Dict[str, Any], content_type: str
    ) -> ToolInputSchema:
        schema = ToolInputSchema()
        parameters = [p for p in operation.get("parameters") or [] if isinstance(p, dict)]
        for location in PARAMETER_LOCATIONS:
            for parameter in parameters:
                if parameter.get("in") != location or not parameter.get("name"):
                    continue
                key = prefixed(location, parameter["name"])
                schema.properties[key] = ToolInputProperty(
                    type=property_type(parameter.get("schema")),
                    description=str(parameter.get("description") or ""),
                )
                if parameter.get("required"):
                    schema.required.append(key)

        if content:
            media = content.get(content_type) or {}
            handler = self.registry.get_handler(content_type)
            properties, required = handler.extract_parameters(media if isinstance(media, dict) else {})
            schema.properties.update(properties)
            schema.required.extend(required)
        return schema

    def _description(
        self,
        method: str,
        path: str,
        operation: Dict[str, Any],
        content: Dict[str, Any],
        content_type: str,
    ) -> str:
        description = operation.get("description") or operation.get("summary") or f"{method} {path}"
        if content_type in DOCUMENTED_CONTENT_TYPES and content_type in content:
            media = content[content_type] or {}
            description += "\n\n" + schema_documentation(media.get("schema"), content_type)
        samples = self._samples(operation, content)
        if samples:
            description += "\n\n" + samples
        return description

    def _samples(self, operation: Dict[str, Any], content: Dict[str, Any]) -> str:
        samples = ""
        for content_type, media in content.items():
            if isinstance(media, dict) and isinstance(media.get("schema"), dict):
                samples += "Sample Request:\n" + self._sample_block(content_type, media["schema"])
                break

        for status, response in (operation.get("responses") or {}).items():
            if not str(status).isdigit() or not 200 <= int(status) < 300:
                continue
            response_content = response.get("content") if isinstance(response, dict) else None
            for content_type, media in (response_content or {}).items():
                if isinstance(media, dict) and isinstance(media.get("schema"), dict):
                    samples += f"Sample Response ({status}):\n" + self._sample_block(
                        content_type, media["schema"]
                    )
                    break
            break
        return samples

    def _sample_block(self, content_type: str, schema: Dict[str, Any]) -> str:
        return f"Content-Type: {content_type}\n```json\n{self.mocks.render(schema)}\n```\n\n"


def tool_name(method: str, path: str, operation_id: Optional[str]) -> str:
    name = operation_id or f"{method.lower()}_{path}"
    for old, new in (("{", ""), ("}", ""), ("/", "_"), ("-", "_")):
        name = name.replace(old, new)
    return name.lower()


def annotations_for(method: str, title: str) -> ToolAnnotations:
    annotations = ToolAnnotations(title=title)
    method = method.upper()
    if method in ("GET", "HEAD", "OPTIONS"):
        annotations.read_only_hint = True
        annotations.idempotent_hint = True
    elif method == "DELETE":
        annotations.destructive_hint = True
    elif method == "PUT":
        annotations.idempotent_hint = True
    elif method == "POST":
        annotations.idempotent_hint = False
    return annotations


def schema_documentation(schema: Any, content_type: str) -> str:
    properties = schema.get("properties") if isinstance(schema, dict) else None
    if not isinstance(properties, dict):
        return f"Provide {content_type} content as a string."

    required = set(schema.get("required") or [])
    lines = [f"Expected {content_type} structure:"]
    for name, prop in properties.items():
        line = f"- {name}: {property_type(prop)}"
        if name in required:
            line += " (required)"
        if isinstance(prop, dict) and prop.get("description"):
            line += f" - {prop['description']}"
        lines.append(line)
    lines.append("")
    lines.append(f"Provide the complete {content_type} as a string in the 'body' parameter.")
    return "\n".join(lines)


def _request_content(operation: Dict[str, Any]) -> Dict[str, Any]:
    request_body = operation.get("requestBody")
    if not isinstance(request_body, dict):
        return {}
    content = request_body.get("content")
    return content if isinstance(content, dict) else {}
