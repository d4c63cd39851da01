"""Execution layer for OpenAPI tool calls."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from .content_types import ContentTypeRegistry, RequestBody
from .errors import HandlerBuildError, UpstreamTransportError
from .logging import redact_payload
from .models import ExecutionResult, HandlerInput, OpenAPIToolDescriptor, ToolParams
from .params import encode_cookies, encode_query, format_value, split_arguments


logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
MAX_DISPLAY_SIZE = 10000


class RestExecutor:
    """Performs one upstream HTTP request per tool call.

    The client is shared by every tool of an app; failures are returned as
    error-bearing results instead of being raised.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        registry: Optional[ContentTypeRegistry] = None,
    ) -> None:
        self.client = client
        self.base_url = base_url
        self.registry = registry or ContentTypeRegistry()

    async def execute(
        self, tool: OpenAPIToolDescriptor, arguments: Dict[str, Any]
    ) -> ExecutionResult:
        started = time.monotonic()
        operation = tool.handler_input
        method = operation.method.upper()
        logger.debug("Calling tool=%s args=%s", tool.name, redact_payload(dict(arguments)))

        params = split_arguments(arguments)
        url = self._build_url(operation.path, params)
        try:
            body = self._build_body(operation, params)
            request = self._build_request(method, url, operation, params, body)
        except HandlerBuildError as exc:
            logger.warning("Could not build request for tool=%s: %s", tool.name, exc)
            return _error_result(exc, method, url, started)
        except (httpx.InvalidURL, ValueError) as exc:
            error = HandlerBuildError(f"invalid request for {method} {url}: {exc}")
            logger.warning("Could not build request for tool=%s: %s", tool.name, exc)
            return _error_result(error, method, url, started)

        sent_at = time.monotonic()
        try:
            response = await self.client.send(request)
        except httpx.HTTPError as exc:
            error = UpstreamTransportError(f"{method} {url} failed: {exc}")
            logger.warning("Upstream request failed for tool=%s: %s", tool.name, exc)
            return _error_result(error, method, url, started)
        response_time = time.monotonic() - sent_at

        text = response.text
        result = ExecutionResult(
            content=f"HTTP {method} {url}\nStatus: {response.status_code}\nResponse: {text}"
        )
        result.metadata.update(
            {
                "callTime": datetime.now(timezone.utc).isoformat(),
                "executionTime": _millis(time.monotonic() - started),
                "httpStatus": response.status_code,
                "responseTime": _millis(response_time),
                "httpMethod": method,
                "finalURL": url,
                "responseHeaders": dict(response.headers),
                "actualContentType": response.headers.get("content-type", ""),
            }
        )
        _classify(result.metadata, response)
        return result

    def _build_url(self, path: str, params: ToolParams) -> str:
        for key, value in params.path.items():
            path = path.replace(f"{{{key}}}", format_value(value))
        url = self.base_url.rstrip("/") + path
        if params.query:
            encoded = encode_query(params.query)
            if encoded:
                url = f"{url}?{encoded}"
        return url

    def _build_body(self, operation: HandlerInput, params: ToolParams) -> Optional[RequestBody]:
        body = dict(params.body)
        for key, value in operation.body_append.items():
            body.setdefault(key, value)
        if not body:
            return None
        handler = self.registry.get_handler(operation.content_type or JSON_CONTENT_TYPE)
        return handler.build_body(body)

    def _build_request(
        self,
        method: str,
        url: str,
        operation: HandlerInput,
        params: ToolParams,
        body: Optional[RequestBody],
    ) -> httpx.Request:
        # names match case-insensitively; later assignments replace earlier values
        headers = httpx.Headers(operation.headers)
        if body is not None and body.files is None:
            headers["Content-Type"] = operation.content_type or JSON_CONTENT_TYPE
        for key, value in params.header.items():
            headers[key] = format_value(value)

        cookies: Dict[str, Any] = {**operation.cookies, **params.cookie}
        if cookies:
            headers["Cookie"] = encode_cookies(cookies)

        if body is not None and body.files is not None:
            # httpx writes the multipart boundary into Content-Type
            return self.client.build_request(method, url, headers=headers, files=body.files)
        content = body.content if body is not None else None
        return self.client.build_request(method, url, headers=headers, content=content)


def _classify(metadata: Dict[str, Any], response: httpx.Response) -> None:
    if JSON_CONTENT_TYPE in response.headers.get("content-type", ""):
        metadata["isJsonData"] = True
        metadata["preferredFormat"] = "json"
    if response.status_code >= 400:
        metadata["isErrorResponse"] = True
        metadata["shouldRedact"] = True
    if len(response.content) > MAX_DISPLAY_SIZE:
        metadata["shouldTruncate"] = True
        metadata["maxDisplaySize"] = MAX_DISPLAY_SIZE


def _error_result(error: Exception, method: str, url: str, started: float) -> ExecutionResult:
    return ExecutionResult(
        content=f"Error: {error}",
        error=error,
        metadata={
            "callTime": datetime.now(timezone.utc).isoformat(),
            "executionTime": _millis(time.monotonic() - started),
            "httpMethod": method,
            "finalURL": url,
        },
    )


def _millis(seconds: float) -> int:
    return int(seconds * 1000)
