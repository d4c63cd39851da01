"""MCP server setup for MakeMCP apps."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import uvicorn
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent
from mcp.types import ToolAnnotations as McpToolAnnotations
from pydantic import PrivateAttr
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse

from . import auth
from .auth import BearerTokenVerifier
from .config import Settings
from .errors import AuthError, ParamsInvalidError
from .models import App, ExecutionResult, ToolDescriptor, ToolHandler


logger = logging.getLogger(__name__)

_AUTH_RESPONSES = {
    auth.MISSING_TOKEN: (401, "Authorization required"),
    auth.INVALID_FORMAT: (400, "Invalid authorization format"),
    auth.EMPTY_TOKEN: (400, "Empty bearer token"),
    auth.INSUFFICIENT_SCOPE: (403, "Insufficient permissions"),
    auth.TOKEN_EXPIRED: (401, "Token expired"),
    auth.INVALID_SIGNATURE: (401, "Invalid token signature"),
}


class AppTool(Tool):
    """An MCP tool whose schema and handler come from a tool descriptor."""

    _handler: Optional[ToolHandler] = PrivateAttr(default=None)

    @classmethod
    def from_descriptor(cls, descriptor: ToolDescriptor) -> "AppTool":
        if descriptor.handler is None:
            raise ParamsInvalidError(f"tool {descriptor.name} has no handler attached")
        annotations = descriptor.annotations.model_dump(by_alias=True, exclude_none=True)
        tool = cls(
            name=descriptor.name,
            description=descriptor.description,
            parameters=mcp_input_schema(descriptor),
            annotations=McpToolAnnotations(**annotations),
        )
        tool._handler = descriptor.handler
        return tool

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        if self._handler is None:
            raise ToolError(f"tool {self.name} has no handler attached")
        result = await self._handler(arguments)
        return to_tool_result(result)


def mcp_input_schema(descriptor: ToolDescriptor) -> Dict[str, Any]:
    schema = descriptor.input_schema.model_dump()
    for prop in schema["properties"].values():
        if prop.get("type") == "file":
            # MCP clients only understand JSON schema types
            prop["type"] = "string"
            prop["format"] = "binary"
    return schema


def to_tool_result(result: ExecutionResult) -> ToolResult:
    if result.is_error:
        raise ToolError(result.content)
    return ToolResult(
        content=[TextContent(type="text", text=result.content)],
        meta=result.metadata,
    )


def build_server(app: App) -> FastMCP:
    mcp = FastMCP(app.name, instructions=_instructions(app))
    for descriptor in app.tools:
        mcp.add_tool(AppTool.from_descriptor(descriptor))
        logger.info("Registered tool: %s", descriptor.name)
    return mcp


async def serve(app: App, settings: Settings) -> None:
    mcp = build_server(app)
    try:
        if app.config.transport == "http":
            http_app = build_http_app(mcp, app, settings)
            config = uvicorn.Config(http_app, host=settings.host, port=int(app.config.port))
            server = uvicorn.Server(config)
            logger.info("Serving %s over HTTP on %s:%s", app.name, settings.host, app.config.port)
            await server.serve()
            return
        logger.info("Serving %s over stdio", app.name)
        await mcp.run_stdio_async()
    finally:
        await app.aclose()


def build_http_app(mcp: FastMCP, app: App, settings: Settings):  # type: ignore[no-untyped-def]
    http_app = mcp.http_app(transport="streamable-http", stateless_http=True, json_response=True)
    _attach_auth(http_app, app)
    _attach_healthcheck(http_app)
    _attach_cors(http_app, settings.cors_origin_list())
    return http_app


def _attach_auth(http_app, app: App) -> None:  # type: ignore[no-untyped-def]
    config = app.config.bearer_auth
    if config is None or not config.enabled:
        return

    verifier = BearerTokenVerifier(config)
    logger.info("Bearer authentication enabled (%s)", config.key_source())

    async def auth_middleware(request, call_next):  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS" or request.url.path.endswith("/health"):
            return await call_next(request)
        try:
            user = await verifier.authenticate(request.headers.get("authorization"))
        except AuthError as exc:
            logger.warning("Authentication error: %s", exc)
            status, message = _AUTH_RESPONSES.get(exc.kind, (401, "Authentication failed"))
            return PlainTextResponse(message, status_code=status)
        request.state.user = user
        if user is not None:
            logger.info("Authenticated request from user: %s", user.display_name())
        return await call_next(request)

    http_app.add_middleware(BaseHTTPMiddleware, dispatch=auth_middleware)


def _attach_healthcheck(http_app) -> None:  # type: ignore[no-untyped-def]
    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        return JSONResponse({"status": "ok"})

    http_app.add_route("/health", healthcheck, methods=["GET"])


def _attach_cors(http_app, origins: List[str]) -> None:  # type: ignore[no-untyped-def]
    http_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _instructions(app: App) -> str:
    return (
        f"Tools generated by MakeMCP from the {app.source_type} source for {app.name}. "
        "Arguments are prefixed with their request location, for example path__id or query__limit."
    )
