"""Models for apps, tool descriptors and per-call data."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .errors import AuthConfigError, ParamsInvalidError


TRANSPORTS = ("stdio", "http")
DEFAULT_PORT = "8080"
DEFAULT_FILE = "makemcp"
DEFAULT_TIMEOUT = 30

SUPPORTED_JWT_ALGORITHMS = (
    "RS256",
    "RS384",
    "RS512",
    "ES256",
    "ES384",
    "ES512",
    "PS256",
    "PS384",
    "PS512",
)


class _AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BearerAuthConfig(_AliasedModel):
    enabled: bool = False
    jwks_uri: Optional[str] = Field(default=None, alias="jwksUri")
    public_key: Optional[str] = Field(default=None, alias="publicKey")
    algorithm: str = "RS256"
    issuer: Optional[str] = None
    audience: Optional[str] = None
    required_scopes: List[str] = Field(default_factory=list, alias="requiredScopes")
    required: bool = False
    cache_ttl: int = Field(default=300, alias="cacheTtl")

    def ensure_valid(self) -> None:
        if not self.enabled:
            return
        if not self.jwks_uri and not self.public_key:
            raise AuthConfigError(
                "either jwksUri or publicKey must be provided when authentication is enabled"
            )
        if self.jwks_uri and self.public_key:
            raise AuthConfigError("cannot specify both jwksUri and publicKey, choose one")
        if self.jwks_uri and not self.jwks_uri.startswith("https://"):
            raise AuthConfigError("jwksUri must use HTTPS")
        if not self.algorithm:
            self.algorithm = "RS256"
        if self.algorithm not in SUPPORTED_JWT_ALGORITHMS:
            raise AuthConfigError(f"unsupported JWT algorithm: {self.algorithm}")
        if self.cache_ttl <= 0:
            self.cache_ttl = 300
        if self.cache_ttl > 3600:
            raise AuthConfigError("cacheTtl cannot exceed 3600 seconds (1 hour)")
        if self.issuer and not self.issuer.startswith(("https://", "http://")):
            raise AuthConfigError("issuer must be a valid URL (if provided)")

    def key_source(self) -> str:
        if self.jwks_uri:
            return f"JWKS from {self.jwks_uri}"
        if self.public_key:
            return "Static public key"
        return "No key source configured"


class SharedParams(_AliasedModel):
    transport: str = "stdio"
    config_only: bool = Field(default=False, alias="configOnly")
    port: str = DEFAULT_PORT
    dev_mode: bool = Field(default=False, alias="devMode")
    source_type: str = Field(default="", alias="sourceType")
    file: str = DEFAULT_FILE
    bearer_auth: Optional[BearerAuthConfig] = Field(default=None, alias="bearerAuth")

    def ensure_valid(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ParamsInvalidError(
                f"transport must be one of {', '.join(TRANSPORTS)}, got {self.transport!r}"
            )
        if self.bearer_auth is not None:
            try:
                self.bearer_auth.ensure_valid()
            except AuthConfigError as exc:
                raise ParamsInvalidError(f"invalid bearerAuth configuration: {exc}") from exc


class OpenAPIParams(SharedParams):
    specs: str = ""
    base_url: str = Field(default="", alias="baseURL")
    timeout: int = DEFAULT_TIMEOUT
    strict_validate: bool = Field(default=False, alias="strictValidate")

    def ensure_valid(self) -> None:
        super().ensure_valid()
        if not self.specs:
            raise ParamsInvalidError(
                "specs parameter is required - must specify OpenAPI specification URL or file path"
            )
        if not self.base_url:
            raise ParamsInvalidError(
                "base-url parameter is required - must specify the base URL of the API"
            )
        for label, value in (("specs", self.specs), ("base-url", self.base_url)):
            if "://" in value and not _looks_like_url(value):
                raise ParamsInvalidError(f"invalid {label} URL: {value}")
        if self.timeout <= 0:
            raise ParamsInvalidError("timeout must be greater than 0")


def _looks_like_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


class ToolAnnotations(_AliasedModel):
    title: Optional[str] = None
    read_only_hint: Optional[bool] = Field(default=None, alias="readOnlyHint")
    destructive_hint: Optional[bool] = Field(default=None, alias="destructiveHint")
    idempotent_hint: Optional[bool] = Field(default=None, alias="idempotentHint")
    open_world_hint: Optional[bool] = Field(default=None, alias="openWorldHint")


class ToolInputProperty(BaseModel):
    type: str = "string"
    description: str = ""


class ToolInputSchema(BaseModel):
    type: str = "object"
    properties: Dict[str, ToolInputProperty] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)


class HandlerInput(_AliasedModel):
    method: str
    path: str
    headers: Dict[str, str] = Field(default_factory=dict)
    cookies: Dict[str, str] = Field(default_factory=dict)
    body_append: Dict[str, Any] = Field(default_factory=dict, alias="bodyAppend")
    content_type: str = Field(default="", alias="contentType")


ToolHandler = Callable[[Dict[str, Any]], Awaitable["ExecutionResult"]]


class ToolDescriptor(_AliasedModel):
    name: str
    description: str = ""
    input_schema: ToolInputSchema = Field(default_factory=ToolInputSchema, alias="inputSchema")
    annotations: ToolAnnotations = Field(default_factory=ToolAnnotations)

    _handler: Optional[ToolHandler] = PrivateAttr(default=None)

    @property
    def handler(self) -> Optional[ToolHandler]:
        return self._handler

    def attach_handler(self, handler: ToolHandler) -> None:
        self._handler = handler


class OpenAPIToolDescriptor(ToolDescriptor):
    handler_input: HandlerInput = Field(alias="oapiHandlerInput")


class App(_AliasedModel):
    name: str
    version: str = ""
    source_type: str = Field(alias="sourceType")
    tools: List[ToolDescriptor] = Field(default_factory=list)
    config: SharedParams = Field(default_factory=SharedParams)

    _closers: List[Callable[[], Awaitable[None]]] = PrivateAttr(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def add_closer(self, closer: Callable[[], Awaitable[None]]) -> None:
        self._closers.append(closer)

    async def aclose(self) -> None:
        while self._closers:
            await self._closers.pop()()


class OpenAPIApp(App):
    tools: List[OpenAPIToolDescriptor] = Field(default_factory=list)
    config: OpenAPIParams = Field(default_factory=OpenAPIParams)


@dataclass
class ToolParams:
    path: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    header: Dict[str, Any] = field(default_factory=dict)
    cookie: Dict[str, Any] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecutionResult:
    content: str
    error: Optional[Exception] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.error is not None
