"""Sources turn an input format into an app with callable tools."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Type

import httpx
from pydantic import ValidationError

from .config import get_settings
from .content_types import ContentTypeRegistry
from .errors import ConfigIOError, ParamsInvalidError, SourceNotFoundError
from .executors import RestExecutor
from .models import (
    DEFAULT_FILE,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    TRANSPORTS,
    App,
    ExecutionResult,
    OpenAPIApp,
    OpenAPIParams,
    OpenAPIToolDescriptor,
    SharedParams,
    ToolHandler,
)
from .openapi import OpenAPILoader
from .security import warn_url_security
from .store import PathLike, read_config, save_app
from .synthesizer import ToolSynthesizer


logger = logging.getLogger(__name__)


class Source:
    """A family of input formats sharing the parse, attach and serve pipeline."""

    name: str = ""
    help: str = ""
    app_model: Type[App] = App

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        pass

    def parse_params(self, args: argparse.Namespace) -> SharedParams:
        raise NotImplementedError

    async def parse(self, params: SharedParams) -> App:
        raise NotImplementedError

    def attach_handlers(self, app: App) -> None:
        raise NotImplementedError

    def warn_url_security(self, params: SharedParams) -> None:
        pass

    def unmarshal_config(self, data: Dict[str, Any]) -> App:
        try:
            app = self.app_model.model_validate(data)
        except ValidationError as exc:
            raise ConfigIOError(f"invalid {self.name} configuration: {exc}") from exc
        if app.source_type != self.name:
            raise ConfigIOError(
                f"configuration sourceType {app.source_type!r} does not match source {self.name!r}"
            )
        return app


def add_shared_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--transport",
        "-t",
        choices=TRANSPORTS,
        default="stdio",
        help="MCP transport to serve on (default: stdio)",
    )
    parser.add_argument(
        "--config-only",
        "--co",
        dest="config_only",
        action="store_true",
        help="write the configuration file and exit",
    )
    parser.add_argument(
        "--port", default=DEFAULT_PORT, help=f"port for the http transport (default: {DEFAULT_PORT})"
    )
    parser.add_argument(
        "--dev-mode",
        dest="dev_mode",
        action="store_true",
        help="suppress URL security warnings",
    )
    parser.add_argument(
        "--file",
        "-f",
        default=DEFAULT_FILE,
        help="configuration file name without extension",
    )


def shared_values(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "transport": args.transport,
        "config_only": args.config_only,
        "port": str(args.port),
        "dev_mode": args.dev_mode,
        "file": args.file,
    }


class OpenAPISource(Source):
    name = "openapi"
    help = "Create an MCP server from an OpenAPI 3.x specification"
    app_model = OpenAPIApp

    def __init__(
        self,
        loader: Optional[OpenAPILoader] = None,
        synthesizer: Optional[ToolSynthesizer] = None,
        registry: Optional[ContentTypeRegistry] = None,
    ) -> None:
        self._loader = loader
        self._synthesizer = synthesizer
        self.registry = registry or ContentTypeRegistry()

    @property
    def loader(self) -> OpenAPILoader:
        if self._loader is None:
            self._loader = OpenAPILoader(timeout_seconds=get_settings().spec_timeout_seconds)
        return self._loader

    @property
    def synthesizer(self) -> ToolSynthesizer:
        if self._synthesizer is None:
            self._synthesizer = ToolSynthesizer(
                registry=self.registry, max_sample_depth=get_settings().max_sample_depth
            )
        return self._synthesizer

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--specs", "-s", help="OpenAPI specification URL or file path")
        parser.add_argument(
            "--base-url", "-b", dest="base_url", help="base URL prepended to every operation path"
        )
        parser.add_argument(
            "--timeout",
            "--to",
            type=int,
            default=DEFAULT_TIMEOUT,
            help=f"upstream HTTP timeout in seconds (default: {DEFAULT_TIMEOUT})",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="reject the OpenAPI document on any validation error",
        )

    def parse_params(self, args: argparse.Namespace) -> OpenAPIParams:
        params = OpenAPIParams(
            source_type=self.name,
            specs=args.specs or "",
            base_url=args.base_url or "",
            timeout=args.timeout,
            strict_validate=args.strict,
            **shared_values(args),
        )
        params.ensure_valid()
        return params

    def warn_url_security(self, params: SharedParams) -> None:
        if not isinstance(params, OpenAPIParams) or params.dev_mode:
            return
        warn_url_security(params.specs, "OpenAPI spec", params.dev_mode)
        warn_url_security(params.base_url, "Base URL", params.dev_mode)

    async def parse(self, params: SharedParams) -> OpenAPIApp:
        if not isinstance(params, OpenAPIParams):
            raise ParamsInvalidError("openapi source requires OpenAPI parameters")
        params.ensure_valid()

        document = await self.loader.load(params.specs, strict=params.strict_validate)
        tools = self.synthesizer.synthesize(document)
        logger.info("Created %d tools from %s", len(tools), params.specs)
        return OpenAPIApp(
            name=document.title or Path(params.specs).stem or self.name,
            version=document.version,
            source_type=self.name,
            tools=tools,
            config=params,
        )

    def attach_handlers(self, app: App) -> None:
        if not isinstance(app, OpenAPIApp):
            raise ConfigIOError("openapi source can only attach handlers to an OpenAPI app")
        client = httpx.AsyncClient(timeout=app.config.timeout, follow_redirects=True)
        executor = RestExecutor(client, app.config.base_url, registry=self.registry)
        for tool in app.tools:
            tool.attach_handler(_tool_handler(executor, tool))
        app.add_closer(client.aclose)
        logger.info("Attached handlers to %d tools (base URL %s)", len(app.tools), app.config.base_url)


def _tool_handler(executor: RestExecutor, tool: OpenAPIToolDescriptor) -> ToolHandler:
    async def handler(arguments: Dict[str, Any]) -> ExecutionResult:
        return await executor.execute(tool, arguments)

    return handler


class SourceRegistry:
    def __init__(self) -> None:
        self._sources: Dict[str, Source] = {}

    def register(self, source: Source) -> None:
        self._sources[source.name] = source

    def get(self, name: str) -> Source:
        source = self._sources.get(name)
        if source is None:
            known = ", ".join(sorted(self._sources)) or "none"
            raise SourceNotFoundError(f"unknown source type {name!r} (registered: {known})")
        return source

    def names(self) -> List[str]:
        return list(self._sources)

    def __iter__(self) -> Iterator[Source]:
        return iter(self._sources.values())


default_registry = SourceRegistry()
default_registry.register(OpenAPISource())


async def create_app(source: Source, params: SharedParams, output_dir: PathLike = ".") -> App:
    """Parse a source and persist its configuration file."""
    source.warn_url_security(params)
    app = await source.parse(params)
    save_app(app, output_dir)
    return app


def load_app(path: PathLike, registry: Optional[SourceRegistry] = None) -> App:
    """Rebuild an app from its configuration file and attach handlers."""
    registry = registry or default_registry
    data = read_config(path)
    source_type = data.get("sourceType")
    if not isinstance(source_type, str) or not source_type:
        raise ConfigIOError(f"configuration file {path} has no sourceType")

    source = registry.get(source_type)
    app = source.unmarshal_config(data)
    app.config.ensure_valid()
    source.warn_url_security(app.config)
    source.attach_handlers(app)
    return app
