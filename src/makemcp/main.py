"""CLI entry point for MakeMCP."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import get_settings
from .errors import ConfigIOError, MakeMCPError, ParamsInvalidError
from .logging import configure_logging
from .server import serve
from .sources import SourceRegistry, add_shared_arguments, create_app, default_registry, load_app


logger = logging.getLogger(__name__)

LOAD_COMMAND = "load"


def build_parser(registry: SourceRegistry) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="makemcp",
        description="Build and serve MCP servers from API descriptions.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)
    for source in registry:
        command = subparsers.add_parser(
            source.name, help=source.help, description=source.help, allow_abbrev=False
        )
        add_shared_arguments(command)
        source.add_arguments(command)

    load = subparsers.add_parser(
        LOAD_COMMAND,
        help="Serve a previously generated configuration file",
        description="Serve a previously generated configuration file",
    )
    load.add_argument("paths", nargs="*", metavar="CONFIG_FILE")
    return parser


async def _run(args: argparse.Namespace, registry: SourceRegistry) -> None:
    settings = get_settings()

    if args.command == LOAD_COMMAND:
        if len(args.paths) != 1:
            raise ParamsInvalidError(
                "load command requires exactly one argument: the path to the config file"
            )
        try:
            app = load_app(args.paths[0], registry)
        except MakeMCPError as exc:
            raise ConfigIOError(f"failed to load configuration: {exc}") from exc
        await serve(app, settings)
        return

    source = registry.get(args.command)
    params = source.parse_params(args)
    app = await create_app(source, params)
    if params.config_only:
        logger.info("Configuration file created. Exiting.")
        return
    source.attach_handlers(app)
    await serve(app, settings)


def run(argv: Optional[List[str]] = None, registry: Optional[SourceRegistry] = None) -> int:
    registry = registry or default_registry
    configure_logging(get_settings().log_level)
    args = build_parser(registry).parse_args(argv)
    try:
        asyncio.run(_run(args, registry))
    except MakeMCPError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
