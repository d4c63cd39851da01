"""JSON config file persistence for apps."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from .errors import ConfigIOError
from .models import DEFAULT_FILE, App


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def config_filename(app: App) -> str:
    file = app.config.file
    if file and file != DEFAULT_FILE:
        return f"{file}.json"
    return f"{app.name}_makemcp.json"


def save_app(app: App, directory: PathLike = ".") -> Path:
    path = Path(directory) / config_filename(app)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(app.to_json(), encoding="utf-8")
    except OSError as exc:
        raise ConfigIOError(f"failed to write configuration file {path}: {exc}") from exc
    logger.info("Saved configuration to %s", path)
    return path


def read_config(path: PathLike) -> Dict[str, Any]:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigIOError(f"failed to read configuration file {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigIOError(f"configuration file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigIOError(f"configuration file {path} must contain a JSON object")
    return data
