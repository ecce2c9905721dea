"""Build configuration with precedence resolution.

Settings for a compilation come from four layers, highest precedence first:

1. CLI flags (passed to :func:`resolve_settings` as keyword arguments)
2. Environment variables (``SWIZZLE_BASE_URL``, ``SWIZZLE_DELAY_MS``,
   ``SWIZZLE_API_VERSION``)
3. Project config (``./swizzle.json``)
4. Defaults declared on :class:`~swizzle.models.BuildSettings`

``response_classes`` maps are merged across layers rather than replaced, so a
project file can register classes and the CLI can add more.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from swizzle.exceptions import ConfigError
from swizzle.models import BuildSettings

PROJECT_CONFIG_FILENAME = "swizzle.json"

_ENV_VARS = {
    "SWIZZLE_BASE_URL": "base_url",
    "SWIZZLE_DELAY_MS": "delay_ms",
    "SWIZZLE_API_VERSION": "api_version",
}


def load_project_config(path: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load project-local configuration.

    Args:
        path: Explicit config file. Defaults to ``./swizzle.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = path or Path.cwd() / PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


def load_env_config() -> dict[str, Any]:
    """Read settings from ``SWIZZLE_*`` environment variables.

    Raises:
        ConfigError: If ``SWIZZLE_DELAY_MS`` is not an integer.
    """
    values: dict[str, Any] = {}
    for var, key in _ENV_VARS.items():
        raw = os.environ.get(var)
        if not raw:
            continue
        if key == "delay_ms":
            try:
                values[key] = int(raw)
            except ValueError as exc:
                raise ConfigError(f"{var} must be an integer, got '{raw}'") from exc
        else:
            values[key] = raw
    return values


def resolve_settings(
    project_file: Optional[Path] = None, **cli: Any
) -> BuildSettings:
    """Resolve :class:`BuildSettings` through the full precedence chain.

    Args:
        project_file: Explicit project config path (defaults to
            ``./swizzle.json``).
        **cli: CLI overrides; ``None`` values are ignored.

    Returns:
        The effective settings.

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    merged: dict[str, Any] = {}
    classes: dict[str, str] = {}

    layers = [
        load_project_config(project_file) or {},
        load_env_config(),
        {key: value for key, value in cli.items() if value is not None},
    ]
    for layer in layers:
        layer = dict(layer)
        layer_classes = layer.pop("response_classes", None) or {}
        if not isinstance(layer_classes, dict):
            raise ConfigError("'response_classes' must map operation names to classes")
        classes.update(layer_classes)
        merged.update(layer)

    try:
        return BuildSettings.model_validate({**merged, "response_classes": classes})
    except ValidationError as exc:
        raise ConfigError(f"Invalid build settings: {exc}") from exc
