"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_SETTINGS: dict[str, Any] = {
    "library": {"root": "~/.config/image-library"},
    "slideshow": {"interval_seconds": 3},
    "loading": {"max_workers": 8},
    "logging": {"level": "INFO", "dir": None},
    "favorites": {"persist": True},
    "sorting": {"locale": ""},
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge `override` into a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class JsonSettings:
    """JSON settings reader with dotted-key access over built-in defaults."""

    def __init__(self, settings_path: str | Path | None = None) -> None:
        self._path = Path(settings_path) if settings_path is not None else None
        data: dict[str, Any] = {}
        if self._path is not None:
            if self._path.exists():
                with self._path.open("r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    data = loaded
                else:
                    logger.warning("settings.json is not an object, using defaults: {}", self._path)
            else:
                logger.warning("settings.json not found, using defaults: {}", self._path)
        self._data = _merge(DEFAULT_SETTINGS, data)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def get_int(
        self, key: str, default: int, minimum: int | None = None, maximum: int | None = None
    ) -> int:
        """Return an integer setting clamped to `[minimum, maximum]`."""
        try:
            value = int(self.get(key, default))
        except (TypeError, ValueError):
            logger.warning("Invalid integer setting {}, using {}", key, default)
            value = default
        if minimum is not None:
            value = max(minimum, value)
        if maximum is not None:
            value = min(maximum, value)
        return value

    def get_path(self, key: str, default: str) -> Path:
        """Return a path setting with `~` expanded."""
        return Path(str(self.get(key, default) or default)).expanduser()
