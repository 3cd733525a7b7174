"""Theme values with per-target overrides and JSON persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from palettesmith.errors import ConfigError, ErrorCode, classify_os_error

logger = logging.getLogger(__name__)


class Provenance(str, Enum):
    """Where an effective value came from."""

    OVERRIDE = "override"
    THEME = "theme"
    DEFAULT = "default"


@dataclass
class ThemeConfig:
    """Global field defaults plus per-target override maps."""

    defaults: dict[str, str] = field(default_factory=dict)
    overrides: dict[str, dict[str, str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ThemeConfig:
        defaults = _string_map(data.get("defaults"), "defaults")
        raw_overrides = data.get("overrides") or {}
        if not isinstance(raw_overrides, Mapping):
            raise ConfigError(ErrorCode.CONFIG_INVALID, "theme overrides must be an object")
        overrides: dict[str, dict[str, str]] = {}
        for target_id, values in raw_overrides.items():
            cleaned = _string_map(values, f"overrides.{target_id}")
            if cleaned:
                overrides[str(target_id)] = cleaned
        return cls(defaults=defaults, overrides=overrides)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"defaults": dict(self.defaults)}
        overrides = {target: dict(values) for target, values in self.overrides.items() if values}
        if overrides:
            data["overrides"] = overrides
        return data


class ThemeStore:
    """Resolves effective field values: override, then theme default, then field default.

    Owned by a single editing session; there is no locking.
    """

    def __init__(self, config: ThemeConfig | None = None) -> None:
        self._config = config if config is not None else ThemeConfig()

    @property
    def config(self) -> ThemeConfig:
        return self._config

    def resolve(self, target_id: str, field_key: str, field_default: str) -> str:
        override = self.get_override(target_id, field_key)
        if override:
            return override
        if field_key in self._config.defaults:
            return self._config.defaults[field_key]
        return field_default

    def provenance(self, target_id: str, field_key: str) -> Provenance:
        if self.has_override(target_id, field_key):
            return Provenance.OVERRIDE
        if self.has_default(field_key):
            return Provenance.THEME
        return Provenance.DEFAULT

    def get_override(self, target_id: str, field_key: str) -> str:
        return self._config.overrides.get(target_id, {}).get(field_key, "")

    def has_override(self, target_id: str, field_key: str) -> bool:
        return self.get_override(target_id, field_key) != ""

    def has_default(self, field_key: str) -> bool:
        return field_key in self._config.defaults

    def set_default(self, field_key: str, value: str) -> None:
        self._config.defaults[field_key] = value

    def set_override(self, target_id: str, field_key: str, value: str, field_default: str = "") -> None:
        """Store an override, or drop it when it matches the effective default.

        The effective default is the theme default when one exists, else
        ``field_default``. Blank values also clear the override.
        """
        effective_default = self._config.defaults.get(field_key, field_default)
        if not value or value == effective_default:
            self.clear_override(target_id, field_key)
            return
        self._config.overrides.setdefault(target_id, {})[field_key] = value

    def clear_override(self, target_id: str, field_key: str) -> None:
        values = self._config.overrides.get(target_id)
        if values is None:
            return
        values.pop(field_key, None)
        if not values:
            del self._config.overrides[target_id]


def load_theme_config(path: Path) -> ThemeConfig:
    """Read a theme config JSON file; a missing file yields an empty config."""
    if not path.exists():
        logger.debug("theme config %s not found; starting empty", path)
        return ThemeConfig()
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(classify_os_error(exc), f"Unable to read {path.name}: {exc}", path=path) from exc
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(ErrorCode.CONFIG_INVALID, f"Invalid JSON in {path.name}: {exc}", path=path) from exc
    if not isinstance(data, dict):
        raise ConfigError(ErrorCode.CONFIG_INVALID, f"Expected JSON object in {path.name}", path=path)
    return ThemeConfig.from_dict(data)


def save_theme_config(config: ThemeConfig, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ConfigError(ErrorCode.CONFIG_PERMISSION_DENIED, f"Unable to write {path.name}: {exc}", path=path) from exc


def _string_map(raw: object, context: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(ErrorCode.CONFIG_INVALID, f"theme {context} must be an object")
    cleaned: dict[str, str] = {}
    for key, value in raw.items():
        if isinstance(key, str) and isinstance(value, str):
            cleaned[key] = value
    return cleaned
