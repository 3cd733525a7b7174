"""Plugin registry merging built-in and external plugin layers."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from palettesmith.errors import PluginLoadError
from palettesmith.plugins.detection import detect
from palettesmith.plugins.loader import PluginCatalog, discover
from palettesmith.plugins.models import Plugin, PluginSummary

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Loads plugins from builtin and user directories.

    Two ordered layers are merged into one map, last writer wins by
    registration order: built-in plugins (shipped directories first, then
    those passed to ``register``) and then external plugins. An external
    plugin with the ID of a built-in one replaces it in place.
    """

    def __init__(self, builtin_root: Path | None, user_root: Path | None) -> None:
        self._builtin_root = builtin_root
        self._user_root = user_root
        self._registered: list[Plugin] = []
        self._plugins: dict[str, Plugin] = {}
        self._load_errors: dict[str, list[PluginLoadError]] = {}

    @property
    def builtin_root(self) -> Path | None:
        return self._builtin_root

    @property
    def user_root(self) -> Path | None:
        return self._user_root

    def set_user_root(self, path: Path | None) -> None:
        self._user_root = path

    def register(self, plugin: Plugin) -> None:
        """Add a compiled-in plugin to the built-in layer.

        It is applied immediately and again on every ``reload``; discovered
        external plugins with the same ID still take precedence.
        """
        if not plugin.is_builtin:
            plugin = replace(plugin, is_builtin=True)
        self._registered.append(plugin)
        existing = self._plugins.get(plugin.id)
        if existing is not None and not existing.is_builtin:
            return
        self._plugins[plugin.id] = plugin

    def reload(self) -> None:
        """Rediscover both layers, replacing the whole catalog."""
        self._plugins = {}
        self._load_errors = {}

        if self._builtin_root is not None:
            self._merge(discover(self._builtin_root, is_builtin=True))
        for plugin in self._registered:
            self._plugins[plugin.id] = plugin
        if self._user_root is not None:
            self._merge(discover(self._user_root, is_builtin=False))

    def get(self, plugin_id: str) -> Plugin | None:
        return self._plugins.get(plugin_id.lower())

    def list_plugins(self) -> list[Plugin]:
        return list(self._plugins.values())

    def list_summaries(self) -> list[PluginSummary]:
        detected = self.detect_all()
        rows = [
            PluginSummary(
                plugin_id=plugin.id,
                title=plugin.title,
                is_builtin=plugin.is_builtin,
                detected=detected[plugin.id],
                source_dir=plugin.source_dir,
            )
            for plugin in self._plugins.values()
        ]
        return sorted(rows, key=lambda row: row.title.lower())

    def load_errors(self) -> dict[str, list[PluginLoadError]]:
        return {key: list(errors) for key, errors in self._load_errors.items()}

    def detect_all(self) -> dict[str, bool]:
        return {plugin_id: detect(plugin) for plugin_id, plugin in self._plugins.items()}

    def _merge(self, catalog: PluginCatalog) -> None:
        for key, errors in catalog.load_errors().items():
            self._load_errors.setdefault(key, []).extend(errors)
        for plugin in catalog.list_plugins():
            existing = self._plugins.get(plugin.id)
            if existing is not None and existing.is_builtin and not plugin.is_builtin:
                logger.info("user plugin %r overrides built-in plugin", plugin.id)
            self._plugins[plugin.id] = plugin
