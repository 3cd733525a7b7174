"""Editing session tying the plugin registry, theme store and templates together."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal

from palettesmith.core.theme_store import Provenance, ThemeStore
from palettesmith.errors import ErrorCode, PluginLoadError, TemplateCompileError
from palettesmith.plugins.models import FieldSpec, Plugin, PluginSummary, ValidationError
from palettesmith.plugins.registry import PluginRegistry
from palettesmith.plugins.template import RenderResult, TemplateRenderer, compile_template
from palettesmith.plugins.validation import validate_field

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedField:
    """A spec field with its effective value and where that value came from."""

    field: FieldSpec
    value: str
    provenance: Provenance


class PaletteService(QObject):
    """Resolve, edit and render plugin fields for one editing session."""

    field_changed = Signal(str, str)

    def __init__(self, registry: PluginRegistry, store: ThemeStore) -> None:
        super().__init__()
        self._registry = registry
        self._store = store
        self._renderers: dict[str, TemplateRenderer] = {}

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def store(self) -> ThemeStore:
        return self._store

    def reload_plugins(self) -> dict[str, list[PluginLoadError]]:
        self._registry.reload()
        self._renderers.clear()
        return self._registry.load_errors()

    def available_plugins(self) -> list[PluginSummary]:
        return self._registry.list_summaries()

    def resolved_fields(self, plugin_id: str) -> list[ResolvedField]:
        plugin = self._require(plugin_id)
        return [
            ResolvedField(
                field=spec_field,
                value=self._store.resolve(plugin.id, spec_field.key, spec_field.default),
                provenance=self._store.provenance(plugin.id, spec_field.key),
            )
            for spec_field in plugin.spec.fields
        ]

    def resolved_values(self, plugin_id: str) -> dict[str, str]:
        return {row.field.key: row.value for row in self.resolved_fields(plugin_id)}

    def set_field(self, plugin_id: str, key: str, value: str) -> list[ValidationError]:
        """Validate and store an override; the store is untouched on errors."""
        plugin = self._require(plugin_id)
        spec_field = plugin.spec.field(key)
        if spec_field is None:
            return [ValidationError(key, f"unknown field {key!r} for plugin {plugin.id}", "unknown_field")]

        cleaned = (value or "").strip()
        errors = validate_field(spec_field, cleaned)
        if errors:
            return errors

        self._store.set_override(plugin.id, key, cleaned, spec_field.default)
        logger.debug("plugin %s field %s set to %r", plugin.id, key, cleaned)
        self.field_changed.emit(plugin.id, key)
        return []

    def reset_field(self, plugin_id: str, key: str) -> None:
        plugin = self._require(plugin_id)
        self._store.clear_override(plugin.id, key)
        self.field_changed.emit(plugin.id, key)

    def render(self, plugin_id: str) -> RenderResult:
        plugin = self._require(plugin_id)
        renderer = self._renderers.get(plugin.id)
        if renderer is None:
            if plugin.source_dir is None:
                raise TemplateCompileError(
                    ErrorCode.TEMPLATE_UNREADABLE,
                    f"plugin {plugin.id} has no source directory for its template",
                )
            renderer = compile_template(plugin.source_dir, plugin.spec.template_file)
            self._renderers[plugin.id] = renderer
        result = renderer.render_result(self.resolved_values(plugin.id))
        if result.degraded:
            logger.warning("plugin %s rendered with %d helper fallback(s)", plugin.id, len(result.fallbacks))
        return result

    def _require(self, plugin_id: str) -> Plugin:
        plugin = self._registry.get(plugin_id)
        if plugin is None:
            raise PluginLoadError(ErrorCode.MANIFEST_MISSING, f"Plugin not found: {plugin_id}")
        return plugin
