"""Validation report covering every discovered plugin candidate."""

from __future__ import annotations

from dataclasses import dataclass, field

from palettesmith.errors import PalettesmithError, PluginLoadError, format_error_for_user
from palettesmith.plugins.constants import SYSTEM_ERROR_KEY
from palettesmith.plugins.models import Plugin, ValidationError
from palettesmith.plugins.registry import PluginRegistry
from palettesmith.plugins.template import compile_template
from palettesmith.plugins.validation import validate_field_defaults, validate_plugin


@dataclass(slots=True)
class PluginReport:
    plugin_id: str
    title: str = ""
    load_errors: list[PluginLoadError] = field(default_factory=list)
    structural_errors: list[ValidationError] = field(default_factory=list)
    field_errors: list[ValidationError] = field(default_factory=list)
    template_errors: list[PalettesmithError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.load_errors or self.structural_errors or self.field_errors or self.template_errors)


@dataclass(slots=True)
class ValidationReport:
    plugins: list[PluginReport] = field(default_factory=list)
    global_errors: list[PluginLoadError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.global_errors and all(entry.ok for entry in self.plugins)

    @property
    def failed(self) -> list[PluginReport]:
        return [entry for entry in self.plugins if not entry.ok]


def build_report(registry: PluginRegistry) -> ValidationReport:
    """Check every loaded plugin and list every candidate that failed to load.

    Nothing stops at the first failure; the report holds the complete picture.
    """
    report = ValidationReport()
    entries: dict[str, PluginReport] = {}
    for plugin in sorted(registry.list_plugins(), key=lambda item: item.id):
        entries[plugin.id] = _check_plugin(plugin)

    for key, errors in sorted(registry.load_errors().items()):
        if key == SYSTEM_ERROR_KEY:
            report.global_errors.extend(errors)
            continue
        entry = entries.get(key.lower())
        if entry is None:
            entry = PluginReport(plugin_id=key)
            entries[f"candidate:{key}"] = entry
        entry.load_errors.extend(errors)

    report.plugins = list(entries.values())
    return report


def format_report(report: ValidationReport) -> str:
    lines = [f"Found {len(report.plugins)} plugins:"]
    for entry in report.plugins:
        heading = f"{entry.plugin_id} ({entry.title})" if entry.title else entry.plugin_id
        lines.append("")
        lines.append(f"> {heading}")
        if entry.load_errors:
            lines.append("  x Plugin loading errors:")
            lines.extend(f"    - {format_error_for_user(error)}" for error in entry.load_errors)
        if entry.structural_errors:
            lines.append("  x Plugin validation errors:")
            lines.extend(f"    - {error.message}" for error in entry.structural_errors)
        if entry.field_errors:
            lines.append("  x Field validation errors:")
            lines.extend(f"    - Field '{error.field}': {error.message}" for error in entry.field_errors)
        if entry.template_errors:
            lines.append("  x Template errors:")
            lines.extend(f"    - {format_error_for_user(error)}" for error in entry.template_errors)
        if entry.ok:
            lines.append("  ok Plugin is valid")

    if report.global_errors:
        lines.append("")
        lines.append("Global errors:")
        lines.extend(f"  x {format_error_for_user(error)}" for error in report.global_errors)

    lines.append("")
    summary = "All plugins valid" if report.ok else "Found errors"
    lines.append(f"Validation complete: {summary}")
    return "\n".join(lines)


def _check_plugin(plugin: Plugin) -> PluginReport:
    entry = PluginReport(plugin_id=plugin.id, title=plugin.title)
    entry.structural_errors.extend(validate_plugin(plugin))
    entry.field_errors.extend(validate_field_defaults(plugin))
    if plugin.source_dir is not None and plugin.spec.template_file.strip():
        try:
            compile_template(plugin.source_dir, plugin.spec.template_file)
        except PalettesmithError as exc:
            entry.template_errors.append(exc)
    return entry
