"""Structural and field-value validation for plugins.

Every function here collects the complete list of violations instead of
stopping at the first one; nothing is raised.
"""

from __future__ import annotations

import re

from palettesmith.core.color import normalize
from palettesmith.errors import ColorParseError
from palettesmith.plugins.models import (
    FIELD_TYPES,
    FieldKind,
    FieldSpec,
    NumberField,
    Plugin,
    PluginManifest,
    SelectField,
    ValidationError,
)

# "." is the only accepted decimal separator, independent of locale.
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def validate_manifest(manifest: PluginManifest) -> list[ValidationError]:
    """Check identity fields and, for rich manifests, files and color hints."""
    errors: list[ValidationError] = []
    if not manifest.id.strip():
        errors.append(ValidationError("id", "plugin ID is required", "missing_id"))
    if not manifest.title.strip():
        errors.append(ValidationError("title", "plugin title is required", "missing_title"))
    if not manifest.spec.strip():
        errors.append(ValidationError("spec", "spec path is required", "missing_spec"))

    if not manifest.is_rich:
        return errors

    if not manifest.files:
        errors.append(
            ValidationError("files", "manifest must declare at least one config file", "missing_files")
        )
    for index, target in enumerate(manifest.files):
        if not target.path.strip():
            errors.append(
                ValidationError(f"files[{index}]", "file entry is missing a path", "missing_file_path")
            )
    for index, color in enumerate(manifest.colors):
        if not color.id.strip():
            errors.append(
                ValidationError(f"colors[{index}]", "color entry is missing an id", "missing_color_id")
            )
            continue
        if not color.has_target_hint:
            errors.append(
                ValidationError(color.id, f"color {color.id!r} has no targeting hints", "missing_target_hint")
            )
    return errors


def validate_plugin(plugin: Plugin) -> list[ValidationError]:
    """Return every structural defect of a loaded plugin."""
    errors = validate_manifest(plugin.manifest)
    if not plugin.spec.id.strip():
        errors.append(ValidationError("spec.id", "spec ID is required", "missing_spec_id"))

    known_types = tuple(FIELD_TYPES.values())
    seen: set[str] = set()
    for index, spec_field in enumerate(plugin.spec.fields):
        key = spec_field.key.strip()
        if not key:
            errors.append(ValidationError(f"fields[{index}]", "field key is required", "missing_key"))
        elif key in seen:
            errors.append(ValidationError(key, f"duplicate field key {key!r}", "duplicate_key"))
        else:
            seen.add(key)
        if type(spec_field) not in known_types:
            errors.append(
                ValidationError(
                    key or f"fields[{index}]",
                    f"field {key!r}: invalid type {type(spec_field).__name__!r}",
                    "invalid_type",
                )
            )
    return errors


def validate_field(spec_field: FieldSpec, raw_value: str) -> list[ValidationError]:
    """Validate a user-entered value against the field's declared constraints."""
    value = (raw_value or "").strip()
    if not value:
        if not spec_field.default.strip():
            return [ValidationError(spec_field.key, "Field is required", "required")]
        return []

    error = _FIELD_CHECKS.get(getattr(spec_field, "kind", None), _no_check)(spec_field, value)
    return [error] if error is not None else []


def validate_field_defaults(plugin: Plugin) -> list[ValidationError]:
    """Run ``validate_field`` over every non-empty declared default."""
    errors: list[ValidationError] = []
    for spec_field in plugin.spec.fields:
        if spec_field.default.strip():
            errors.extend(validate_field(spec_field, spec_field.default))
    return errors


def parse_number(value: str) -> float | None:
    """Parse a number using ``.`` as decimal separator; None when invalid."""
    cleaned = value.strip()
    if not _NUMBER_RE.match(cleaned):
        return None
    return float(cleaned)


def _check_color(spec_field: FieldSpec, value: str) -> ValidationError | None:
    try:
        normalize(value)
    except ColorParseError as exc:
        return ValidationError(spec_field.key, f"Invalid color format: {exc.message}", "invalid_color")
    return None


def _check_number(spec_field: FieldSpec, value: str) -> ValidationError | None:
    number = parse_number(value)
    if number is None:
        return ValidationError(spec_field.key, "Must be a valid number", "invalid_number")
    if not isinstance(spec_field, NumberField):
        return None
    if spec_field.minimum is not None and number < spec_field.minimum:
        return ValidationError(spec_field.key, f"Must be at least {spec_field.minimum:g}", "below_minimum")
    if spec_field.maximum is not None and number > spec_field.maximum:
        return ValidationError(spec_field.key, f"Must be at most {spec_field.maximum:g}", "above_maximum")
    return None


def _check_select(spec_field: FieldSpec, value: str) -> ValidationError | None:
    if not isinstance(spec_field, SelectField) or not spec_field.options:
        return None
    if value in spec_field.options:
        return None
    return ValidationError(
        spec_field.key,
        f"Must be one of: {', '.join(spec_field.options)}",
        "invalid_option",
    )


def _no_check(spec_field: FieldSpec, value: str) -> ValidationError | None:
    return None


_FIELD_CHECKS = {
    FieldKind.COLOR: _check_color,
    FieldKind.NUMBER: _check_number,
    FieldKind.SELECT: _check_select,
}
