"""Tests for structural and field-value validation."""

from __future__ import annotations

from dataclasses import dataclass

from palettesmith.plugins.models import (
    ColorField,
    ColorTarget,
    Detection,
    FieldSpec,
    FileTarget,
    NumberField,
    Plugin,
    PluginManifest,
    PluginSpec,
    SelectField,
    TextField,
)
from palettesmith.plugins.validation import (
    parse_number,
    validate_field,
    validate_field_defaults,
    validate_manifest,
    validate_plugin,
)


def _codes(errors) -> list[str]:
    return [error.code for error in errors]


def _plugin(*fields: FieldSpec) -> Plugin:
    manifest = PluginManifest(id="demo", title="Demo", spec="spec.json")
    return Plugin(manifest=manifest, spec=PluginSpec("demo", "Demo", "demo.tmpl", tuple(fields)))


def test_invalid_color_yields_single_error() -> None:
    errors = validate_field(ColorField("bg", default="#000000"), "not-a-color")
    assert _codes(errors) == ["invalid_color"]
    assert errors[0].field == "bg"
    assert errors[0].message.startswith("Invalid color format")


def test_valid_color_passes() -> None:
    assert validate_field(ColorField("bg"), "rgba(255, 0, 127, 0.5)") == []


def test_blank_value_required_only_without_default() -> None:
    assert _codes(validate_field(TextField("name"), "  ")) == ["required"]
    assert validate_field(TextField("name", default="x"), "") == []


def test_number_bounds_and_parsing() -> None:
    spec_field = NumberField("opacity", minimum=0.0, maximum=1.0)
    assert validate_field(spec_field, "0.5") == []
    assert _codes(validate_field(spec_field, "1.5")) == ["above_maximum"]
    assert _codes(validate_field(spec_field, "-1")) == ["below_minimum"]
    assert _codes(validate_field(spec_field, "abc")) == ["invalid_number"]


def test_number_rejects_comma_decimal_separator() -> None:
    assert _codes(validate_field(NumberField("n"), "0,5")) == ["invalid_number"]
    assert parse_number("0,5") is None
    assert parse_number(" 1e3 ") == 1000.0
    assert parse_number(".25") == 0.25


def test_select_membership() -> None:
    spec_field = SelectField("shape", options=("block", "beam"))
    assert validate_field(spec_field, "beam") == []
    errors = validate_field(spec_field, "underline")
    assert _codes(errors) == ["invalid_option"]
    assert "block, beam" in errors[0].message


def test_text_has_no_structural_constraint() -> None:
    assert validate_field(TextField("font"), "anything at all #!") == []


def test_manifest_identity_fields_required() -> None:
    errors = validate_manifest(PluginManifest(id="", title=" ", spec=""))
    assert _codes(errors) == ["missing_id", "missing_title", "missing_spec"]


def test_rich_manifest_requires_files_and_hints() -> None:
    manifest = PluginManifest(
        id="demo",
        title="Demo",
        spec="spec.json",
        detection=Detection(binary_exists="demo"),
        colors=(ColorTarget(id="bg"), ColorTarget(id="fg", css_variables=("fg",)), ColorTarget(id="")),
    )
    assert _codes(validate_manifest(manifest)) == ["missing_files", "missing_target_hint", "missing_color_id"]


def test_rich_manifest_with_hints_is_valid() -> None:
    manifest = PluginManifest(
        id="demo",
        title="Demo",
        spec="spec.json",
        files=(FileTarget(path="~/.config/demo.toml", format="toml"),),
        colors=(ColorTarget(id="bg", toml_path="colors.bg"),),
    )
    assert validate_manifest(manifest) == []


def test_validate_plugin_collects_every_violation() -> None:
    @dataclass(frozen=True)
    class GradientField(FieldSpec):
        pass

    plugin = _plugin(ColorField("bg"), ColorField("bg"), TextField(""), GradientField("grad"))
    assert _codes(validate_plugin(plugin)) == ["duplicate_key", "missing_key", "invalid_type"]


def test_validate_plugin_accepts_known_field_types() -> None:
    plugin = _plugin(
        ColorField("bg", default="#000"),
        TextField("font"),
        NumberField("size", default="12"),
        SelectField("shape", default="block", options=("block",)),
    )
    assert validate_plugin(plugin) == []


def test_validate_field_defaults_reports_bad_defaults() -> None:
    plugin = _plugin(ColorField("bg", default="nope"), NumberField("size", default="12", maximum=10))
    assert _codes(validate_field_defaults(plugin)) == ["invalid_color", "above_maximum"]
