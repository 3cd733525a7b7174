"""Tests for template compilation, helpers and rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from palettesmith.errors import ErrorCode, RenderError, TemplateCompileError
from palettesmith.plugins.models import ColorField, NumberField
from palettesmith.plugins.template import (
    HEX_TO_RGBA_FALLBACK,
    NO_VALUE,
    build_field_data,
    compile_source,
    compile_template,
    translate_actions,
)


def _render(source: str, **data: str) -> str:
    return compile_source(source).render(data)


def test_field_substitution_end_to_end(tmp_path: Path) -> None:
    (tmp_path / "out.tmpl").write_text("{{.bg}}", encoding="utf-8")
    fields = (ColorField("bg", default="#1e1e2e"),)

    renderer = compile_template(tmp_path, "out.tmpl")
    assert renderer.render(build_field_data(fields, {"bg": "#112233"})) == "#112233"
    assert renderer.render(build_field_data(fields, {})) == "#1e1e2e"


def test_build_field_data_fills_missing_and_empty() -> None:
    fields = (ColorField("bg", default="#000000"), NumberField("size", default="12"))
    assert build_field_data(fields, {"bg": "", "extra": "x"}) == {"bg": "#000000", "size": "12"}


def test_alpha_and_hex_to_rgba() -> None:
    assert _render("{{alpha .bg 0.5}}", bg="#ff007f") == "rgba(255,0,127,0.5)"
    assert _render("{{hexToRGBA .color 1.0}}", color="#ff007f") == "rgba(255,0,127,1.0)"
    assert _render("{{hexToRGBA .color 0.8}}", color="#ff007f") == "rgba(255,0,127,0.8)"


def test_color_helpers_clamp_numeric_arguments() -> None:
    assert _render("{{alpha .bg 1.7}}", bg="#000000") == "rgba(0,0,0,1.0)"
    assert _render("{{brighten .bg 3}}", bg="#000000") == "#ffffff"
    assert _render("{{mix .a .b -1}}", a="#102030", b="#ffffff") == "#102030"


def test_mix_and_brighten() -> None:
    assert _render("{{mix .a .b 0.5}}", a="#000000", b="#ffffff") == "#7f7f7f"
    assert _render("{{brighten .bg 0.3}}", bg="#808080") == "#a6a6a6"


def test_numeric_arguments_may_come_from_fields() -> None:
    assert _render("{{alpha .bg .opacity}}", bg="#000000", opacity="0.25") == "rgba(0,0,0,0.25)"


def test_pipeline_passes_value_as_last_argument() -> None:
    assert _render("{{.opacity | alpha .bg}}", bg="#000000", opacity="0.25") == "rgba(0,0,0,0.25)"
    assert _render('{{mix .a .b 0.5 | trimPrefix "x"}}', a="#000000", b="#ffffff") == "x"


def test_trim_helpers() -> None:
    assert _render('{{trimPrefix .bg "#"}}', bg="#112233") == "112233"
    assert _render('{{trimSuffix .font " Mono"}}', font="Fira Mono") == "Fira"


def test_color_format_helper() -> None:
    assert _render('{{colorFormat .bg "hypr_rgb"}}', bg="#112233") == "rgb(112233)"
    assert _render('{{colorFormat .bg "rgba"}}', bg="#11223380") == "rgba(17, 34, 51, 0.502)"


def test_brighten_falls_back_to_original_text() -> None:
    result = compile_source("{{brighten .bg 0.2}}").render_result({"bg": "not-a-color"})
    assert result.text == "not-a-color"
    assert result.degraded
    assert result.fallbacks[0].helper == "brighten"
    assert result.fallbacks[0].value == "not-a-color"


def test_mix_falls_back_to_first_argument() -> None:
    result = compile_source("{{mix .a .b 0.5}}").render_result({"a": "#000000", "b": "bogus"})
    assert result.text == "#000000"
    assert [fallback.helper for fallback in result.fallbacks] == ["mix"]


def test_hex_to_rgba_falls_back_to_opaque_black() -> None:
    assert _render("{{hexToRGBA .bg 0.5}}", bg="bogus") == HEX_TO_RGBA_FALLBACK


def test_clean_render_has_no_fallbacks() -> None:
    result = compile_source("{{alpha .bg 0.5}}").render_result({"bg": "#000"})
    assert result.fallbacks == ()
    assert not result.degraded


def test_missing_value_renders_placeholder() -> None:
    assert _render("[{{.missing}}]") == f"[{NO_VALUE}]"


def test_jinja_syntax_passes_through() -> None:
    source = "{% if bg %}bg={{ bg }}{% endif %}{% for c in [1, 2] %}{{ c }}{% endfor %}"
    assert _render(source, bg="#112233") == "bg=#11223312"


def test_helper_names_win_over_fields_at_top_level() -> None:
    assert _render("{{.mix}}", mix="value") == "value"
    assert _render("{{ mix('#000000', '#ffffff', 1) }}", mix="value") == "#ffffff"


def test_trim_markers_and_comments() -> None:
    assert _render("a  {{- .bg -}}  b", bg="#112233") == "a#112233b"
    assert _render("x{{/* note */}}y") == "xy"


def test_trailing_newline_is_kept() -> None:
    assert _render("{{.bg}}\n", bg="#112233") == "#112233\n"


def test_translate_leaves_plain_expressions_alone() -> None:
    assert translate_actions("{{ x.y }} {{ name | upper }}") == "{{ x.y }} {{ name | upper }}"
    assert translate_actions("{{.bg}}") == '{{ _palette_fields["bg"] }}'


def test_field_with_arguments_is_syntax_error() -> None:
    with pytest.raises(TemplateCompileError) as excinfo:
        compile_source("line one\n{{.bg 0.5}}")
    assert excinfo.value.code is ErrorCode.TEMPLATE_SYNTAX
    assert excinfo.value.details["line"] == 2


def test_unknown_function_is_syntax_error() -> None:
    with pytest.raises(TemplateCompileError, match='function "nope" not defined'):
        compile_source("{{nope .bg}}")


def test_invalid_jinja_is_syntax_error() -> None:
    with pytest.raises(TemplateCompileError) as excinfo:
        compile_source("{% if %}")
    assert excinfo.value.code is ErrorCode.TEMPLATE_SYNTAX


def test_missing_template_file(tmp_path: Path) -> None:
    with pytest.raises(TemplateCompileError) as excinfo:
        compile_template(tmp_path, "missing.tmpl")
    assert excinfo.value.code is ErrorCode.TEMPLATE_UNREADABLE


def test_non_numeric_helper_argument_fails_render() -> None:
    renderer = compile_source('{{alpha .bg "abc"}}')
    with pytest.raises(RenderError) as excinfo:
        renderer.render({"bg": "#000000"})
    assert excinfo.value.code is ErrorCode.TEMPLATE_RENDER_FAILED


def test_sandbox_refuses_private_attributes(tmp_path: Path) -> None:
    marker = tmp_path / "touched"
    renderer = compile_source(
        "{{ cycler.__init__.__globals__.os.system('touch " + str(marker) + "') }}{{.bg}}"
    )
    with pytest.raises(RenderError) as excinfo:
        renderer.render({"bg": "#112233"})
    assert excinfo.value.code is ErrorCode.TEMPLATE_RENDER_FAILED
    assert not marker.exists()

    with pytest.raises(RenderError):
        compile_source("{{ cycler.__init__ }}").render({})


def test_brace_hash_and_percent_are_literal_text() -> None:
    assert _render("selector{#id} color: {{.bg}}", bg="#112233") == "selector{#id} color: #112233"
    assert _render("width: 50{%}\n{{.bg}}", bg="#000") == "width: 50{%}\n#000"
    assert _render("{% if bg %}on{% endif %} {#x}", bg="#000") == "on {#x}"


def test_literal_escape_keeps_line_numbers() -> None:
    with pytest.raises(TemplateCompileError) as excinfo:
        compile_source("{#\n{% if %}")
    assert excinfo.value.details["line"] == 2
