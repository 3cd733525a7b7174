"""Template compilation and rendering for plugin config fragments.

Templates are Jinja2 templates that additionally accept action syntax:

* ``{{.bg}}`` substitutes the value of field ``bg``;
* ``{{brighten .bg 0.2}}`` calls a helper with space separated arguments;
* ``{{.opacity | alpha .bg}}`` pipes the previous value in as the last
  argument of the next helper.

Actions that are not in that form (``{{ bg }}``, ``{% if ... %}``) are handed
to Jinja2 untouched. Outside actions, ``{#`` and any ``{%`` that does not open
a control block are literal text. Templates run in a sandbox: underscore
attributes and mutating calls are refused at render time.

Color helpers never fail the render on unparseable color text: they
substitute a fallback and record a ``HelperFallback`` on the ``RenderResult``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, NamedTuple

from jinja2 import Template, TemplateError, TemplateSyntaxError, Undefined
from jinja2.exceptions import SecurityError
from jinja2.sandbox import ImmutableSandboxedEnvironment

from palettesmith.core import color as color_engine
from palettesmith.errors import (
    ColorParseError,
    ErrorCode,
    RenderError,
    TemplateCompileError,
    classify_os_error,
)
from palettesmith.plugins.constants import MAX_TEMPLATE_BYTES
from palettesmith.plugins.models import FieldSpec
from palettesmith.plugins.validation import parse_number

logger = logging.getLogger(__name__)

NO_VALUE = "<no value>"
HEX_TO_RGBA_FALLBACK = "rgba(0,0,0,1.0)"
HELPER_NAMES = ("alpha", "hexToRGBA", "brighten", "mix", "colorFormat", "trimPrefix", "trimSuffix")

_FIELDS_VAR = "_palette_fields"
_ACTION_RE = re.compile(r"\{\{(-?)(.*?)(-?)\}\}", re.DOTALL)
_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<field>\.[A-Za-z_]\w*)
      | (?P<string>"(?:[^"\\\n]|\\.)*"|`[^`]*`)
      | (?P<number>[+-]?(?:\d+\.\d*|\.\d+|\d+))
      | (?P<ident>[A-Za-z_]\w*)
      | (?P<pipe>\|)
    )""",
    re.VERBOSE,
)
_LITERAL_OPEN_RE = re.compile(r"\{[#%]")
_CONTROL_BLOCK_RE = re.compile(
    r"\{%[-+]?\s*(?:if|elif|else|endif|for|endfor|set|endset|with|endwith|filter|endfilter)\b"
)


class _NoValue(Undefined):
    """Missing values print as ``<no value>`` instead of an empty string."""

    __slots__ = ()

    def __str__(self) -> str:
        if issubclass(self._undefined_exception, SecurityError):
            self._fail_with_undefined_error()
        return NO_VALUE


_env = ImmutableSandboxedEnvironment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=_NoValue,
)


@dataclass(frozen=True, slots=True)
class HelperFallback:
    """A helper call that could not parse its color input and degraded."""

    helper: str
    value: str
    reason: str


@dataclass(frozen=True, slots=True)
class RenderResult:
    text: str
    fallbacks: tuple[HelperFallback, ...] = ()

    @property
    def degraded(self) -> bool:
        return bool(self.fallbacks)


class TemplateRenderer:
    """A compiled plugin template. Reusable across renders."""

    def __init__(self, template: Template, *, name: str, path: Path | None = None) -> None:
        self._template = template
        self._name = name
        self._path = path

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path | None:
        return self._path

    def render(self, data: Mapping[str, Any]) -> str:
        return self.render_result(data).text

    def render_result(self, data: Mapping[str, Any]) -> RenderResult:
        helpers = _Helpers()
        context: dict[str, Any] = dict(data)
        context.update(helpers.functions())
        context[_FIELDS_VAR] = dict(data)
        try:
            text = self._template.render(context)
        except (SecurityError, TemplateError, TypeError, ValueError) as exc:
            raise RenderError(
                ErrorCode.TEMPLATE_RENDER_FAILED,
                f"failed to execute template {self._name}: {exc}",
                path=self._path,
            ) from exc
        for fallback in helpers.fallbacks:
            logger.info(
                "template %s: %s fell back for %r (%s)",
                self._name,
                fallback.helper,
                fallback.value,
                fallback.reason,
            )
        return RenderResult(text=text, fallbacks=tuple(helpers.fallbacks))


def compile_template(plugin_dir: Path, template_file: str) -> TemplateRenderer:
    """Read and compile ``template_file`` relative to ``plugin_dir``."""
    if not template_file.strip():
        raise TemplateCompileError(
            ErrorCode.TEMPLATE_UNREADABLE,
            "failed to read template file: no template file declared",
            path=plugin_dir,
        )
    path = plugin_dir / template_file
    try:
        size = path.stat().st_size
        if size > MAX_TEMPLATE_BYTES:
            raise TemplateCompileError(
                ErrorCode.FILE_TOO_LARGE,
                f"{path.name}: file exceeds max size ({MAX_TEMPLATE_BYTES} bytes)",
                path=path,
            )
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateCompileError(
            ErrorCode.TEMPLATE_UNREADABLE,
            f"failed to read template file {path}: {exc}",
            path=path,
            details={"cause": classify_os_error(exc).name},
        ) from exc
    return compile_source(source, name=template_file, path=path)


def compile_source(source: str, *, name: str = "<string>", path: Path | None = None) -> TemplateRenderer:
    translated = translate_actions(source, name=name, path=path)
    try:
        template = _env.from_string(translated)
    except TemplateSyntaxError as exc:
        raise TemplateCompileError(
            ErrorCode.TEMPLATE_SYNTAX,
            f"failed to parse template {name}:{exc.lineno}: {exc.message}",
            path=path,
            details={"line": exc.lineno},
        ) from exc
    return TemplateRenderer(template, name=name, path=path)


def build_field_data(fields: Iterable[FieldSpec], values: Mapping[str, str]) -> dict[str, str]:
    """Merge ``values`` with each field's default for missing or empty keys."""
    data: dict[str, str] = {}
    for spec_field in fields:
        value = values.get(spec_field.key, "")
        data[spec_field.key] = value if value else spec_field.default
    return data


def translate_actions(source: str, *, name: str = "<string>", path: Path | None = None) -> str:
    """Rewrite action-syntax ``{{ }}`` blocks into Jinja2 expressions."""

    def replace(match: re.Match[str]) -> str:
        left, body, right = match.groups()
        line = source.count("\n", 0, match.start()) + 1
        stripped = body.strip()
        if stripped.startswith("/*") and stripped.endswith("*/"):
            return _wrap(left, '""', right)
        tokens = _tokenize(stripped)
        if tokens is None or not _is_action(tokens):
            return match.group(0)
        try:
            expression = _translate_pipeline(tokens)
        except ValueError as exc:
            raise TemplateCompileError(
                ErrorCode.TEMPLATE_SYNTAX,
                f"failed to parse template {name}:{line}: {exc}",
                path=path,
                details={"line": line},
            ) from None
        return _wrap(left, expression, right)

    pieces: list[str] = []
    last = 0
    for match in _ACTION_RE.finditer(source):
        pieces.append(_escape_literal(source[last : match.start()]))
        pieces.append(replace(match))
        last = match.end()
    pieces.append(_escape_literal(source[last:]))
    return "".join(pieces)


def _escape_literal(text: str) -> str:
    def escape(match: re.Match[str]) -> str:
        if _CONTROL_BLOCK_RE.match(text, match.start()):
            return match.group(0)
        return _wrap("", json.dumps(match.group(0)), "")

    return _LITERAL_OPEN_RE.sub(escape, text)


class _Token(NamedTuple):
    kind: str
    text: str


def _tokenize(body: str) -> list[_Token] | None:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(body):
        match = _TOKEN_RE.match(body, pos)
        if match is None:
            return None
        kind = match.lastgroup or ""
        # x.y is Jinja attribute access, not a field reference
        glued = match.start(kind) == pos
        if kind == "field" and glued and tokens and tokens[-1].kind != "pipe":
            return None
        tokens.append(_Token(kind, match.group(kind)))
        pos = match.end()
    return tokens


def _is_action(tokens: list[_Token]) -> bool:
    if not tokens:
        return False
    if any(token.kind == "field" or token.text.startswith("`") for token in tokens):
        return True
    return tokens[0].kind == "ident" and tokens[0].text in HELPER_NAMES


def _translate_pipeline(tokens: list[_Token]) -> str:
    commands: list[list[_Token]] = [[]]
    for token in tokens:
        if token.kind == "pipe":
            commands.append([])
        else:
            commands[-1].append(token)
    if any(not command for command in commands):
        raise ValueError("missing command in pipeline")

    expression = _translate_command(commands[0], piped=None)
    for command in commands[1:]:
        expression = _translate_command(command, piped=expression)
    return expression


def _translate_command(command: list[_Token], *, piped: str | None) -> str:
    head, args = command[0], command[1:]
    if head.kind == "ident" and head.text in HELPER_NAMES:
        parts = [_translate_argument(arg) for arg in args]
        if piped is not None:
            parts.append(piped)
        return f"{head.text}({', '.join(parts)})"
    if head.kind == "ident" and head.text not in ("true", "false"):
        raise ValueError(f'function "{head.text}" not defined')
    if args or piped is not None:
        raise ValueError(f"can't give argument to non-function {head.text}")
    return _translate_argument(head)


def _translate_argument(token: _Token) -> str:
    if token.kind == "field":
        return f"{_FIELDS_VAR}[{json.dumps(token.text[1:])}]"
    if token.kind == "string":
        if token.text.startswith("`"):
            return json.dumps(token.text[1:-1], ensure_ascii=False)
        return token.text
    if token.kind == "number":
        return token.text
    if token.text in ("true", "false"):
        return token.text
    raise ValueError(f"unexpected {token.text} in operand")


def _wrap(left: str, expression: str, right: str) -> str:
    return f"{{{{{left} {expression} {right}}}}}"


class _Helpers:
    """Helper functions bound to one render, collecting their fallbacks."""

    def __init__(self) -> None:
        self.fallbacks: list[HelperFallback] = []

    def functions(self) -> dict[str, Callable[..., str]]:
        return {
            "alpha": self.alpha,
            "hexToRGBA": self.hex_to_rgba,
            "brighten": self.brighten,
            "mix": self.mix,
            "colorFormat": self.color_format,
            "trimPrefix": _trim_prefix,
            "trimSuffix": _trim_suffix,
        }

    def alpha(self, value: Any, opacity: Any) -> str:
        text = str(value)
        amount = _as_number(opacity, "alpha")
        try:
            return color_engine.to_rgba_string(color_engine.normalize(text), amount)
        except ColorParseError as exc:
            return self._fallback("alpha", text, exc, text)

    def hex_to_rgba(self, value: Any, alpha: Any) -> str:
        text = str(value)
        amount = _as_number(alpha, "hexToRGBA")
        try:
            return color_engine.to_rgba_string(color_engine.normalize(text), amount)
        except ColorParseError as exc:
            return self._fallback("hexToRGBA", text, exc, HEX_TO_RGBA_FALLBACK)

    def brighten(self, value: Any, amount: Any) -> str:
        text = str(value)
        factor = _as_number(amount, "brighten")
        try:
            return color_engine.brighten(color_engine.normalize(text), factor).hex
        except ColorParseError as exc:
            return self._fallback("brighten", text, exc, text)

    def mix(self, first: Any, second: Any, ratio: Any) -> str:
        first_text, second_text = str(first), str(second)
        factor = _as_number(ratio, "mix")
        try:
            blended = color_engine.mix(
                color_engine.normalize(first_text),
                color_engine.normalize(second_text),
                factor,
            )
        except ColorParseError as exc:
            return self._fallback("mix", f"{first_text}, {second_text}", exc, first_text)
        return blended.hex

    def color_format(self, value: Any, format_id: Any) -> str:
        text = str(value)
        try:
            return color_engine.format_color(color_engine.normalize(text), str(format_id))
        except ColorParseError as exc:
            return self._fallback("colorFormat", text, exc, text)

    def _fallback(self, helper: str, value: str, exc: ColorParseError, result: str) -> str:
        self.fallbacks.append(HelperFallback(helper=helper, value=value, reason=exc.message))
        return result


def _trim_prefix(value: Any, prefix: Any) -> str:
    return str(value).removeprefix(str(prefix))


def _trim_suffix(value: Any, suffix: Any) -> str:
    return str(value).removesuffix(str(suffix))


def _as_number(value: Any, helper: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{helper}: expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    number = parse_number(str(value))
    if number is None:
        raise ValueError(f"{helper}: expected a number, got {str(value)!r}")
    return number
