"""Plugin framework models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar


class FieldKind(str, Enum):
    """Tag naming the kind of value a spec field holds."""

    COLOR = "color"
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Common shape of every editable field declared by a plugin spec."""

    kind: ClassVar[FieldKind]

    key: str
    label: str = ""
    default: str = ""
    help: str = ""


@dataclass(frozen=True, slots=True)
class ColorField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.COLOR


@dataclass(frozen=True, slots=True)
class TextField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.TEXT


@dataclass(frozen=True, slots=True)
class NumberField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.NUMBER

    minimum: float | None = None
    maximum: float | None = None


@dataclass(frozen=True, slots=True)
class SelectField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.SELECT

    options: tuple[str, ...] = ()


FIELD_TYPES: dict[FieldKind, type[FieldSpec]] = {
    FieldKind.COLOR: ColorField,
    FieldKind.TEXT: TextField,
    FieldKind.NUMBER: NumberField,
    FieldKind.SELECT: SelectField,
}


@dataclass(frozen=True, slots=True)
class PluginSpec:
    """Ordered field definitions plus the template they feed."""

    id: str
    title: str
    template_file: str
    fields: tuple[FieldSpec, ...] = ()

    def field(self, key: str) -> FieldSpec | None:
        for spec_field in self.fields:
            if spec_field.key == key:
                return spec_field
        return None


@dataclass(frozen=True, slots=True)
class Detection:
    """Hints used to guess whether the target application is installed."""

    config_exists: tuple[str, ...] = ()
    binary_exists: str = ""
    process_running: str = ""


@dataclass(frozen=True, slots=True)
class FileTarget:
    """A configuration file the plugin writes into."""

    path: str
    format: str = ""
    parser: str = ""
    backup: bool = False
    optional: bool = False


@dataclass(frozen=True, slots=True)
class ColorTarget:
    """Where one theme color lands inside the target's config files."""

    id: str
    label: str = ""
    default: str = ""
    css_variables: tuple[str, ...] = ()
    toml_path: str = ""
    yaml_path: str = ""
    json_path: str = ""
    ini_keys: tuple[str, ...] = ()
    hypr_variables: tuple[str, ...] = ()
    template_variables: tuple[str, ...] = ()

    @property
    def has_target_hint(self) -> bool:
        return any(
            (
                self.css_variables,
                self.toml_path.strip(),
                self.yaml_path.strip(),
                self.json_path.strip(),
                self.ini_keys,
                self.hypr_variables,
                self.template_variables,
            )
        )


@dataclass(frozen=True, slots=True)
class RestartConfig:
    """How the target application picks up a new config."""

    method: str = "none"
    signal: str = ""
    process: str = ""
    command: str = ""
    fallback: str = ""


@dataclass(frozen=True, slots=True)
class PluginManifest:
    """Plugin identity, paths and reload behavior parsed from the manifest."""

    id: str
    title: str
    spec: str
    user_paths: tuple[str, ...] = ()
    system_paths: tuple[str, ...] = ()
    reload: tuple[str, ...] = ()
    detection: Detection | None = None
    files: tuple[FileTarget, ...] = ()
    colors: tuple[ColorTarget, ...] = ()
    restart: RestartConfig | None = None
    source_dir: Path | None = None

    @property
    def is_rich(self) -> bool:
        return bool(self.detection or self.files or self.colors or self.restart)


@dataclass(frozen=True, slots=True)
class Plugin:
    """A fully loaded plugin: manifest and spec from one directory."""

    manifest: PluginManifest
    spec: PluginSpec
    is_builtin: bool = False

    @property
    def id(self) -> str:
        return self.manifest.id.lower()

    @property
    def title(self) -> str:
        return self.manifest.title

    @property
    def source_dir(self) -> Path | None:
        return self.manifest.source_dir


@dataclass(frozen=True, slots=True)
class PluginSummary:
    """Display-ready plugin metadata."""

    plugin_id: str
    title: str
    is_builtin: bool
    detected: bool
    source_dir: Path | None = None


@dataclass(frozen=True, slots=True)
class ValidationError:
    """One structural defect or field constraint violation."""

    field: str
    message: str
    code: str
