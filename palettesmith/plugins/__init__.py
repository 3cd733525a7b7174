"""Plugin framework exports."""

from palettesmith.plugins.loader import PluginCatalog, discover, load_plugin
from palettesmith.plugins.models import (
    ColorField,
    FieldKind,
    FieldSpec,
    NumberField,
    Plugin,
    PluginManifest,
    PluginSpec,
    PluginSummary,
    SelectField,
    TextField,
    ValidationError,
)
from palettesmith.plugins.registry import PluginRegistry
from palettesmith.plugins.service import PaletteService
from palettesmith.plugins.template import RenderResult, TemplateRenderer, compile_template

__all__ = [
    "ColorField",
    "FieldKind",
    "FieldSpec",
    "NumberField",
    "PaletteService",
    "Plugin",
    "PluginCatalog",
    "PluginManifest",
    "PluginRegistry",
    "PluginSpec",
    "PluginSummary",
    "RenderResult",
    "SelectField",
    "TemplateRenderer",
    "TextField",
    "ValidationError",
    "compile_template",
    "discover",
    "load_plugin",
]
