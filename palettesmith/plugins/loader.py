"""Plugin discovery, manifest/spec parsing and the plugin catalog."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from palettesmith.errors import ErrorCode, PluginLoadError, classify_os_error
from palettesmith.plugins.constants import (
    MANIFEST_FILENAMES,
    MAX_MANIFEST_BYTES,
    MAX_PLUGIN_DIR_CANDIDATES,
    MAX_SPEC_BYTES,
    RESTART_METHODS,
    SYSTEM_ERROR_KEY,
)
from palettesmith.plugins.models import (
    FIELD_TYPES,
    ColorTarget,
    Detection,
    FieldKind,
    FieldSpec,
    FileTarget,
    NumberField,
    Plugin,
    PluginManifest,
    PluginSpec,
    RestartConfig,
    SelectField,
)
from palettesmith.plugins.validation import validate_manifest
from palettesmith.runtime_paths import expand_path

logger = logging.getLogger(__name__)


class PluginCatalog:
    """Loaded plugins indexed by lower-cased ID, plus per-candidate load errors."""

    def __init__(self) -> None:
        self._plugins: list[Plugin] = []
        self._by_id: dict[str, Plugin] = {}
        self._errors: dict[str, list[PluginLoadError]] = {}

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, plugin_id: object) -> bool:
        return isinstance(plugin_id, str) and plugin_id.lower() in self._by_id

    def add(self, plugin: Plugin) -> bool:
        """Add a plugin; returns False when its ID is already taken."""
        if plugin.id in self._by_id:
            return False
        self._by_id[plugin.id] = plugin
        self._plugins.append(plugin)
        return True

    def record_error(self, key: str, error: PluginLoadError) -> None:
        self._errors.setdefault(key, []).append(error)

    def get(self, plugin_id: str) -> Plugin | None:
        return self._by_id.get(plugin_id.lower())

    def list_plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def load_errors(self) -> dict[str, list[PluginLoadError]]:
        return {key: list(errors) for key, errors in self._errors.items()}

    def has_errors(self, key: str) -> bool:
        return key in self._errors


def discover(root: Path, *, is_builtin: bool = False) -> PluginCatalog:
    """Load every plugin directory directly under ``root``.

    Each subdirectory is a candidate keyed by its directory name. A candidate
    that fails to load gets a load error and discovery moves on; a candidate
    whose ID (case-insensitive) was already loaded is rejected as a duplicate.
    """
    catalog = PluginCatalog()
    if not root.exists():
        return catalog
    try:
        candidates = sorted(
            path
            for path in root.iterdir()
            if path.is_dir() and not path.name.startswith(".") and path.name != "__pycache__"
        )
    except OSError as exc:
        catalog.record_error(
            SYSTEM_ERROR_KEY,
            PluginLoadError(
                ErrorCode.PLUGIN_DIR_UNREADABLE,
                f"Failed to list plugins in {root}: {exc}",
                path=root,
            ),
        )
        return catalog

    if len(candidates) > MAX_PLUGIN_DIR_CANDIDATES:
        catalog.record_error(
            SYSTEM_ERROR_KEY,
            PluginLoadError(
                ErrorCode.PLUGIN_DIR_UNREADABLE,
                f"Plugin directory limit exceeded in {root}; "
                f"only first {MAX_PLUGIN_DIR_CANDIDATES} folders were scanned.",
                path=root,
            ),
        )
        candidates = candidates[:MAX_PLUGIN_DIR_CANDIDATES]

    for plugin_dir in candidates:
        candidate_id = plugin_dir.name
        try:
            plugin = load_plugin(plugin_dir, is_builtin=is_builtin)
        except PluginLoadError as exc:
            logger.warning("plugin %s failed to load: %s", candidate_id, exc)
            catalog.record_error(candidate_id, exc)
            continue

        if not catalog.add(plugin):
            logger.warning("duplicate plugin ID %s in %s; skipping", plugin.id, plugin_dir)
            catalog.record_error(
                candidate_id,
                PluginLoadError(
                    ErrorCode.DUPLICATE_PLUGIN,
                    f"duplicate plugin ID: {plugin.id}",
                    path=plugin_dir,
                ),
            )
            continue
        logger.debug("loaded plugin %s from %s", plugin.id, plugin_dir)
    return catalog


def load_plugin(plugin_dir: Path, *, is_builtin: bool = False) -> Plugin:
    """Load and check one plugin directory; raises ``PluginLoadError``."""
    manifest_path = _find_manifest(plugin_dir)
    manifest_data = _load_document(
        manifest_path,
        max_bytes=MAX_MANIFEST_BYTES,
        invalid_code=ErrorCode.MANIFEST_INVALID,
    )
    manifest = _parse_manifest(manifest_data, plugin_dir, manifest_path)

    violations = validate_manifest(manifest)
    if violations:
        joined = "; ".join(violation.message for violation in violations)
        raise PluginLoadError(
            ErrorCode.MANIFEST_INVALID,
            f"{manifest_path.name}: {joined}",
            path=manifest_path,
            details={"violations": [violation.code for violation in violations]},
        )

    spec_path = plugin_dir / Path(manifest.spec)
    if not spec_path.is_file():
        raise PluginLoadError(
            ErrorCode.SPEC_MISSING,
            f"failed to read spec file: {manifest.spec} not found",
            path=spec_path,
        )
    spec_data = _load_document(spec_path, max_bytes=MAX_SPEC_BYTES, invalid_code=ErrorCode.SPEC_INVALID)
    spec = _parse_spec(spec_data, manifest, spec_path)
    return Plugin(manifest=manifest, spec=spec, is_builtin=is_builtin)


def _find_manifest(plugin_dir: Path) -> Path:
    for name in MANIFEST_FILENAMES:
        candidate = plugin_dir / name
        if candidate.exists():
            return candidate
    raise PluginLoadError(
        ErrorCode.MANIFEST_MISSING,
        f"{MANIFEST_FILENAMES[0]} not found in {plugin_dir}",
        path=plugin_dir,
    )


def _load_document(path: Path, *, max_bytes: int, invalid_code: ErrorCode) -> Mapping[str, Any]:
    content = _read_text_limited(path, max_bytes=max_bytes)
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise PluginLoadError(invalid_code, f"Invalid document {path.name}: {exc}", path=path) from exc
    if not isinstance(data, dict):
        raise PluginLoadError(invalid_code, f"Expected a mapping in {path.name}", path=path)
    return data


def _parse_manifest(data: Mapping[str, Any], plugin_dir: Path, source: Path) -> PluginManifest:
    code = ErrorCode.MANIFEST_INVALID
    return PluginManifest(
        id=_optional_str(data, "id", source, code).lower(),
        title=_optional_str(data, "title", source, code),
        spec=_optional_str(data, "spec", source, code),
        user_paths=_str_tuple(data, "user_paths", source, code),
        system_paths=_str_tuple(data, "system_paths", source, code),
        reload=_str_tuple(data, "reload", source, code),
        detection=_parse_detection(data.get("detection"), source),
        files=tuple(
            _parse_file_target(entry, source)
            for entry in _mapping_list(data, "files", source, code)
        ),
        colors=tuple(
            _parse_color_target(entry, source)
            for entry in _mapping_list(data, "colors", source, code)
        ),
        restart=_parse_restart(data.get("restart"), source),
        source_dir=plugin_dir,
    )


def _parse_detection(raw: object, source: Path) -> Detection | None:
    if raw is None:
        return None
    data = _as_mapping(raw, "detection", source, ErrorCode.MANIFEST_INVALID)
    code = ErrorCode.MANIFEST_INVALID
    return Detection(
        config_exists=tuple(expand_path(p) for p in _str_tuple(data, "config_exists", source, code)),
        binary_exists=_optional_str(data, "binary_exists", source, code),
        process_running=_optional_str(data, "process_running", source, code),
    )


def _parse_file_target(data: Mapping[str, Any], source: Path) -> FileTarget:
    code = ErrorCode.MANIFEST_INVALID
    return FileTarget(
        path=expand_path(_optional_str(data, "path", source, code)),
        format=_optional_str(data, "format", source, code),
        parser=_optional_str(data, "parser", source, code),
        backup=_optional_bool(data, "backup", source, code),
        optional=_optional_bool(data, "optional", source, code),
    )


def _parse_color_target(data: Mapping[str, Any], source: Path) -> ColorTarget:
    code = ErrorCode.MANIFEST_INVALID
    return ColorTarget(
        id=_optional_str(data, "id", source, code),
        label=_optional_str(data, "label", source, code),
        default=_optional_str(data, "default", source, code),
        css_variables=_str_tuple(data, "css_variables", source, code),
        toml_path=_optional_str(data, "toml_path", source, code),
        yaml_path=_optional_str(data, "yaml_path", source, code),
        json_path=_optional_str(data, "json_path", source, code),
        ini_keys=_str_tuple(data, "ini_keys", source, code),
        hypr_variables=_str_tuple(data, "hypr_variables", source, code),
        template_variables=_str_tuple(data, "template_variables", source, code),
    )


def _parse_restart(raw: object, source: Path) -> RestartConfig | None:
    if raw is None:
        return None
    code = ErrorCode.MANIFEST_INVALID
    data = _as_mapping(raw, "restart", source, code)
    method = _optional_str(data, "method", source, code).lower() or "none"
    if method not in RESTART_METHODS:
        raise PluginLoadError(
            code,
            f"{source.name}: restart.method must be one of {', '.join(RESTART_METHODS)}, got {method!r}",
            path=source,
        )
    return RestartConfig(
        method=method,
        signal=_optional_str(data, "signal", source, code),
        process=_optional_str(data, "process", source, code),
        command=_optional_str(data, "command", source, code),
        fallback=_optional_str(data, "fallback", source, code),
    )


def _parse_spec(data: Mapping[str, Any], manifest: PluginManifest, source: Path) -> PluginSpec:
    code = ErrorCode.SPEC_INVALID
    fields: list[FieldSpec] = []
    seen: set[str] = set()
    for entry in _mapping_list(data, "fields", source, code):
        spec_field = _parse_field(entry, source)
        if spec_field.key in seen:
            raise PluginLoadError(code, f"{source.name}: duplicate field key {spec_field.key!r}", path=source)
        seen.add(spec_field.key)
        fields.append(spec_field)

    return PluginSpec(
        id=_optional_str(data, "id", source, code).lower() or manifest.id,
        title=_optional_str(data, "title", source, code) or manifest.title,
        template_file=_optional_str(data, "template_file", source, code),
        fields=tuple(fields),
    )


def _parse_field(data: Mapping[str, Any], source: Path) -> FieldSpec:
    code = ErrorCode.SPEC_INVALID
    key = _optional_str(data, "key", source, code)
    if not key:
        raise PluginLoadError(code, f"{source.name}: field key is required", path=source)
    type_name = _optional_str(data, "type", source, code).lower()
    if not type_name:
        raise PluginLoadError(code, f"{source.name}: field {key}: type is required", path=source)
    try:
        kind = FieldKind(type_name)
    except ValueError:
        raise PluginLoadError(
            code,
            f"{source.name}: field {key}: invalid type {type_name!r}",
            path=source,
        ) from None

    common = {
        "key": key,
        "label": _optional_str(data, "label", source, code) or key,
        "default": _optional_str(data, "default", source, code),
        "help": _optional_str(data, "help", source, code),
    }
    field_type = FIELD_TYPES[kind]
    if field_type is NumberField:
        return NumberField(
            **common,
            minimum=_optional_number(data, "min", source),
            maximum=_optional_number(data, "max", source),
        )
    if field_type is SelectField:
        return SelectField(**common, options=_str_tuple(data, "enum", source, code))
    return field_type(**common)


def _optional_str(data: Mapping[str, Any], key: str, source: Path, code: ErrorCode) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        raise PluginLoadError(code, f"{source.name}: field {key!r} must be a string", path=source)
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        raise PluginLoadError(code, f"{source.name}: field {key!r} must be a string", path=source)
    return value.strip()


def _optional_bool(data: Mapping[str, Any], key: str, source: Path, code: ErrorCode) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise PluginLoadError(code, f"{source.name}: field {key!r} must be true or false", path=source)
    return value


def _optional_number(data: Mapping[str, Any], key: str, source: Path) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PluginLoadError(
            ErrorCode.SPEC_INVALID,
            f"{source.name}: field {key!r} must be a number",
            path=source,
        )
    return float(value)


def _str_tuple(data: Mapping[str, Any], key: str, source: Path, code: ErrorCode) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise PluginLoadError(code, f"{source.name}: field {key!r} must be a list of strings", path=source)
    items: list[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise PluginLoadError(code, f"{source.name}: field {key!r} must be a list of strings", path=source)
        items.append(str(item).strip())
    return tuple(items)


def _mapping_list(
    data: Mapping[str, Any],
    key: str,
    source: Path,
    code: ErrorCode,
) -> list[Mapping[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PluginLoadError(code, f"{source.name}: field {key!r} must be a list", path=source)
    return [_as_mapping(item, f"{key}[{index}]", source, code) for index, item in enumerate(value)]


def _as_mapping(value: object, context: str, source: Path, code: ErrorCode) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise PluginLoadError(code, f"{source.name}: {context} must be a mapping", path=source)
    return value


def _read_text_limited(path: Path, *, max_bytes: int) -> str:
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise PluginLoadError(classify_os_error(exc), f"Unable to stat {path.name}: {exc}", path=path) from exc
    if size > max_bytes:
        raise PluginLoadError(
            ErrorCode.FILE_TOO_LARGE,
            f"{path.name}: file exceeds max size ({max_bytes} bytes)",
            path=path,
        )
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PluginLoadError(classify_os_error(exc), f"Unable to read {path.name}: {exc}", path=path) from exc
