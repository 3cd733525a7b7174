"""Tests for the layered plugin registry and detection."""

from __future__ import annotations

import json
from pathlib import Path

from palettesmith.plugins import detection
from palettesmith.plugins.models import ColorField, Detection, Plugin, PluginManifest, PluginSpec
from palettesmith.plugins.registry import PluginRegistry


def _write_json(path: Path, data: dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _write_plugin(
    plugin_dir: Path,
    plugin_id: str,
    *,
    title: str | None = None,
    default: str = "#1e1e2e",
    user_paths: list[str] | None = None,
) -> None:
    _write_json(
        plugin_dir / "plugin.json",
        {
            "id": plugin_id,
            "title": title or plugin_id.title(),
            "spec": "spec.json",
            "user_paths": user_paths or [],
        },
    )
    _write_json(
        plugin_dir / "spec.json",
        {
            "template_file": "out.tmpl",
            "fields": [{"key": "bg", "type": "color", "default": default}],
        },
    )
    (plugin_dir / "out.tmpl").write_text("{{.bg}}", encoding="utf-8")


def _compiled_plugin(plugin_id: str, default: str = "#000000") -> Plugin:
    return Plugin(
        manifest=PluginManifest(id=plugin_id, title=plugin_id.title(), spec="spec.json"),
        spec=PluginSpec(plugin_id, plugin_id.title(), "out.tmpl", (ColorField("bg", default=default),)),
    )


def test_registry_user_plugin_overrides_builtin(tmp_path: Path) -> None:
    builtin_root = tmp_path / "builtin"
    user_root = tmp_path / "user"
    _write_plugin(builtin_root / "kitty", "kitty", default="#00ff00")
    _write_plugin(user_root / "kitty", "kitty", default="#ff00ff")

    registry = PluginRegistry(builtin_root=builtin_root, user_root=user_root)
    registry.reload()

    plugin = registry.get("KITTY")
    assert plugin is not None
    assert plugin.spec.fields[0].default == "#ff00ff"
    assert plugin.is_builtin is False
    assert len(registry.list_plugins()) == 1


def test_registry_keeps_builtin_when_user_root_missing(tmp_path: Path) -> None:
    _write_plugin(tmp_path / "builtin" / "kitty", "kitty")

    registry = PluginRegistry(builtin_root=tmp_path / "builtin", user_root=tmp_path / "nope")
    registry.reload()

    plugin = registry.get("kitty")
    assert plugin is not None and plugin.is_builtin is True
    assert registry.load_errors() == {}


def test_registry_collects_errors_from_both_layers(tmp_path: Path) -> None:
    (tmp_path / "builtin" / "broken-a").mkdir(parents=True)
    (tmp_path / "user" / "broken-b").mkdir(parents=True)
    _write_plugin(tmp_path / "user" / "good", "good")

    registry = PluginRegistry(builtin_root=tmp_path / "builtin", user_root=tmp_path / "user")
    registry.reload()

    assert sorted(registry.load_errors()) == ["broken-a", "broken-b"]
    assert registry.get("good") is not None


def test_register_adds_to_builtin_layer(tmp_path: Path) -> None:
    registry = PluginRegistry(builtin_root=None, user_root=tmp_path / "user")
    registry.register(_compiled_plugin("compiled"))

    plugin = registry.get("compiled")
    assert plugin is not None and plugin.is_builtin is True

    registry.reload()
    assert registry.get("compiled") is not None


def test_external_plugin_overrides_registered_plugin(tmp_path: Path) -> None:
    _write_plugin(tmp_path / "user" / "compiled", "compiled", default="#ffffff")
    registry = PluginRegistry(builtin_root=None, user_root=tmp_path / "user")
    registry.reload()

    registry.register(_compiled_plugin("compiled"))
    assert registry.get("compiled").spec.fields[0].default == "#ffffff"

    registry.reload()
    assert registry.get("compiled").spec.fields[0].default == "#ffffff"


def test_set_user_root_takes_effect_on_reload(tmp_path: Path) -> None:
    _write_plugin(tmp_path / "other" / "mako", "mako")
    registry = PluginRegistry(builtin_root=None, user_root=tmp_path / "user")
    registry.reload()
    assert registry.get("mako") is None

    registry.set_user_root(tmp_path / "other")
    registry.reload()
    assert registry.get("mako") is not None


def test_list_summaries_sorted_by_title_with_detection(tmp_path: Path) -> None:
    config_file = tmp_path / "waybar.css"
    config_file.write_text("", encoding="utf-8")
    _write_plugin(tmp_path / "user" / "w", "waybar", title="Waybar", user_paths=[str(config_file)])
    _write_plugin(tmp_path / "user" / "a", "alacritty", title="Alacritty", user_paths=[str(tmp_path / "nope")])

    registry = PluginRegistry(builtin_root=None, user_root=tmp_path / "user")
    registry.reload()

    rows = registry.list_summaries()
    assert [(row.plugin_id, row.detected) for row in rows] == [("alacritty", False), ("waybar", True)]
    assert registry.detect_all() == {"alacritty": False, "waybar": True}


def test_detect_uses_binary_on_path(monkeypatch) -> None:
    plugin = _compiled_plugin("demo")
    manifest = PluginManifest(
        id="demo",
        title="Demo",
        spec="spec.json",
        detection=Detection(binary_exists="demo-bin"),
    )
    plugin = Plugin(manifest=manifest, spec=plugin.spec)

    monkeypatch.setattr(detection.shutil, "which", lambda name: None)
    assert detection.detect(plugin) is False

    monkeypatch.setattr(detection.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert detection.detect(plugin) is True


def test_config_candidates_expand_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("PALETTE_TEST_DIR", str(tmp_path))
    manifest = PluginManifest(
        id="demo",
        title="Demo",
        spec="spec.json",
        user_paths=("$PALETTE_TEST_DIR/demo.conf",),
        system_paths=("",),
    )
    plugin = Plugin(manifest=manifest, spec=_compiled_plugin("demo").spec)
    assert detection.config_candidates(plugin) == [tmp_path / "demo.conf"]
