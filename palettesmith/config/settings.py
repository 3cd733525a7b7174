"""Application settings via QSettings."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QSettings

from palettesmith.errors import ConfigError, ErrorCode
from palettesmith.runtime_paths import config_dir, expand_path

PRESETS = ("generic", "omarchy")
DEFAULT_PRESET = "generic"


class AppSettings:
    """Wraps QSettings (INI format) for persistent app configuration."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else config_dir() / "settings.ini"
        self._first_run = not self._path.exists()
        self._qs = QSettings(str(self._path), QSettings.Format.IniFormat)

    @property
    def path(self) -> Path:
        return self._path

    # -- theme output --

    @property
    def target_theme_dir(self) -> str:
        return self._path_value("theme/target_dir", self._preset_paths(self.preset)["target_theme_dir"])

    @target_theme_dir.setter
    def target_theme_dir(self, value: str) -> None:
        self._set_path_value("theme/target_dir", value)

    @property
    def current_theme_link(self) -> str:
        return self._path_value("theme/current_link", self._preset_paths(self.preset)["current_theme_link"])

    @current_theme_link.setter
    def current_theme_link(self, value: str) -> None:
        self._set_path_value("theme/current_link", value)

    @property
    def staging_dir(self) -> str:
        return self._path_value("theme/staging_dir", self._preset_paths(self.preset)["staging_dir"])

    @staging_dir.setter
    def staging_dir(self, value: str) -> None:
        self._set_path_value("theme/staging_dir", value)

    # -- preset --

    @property
    def preset(self) -> str:
        raw = self._qs.value("setup/preset", DEFAULT_PRESET, type=str)
        value = (raw or "").strip().lower()
        if value in PRESETS:
            return value
        return DEFAULT_PRESET

    def apply_preset(self, name: str) -> None:
        """Switch every output directory to the named preset's layout.

        Directories are created before anything is persisted, so a failed
        switch leaves the previous configuration in place.
        """
        preset = (name or "").strip().lower()
        if preset not in PRESETS:
            if preset == "custom":
                message = f"preset '{preset}' is not yet supported"
            else:
                message = f"unknown preset '{preset}': supported presets are 'generic', 'omarchy'"
            raise ConfigError(ErrorCode.PRESET_UNKNOWN, message, details={"preset": preset})

        paths = self._preset_paths(preset)
        for directory in (
            Path(paths["target_theme_dir"]),
            Path(paths["current_theme_link"]).parent,
            Path(paths["staging_dir"]),
        ):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConfigError(
                    ErrorCode.CONFIG_PERMISSION_DENIED,
                    f"failed to set preset '{preset}': cannot create directory {directory}: {exc}",
                    path=directory,
                ) from exc

        self._qs.setValue("setup/preset", preset)
        self._qs.setValue("theme/target_dir", paths["target_theme_dir"])
        self._qs.setValue("theme/current_link", paths["current_theme_link"])
        self._qs.setValue("theme/staging_dir", paths["staging_dir"])

    # -- first run --

    @property
    def is_first_run(self) -> bool:
        return self._first_run

    def mark_setup_complete(self) -> None:
        self._qs.setValue("setup/complete", True)
        self.sync()
        self._first_run = False

    # -- plugins --

    @property
    def plugins_dir(self) -> Path:
        raw = self._qs.value("plugins/dir", "", type=str)
        value = (raw or "").strip()
        if value:
            return Path(expand_path(value))
        return self.config_dir / "plugins"

    @plugins_dir.setter
    def plugins_dir(self, value: str | Path) -> None:
        self._qs.setValue("plugins/dir", str(value).strip())

    # -- helpers --

    @property
    def config_dir(self) -> Path:
        return self._path.parent

    @property
    def theme_config_path(self) -> Path:
        return self.config_dir / "theme.json"

    @property
    def log_dir(self) -> Path:
        path = self.config_dir / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path

    def sync(self) -> None:
        self._qs.sync()
        if self._qs.status() != QSettings.Status.NoError:
            raise ConfigError(
                ErrorCode.CONFIG_PERMISSION_DENIED,
                f"Unable to write {self._path.name}",
                path=self._path,
            )

    def _path_value(self, key: str, default: str) -> str:
        raw = self._qs.value(key, default, type=str)
        value = (raw or "").strip()
        return expand_path(value) if value else default

    def _set_path_value(self, key: str, value: str) -> None:
        cleaned = (value or "").strip()
        if cleaned:
            self._qs.setValue(key, cleaned)
        else:
            self._qs.remove(key)

    def _preset_paths(self, preset: str) -> dict[str, str]:
        own_dir = self.config_dir
        if preset == "omarchy":
            theme_root = own_dir.parent / "omarchy"
        else:
            theme_root = own_dir
        return {
            "target_theme_dir": str(theme_root / "themes"),
            "current_theme_link": str(theme_root / "current" / "theme"),
            "staging_dir": str(own_dir / "staging"),
        }
