"""Runtime path helpers for source and frozen executable modes."""

from __future__ import annotations

import os
from pathlib import Path
import sys

APP_DIR_NAME = "palettesmith"


def is_frozen() -> bool:
    """Return True when running from a PyInstaller bundle."""
    return bool(getattr(sys, "frozen", False))


def bundle_root() -> Path:
    """Return the runtime extraction root for frozen mode, else package parent."""
    if is_frozen():
        meipass = getattr(sys, "_MEIPASS", None)
        if meipass:
            return Path(meipass)
    return Path(__file__).resolve().parent.parent


def package_root() -> Path:
    """Return the root path that contains the `palettesmith` package resources."""
    if is_frozen():
        root = bundle_root()
        candidate = root / APP_DIR_NAME
        if candidate.exists():
            return candidate
        return root
    return Path(__file__).resolve().parent


def builtin_plugins_root() -> Path:
    """Resolve the built-in plugin directory across source/frozen layouts."""
    return package_root() / "plugins" / "builtin"


def config_dir() -> Path:
    """Return ~/.config/palettesmith, honouring XDG_CONFIG_HOME."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def external_plugins_dir() -> Path:
    """Directory scanned for user-supplied plugins."""
    return config_dir() / "plugins"


def expand_path(raw: str) -> str:
    """Expand $VAR / ${VAR} references and a leading ~ in a manifest path."""
    if not raw:
        return raw
    return os.path.expanduser(os.path.expandvars(raw))
