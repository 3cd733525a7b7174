"""Best-effort detection of whether a plugin's target application is installed."""

from __future__ import annotations

import shutil
from pathlib import Path

from palettesmith.plugins.models import Plugin
from palettesmith.runtime_paths import expand_path


def config_candidates(plugin: Plugin) -> list[Path]:
    """Config paths whose existence implies the application is installed."""
    manifest = plugin.manifest
    raw_paths: list[str] = []
    if manifest.detection is not None:
        raw_paths.extend(manifest.detection.config_exists)
    raw_paths.extend(manifest.user_paths)
    raw_paths.extend(manifest.system_paths)
    return [Path(expand_path(raw)) for raw in raw_paths if raw.strip()]


def detect(plugin: Plugin) -> bool:
    """True when a config path exists or the declared binary is on PATH.

    Absence is a plain ``False``; nothing here raises or caches.
    """
    for path in config_candidates(plugin):
        try:
            if path.exists():
                return True
        except OSError:
            continue

    detection = plugin.manifest.detection
    if detection is not None and detection.binary_exists.strip():
        return shutil.which(detection.binary_exists.strip()) is not None
    return False
