"""Plugin framework constants."""

from __future__ import annotations

MANIFEST_FILENAMES: tuple[str, ...] = ("plugin.json", "plugin.yaml", "plugin.yml")

SYSTEM_ERROR_KEY = "system"

RESTART_METHODS: tuple[str, ...] = ("none", "signal", "command")

MAX_MANIFEST_BYTES = 64 * 1024
MAX_SPEC_BYTES = 64 * 1024
MAX_TEMPLATE_BYTES = 512 * 1024
MAX_PLUGIN_DIR_CANDIDATES = 512
