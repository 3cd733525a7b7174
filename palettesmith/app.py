"""Command-line bootstrap."""

from __future__ import annotations

import argparse
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from palettesmith.config.settings import AppSettings
from palettesmith.core.theme_store import ThemeStore, load_theme_config, save_theme_config
from palettesmith.errors import ConfigError, ErrorCode, PalettesmithError, format_error_for_user
from palettesmith.plugins.registry import PluginRegistry
from palettesmith.plugins.report import build_report, format_report
from palettesmith.plugins.service import PaletteService
from palettesmith.runtime_paths import builtin_plugins_root, is_frozen, package_root


def _configure_logger(settings: AppSettings) -> logging.Logger:
    logger = logging.getLogger("palettesmith")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    handler = RotatingFileHandler(
        settings.log_dir / "palettesmith.log",
        maxBytes=512_000,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def _build_registry(args: argparse.Namespace, settings: AppSettings) -> PluginRegistry:
    builtin_root = None if args.no_builtin else builtin_plugins_root()
    if builtin_root is not None and not builtin_root.exists():
        logging.getLogger("palettesmith").warning("builtin plugin root missing at %s", builtin_root)
    user_root = Path(args.plugins_dir) if args.plugins_dir else settings.plugins_dir
    registry = PluginRegistry(builtin_root=builtin_root, user_root=user_root)
    registry.reload()
    return registry


def _build_service(args: argparse.Namespace, settings: AppSettings) -> PaletteService:
    store = ThemeStore(load_theme_config(_theme_path(args, settings)))
    return PaletteService(_build_registry(args, settings), store)


def _theme_path(args: argparse.Namespace, settings: AppSettings) -> Path:
    return Path(args.theme) if args.theme else settings.theme_config_path


def cmd_validate(args: argparse.Namespace, settings: AppSettings) -> int:
    report = build_report(_build_registry(args, settings))
    print(format_report(report))
    return 0 if report.ok else 1


def cmd_list(args: argparse.Namespace, settings: AppSettings) -> int:
    summaries = _build_registry(args, settings).list_summaries()
    if args.json:
        rows = [
            {
                "id": summary.plugin_id,
                "name": summary.title,
                "detected": summary.detected,
                "builtin": summary.is_builtin,
            }
            for summary in summaries
        ]
        print(json.dumps(rows, indent=2))
        return 0
    for summary in summaries:
        status = "detected" if summary.detected else "missing"
        print(f"{summary.title}\t{status}")
    return 0


def cmd_render(args: argparse.Namespace, settings: AppSettings) -> int:
    service = _build_service(args, settings)
    result = service.render(args.plugin_id)
    sys.stdout.write(result.text)
    for fallback in result.fallbacks:
        print(f"warning: {fallback.helper} could not parse {fallback.value!r}: {fallback.reason}", file=sys.stderr)
    return 0


def cmd_set(args: argparse.Namespace, settings: AppSettings) -> int:
    service = _build_service(args, settings)
    errors = service.set_field(args.plugin_id, args.key, args.value)
    if errors:
        for error in errors:
            print(f"{error.field}: {error.message}", file=sys.stderr)
        return 1
    save_theme_config(service.store.config, _theme_path(args, settings))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="palettesmith")
    parser.add_argument("--plugins-dir", help="directory of external plugins (overrides settings)")
    parser.add_argument("--no-builtin", action="store_true", help="skip the built-in plugins")
    parser.add_argument("--theme", help="theme config JSON file (overrides settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="validate plugins and their field defaults")
    validate.set_defaults(func=cmd_validate)

    listing = sub.add_parser("list", help="list plugins and whether their application is installed")
    listing.add_argument("--json", action="store_true", help="output JSON")
    listing.set_defaults(func=cmd_list)

    render = sub.add_parser("render", help="render a plugin's config fragment to stdout")
    render.add_argument("plugin_id")
    render.set_defaults(func=cmd_render)

    setter = sub.add_parser("set", help="store a field override in the theme config")
    setter.add_argument("plugin_id")
    setter.add_argument("key")
    setter.add_argument("value")
    setter.set_defaults(func=cmd_set)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = AppSettings()
        logger = _configure_logger(settings)
    except OSError as exc:
        error = ConfigError(
            ErrorCode.CONFIG_PERMISSION_DENIED,
            f"cannot prepare config directory: {exc}",
        )
        print(f"error: {format_error_for_user(error)}", file=sys.stderr)
        return 1
    logger.info("startup command=%s frozen=%s package_root=%s", args.command, is_frozen(), package_root())
    try:
        return args.func(args, settings)
    except PalettesmithError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"error: {format_error_for_user(exc)}", file=sys.stderr)
        return 1
