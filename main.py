#!/usr/bin/env python3
"""Stalker 2 Mod Manager — Entry Point"""

import argparse
import faulthandler
import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config_schema import PathsConfig
from config_store import (
    ConfigError,
    ConfigStore,
    apply_mods_order,
    create_mods_order,
    import_mods_order,
)
from directory_sync import COMPARE_MODES
from install_errors import InstallCancelled, InstallError
from mod_entry import ModEntry, find_mod, move_mod, set_enabled
from mod_manager import InstallProgress, ModManager
from order_import import SnapshotFormatError, sort_by_snapshot


def setup_logging(log_dir: Path) -> logging.Logger:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "stalker2modmanager.log"

    handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,  # 1 MB
        backupCount=2,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"))

    # Core modules log under their own module names; collect everything.
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    return logging.getLogger("stalker2modmanager")


def install_crash_handler(logger: logging.Logger, log_dir: Path):
    # Python-level unhandled exceptions
    def handle_exception(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logger.critical(
            "Unhandled exception:\n%s",
            "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        )

    sys.excepthook = handle_exception

    # Native crashes go to their own file; logging is unusable by then
    crash_file = log_dir / "crash.log"
    faulthandler.enable(open(crash_file, "w"), all_threads=True)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stalker 2 Mod Manager")
    parser.add_argument("--config-dir", help="Directory holding config.json and mods_order.json")
    subparsers = parser.add_subparsers(dest="command", required=True)

    paths_parser = subparsers.add_parser("set-paths", help="Store the Vortex and target folders")
    paths_parser.add_argument("--vortex-path")
    paths_parser.add_argument("--target-path")
    paths_parser.add_argument("--compare", choices=COMPARE_MODES)
    paths_parser.add_argument(
        "--consider-version",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Match saved orders on the full folder name including version",
    )

    subparsers.add_parser("list", help="List mods in their current order")

    install_parser = subparsers.add_parser("install", help="Install enabled mods into the target folder")
    install_parser.add_argument("--compare", choices=COMPARE_MODES, help="Override the stored compare mode")
    install_parser.add_argument("--force-unlock", action="store_true", help="Remove a stale lock file first")

    for name, help_text in (("enable", "Enable a mod"), ("disable", "Disable a mod")):
        toggle_parser = subparsers.add_parser(name, help=help_text)
        toggle_parser.add_argument("name")

    move_parser = subparsers.add_parser("move", help="Move a mod to a new position")
    move_parser.add_argument("name")
    move_parser.add_argument("index", type=int)

    export_parser = subparsers.add_parser("export-order", help="Write the current order to a file")
    export_parser.add_argument("path")

    import_parser = subparsers.add_parser("import-order", help="Apply an exported order file")
    import_parser.add_argument("path")

    snapshot_parser = subparsers.add_parser("sort-snapshot", help="Reorder to match a Vortex snapshot (.json/.txt)")
    snapshot_parser.add_argument("path")

    return parser.parse_args(argv)


# ── Helpers ───────────────────────────────────────────────────────────


def _load_paths_config(store: ConfigStore, logger: logging.Logger) -> PathsConfig:
    if not store.paths_config_path.exists():
        legacy = store.load_legacy_config()
        if legacy is not None:
            paths, order = legacy
            store.save_paths_config(paths)
            store.save_mods_order(order)
            logger.info("Migrated legacy %s", store.legacy_config_path.name)
            return paths
    return store.load_paths_config()


def _make_manager(config: PathsConfig, logger: logging.Logger, compare=None) -> ModManager:
    def log(msg: str):
        logger.info(msg)
        print(msg)

    return ModManager(
        config.vortex_path,
        config.target_path,
        log_callback=log,
        compare_mode=compare or config.compare_mode,
    )


def _load_mods(store: ConfigStore, config: PathsConfig, manager: ModManager) -> list[ModEntry]:
    mods = manager.discover_mods()
    saved = store.load_mods_order()
    if saved.mods:
        mods = apply_mods_order(mods, saved, consider_version=config.consider_mod_version)
    return mods


def _print_mods(mods: list[ModEntry]):
    for mod in mods:
        flag = "x" if mod.is_enabled else " "
        note = "  (some files disabled)" if mod.has_disabled_files else ""
        print(f"[{flag}] {mod.target_folder_name}{note}")


def _print_progress(progress: InstallProgress):
    if progress.phase == "cleaning":
        print(progress.current_mod)
    else:
        print(f"[{progress.percentage:3d}%] {progress.installed}/{progress.total} {progress.current_mod}")


# ── Commands ──────────────────────────────────────────────────────────


def run_command(args: argparse.Namespace, logger: logging.Logger) -> int:
    store = ConfigStore(args.config_dir)
    config = _load_paths_config(store, logger)

    if args.command == "set-paths":
        updates = {
            "vortex_path": args.vortex_path,
            "target_path": args.target_path,
            "compare_mode": args.compare,
            "consider_mod_version": args.consider_version,
        }
        config = config.model_copy(update={k: v for k, v in updates.items() if v is not None})
        store.save_paths_config(config)
        print(f"Vortex path: {config.vortex_path or '(not set)'}")
        print(f"Target path: {config.target_path or '(not set)'}")
        return 0

    if not config.vortex_path or not config.target_path:
        print("Vortex and target paths are not set. Run 'set-paths' first.")
        return 2

    manager = _make_manager(config, logger, compare=getattr(args, "compare", None))
    mods = _load_mods(store, config, manager)

    if args.command == "list":
        _print_mods(mods)
        for issue in manager.validate_paths():
            print(f"Warning: {issue}")
        return 0

    if args.command == "install":
        try:
            summary = manager.install(
                mods, progress_callback=_print_progress, force_unlock=args.force_unlock
            )
        except InstallCancelled:
            print("Install cancelled")
            return 1
        except InstallError as exc:
            logger.error("Install failed: %s", exc)
            print(f"Install failed: {exc}")
            return 1
        store.save_mods_order(create_mods_order(mods))
        print(
            f"Installed {summary.installed_count}/{summary.total} mods: "
            f"{summary.copied_files} copied, {summary.skipped_files} up to date, "
            f"{summary.removed_directories} folder(s) and {summary.removed_files} file(s) removed"
        )
        if summary.errors:
            print(f"{summary.error_count} error(s):")
            for error in summary.errors:
                print(f"  {error}")
            return 1
        return 0

    if args.command in ("enable", "disable", "move"):
        mod = find_mod(mods, args.name)
        if mod is None:
            print(f"No mod named {args.name!r}")
            return 2
        if args.command == "move":
            mods = move_mod(mods, mod.name, args.index)
        else:
            mods = set_enabled(mods, mod.name, args.command == "enable")
        store.save_mods_order(create_mods_order(mods))
        _print_mods(mods)
        return 0

    try:
        if args.command == "export-order":
            store.export_mods_order(create_mods_order(mods), args.path)
            config = config.model_copy(update={"last_export_order_path": args.path})
            store.save_paths_config(config)
            print(f"Order exported to {args.path}")
            return 0

        if args.command == "import-order":
            order = store.load_mods_order_from_file(args.path)
            if not order.mods:
                print("Imported file does not contain any mods order")
                return 1
            mods = import_mods_order(mods, order, consider_version=config.consider_mod_version)
            store.save_mods_order(create_mods_order(mods))
            config = config.model_copy(update={"last_import_order_path": args.path})
            store.save_paths_config(config)
            print(f"Applied order for {len(order.mods)} mods from {Path(args.path).name}")
            _print_mods(mods)
            return 0

        if args.command == "sort-snapshot":
            result = sort_by_snapshot(mods, args.path)
            for match in result.matches:
                logger.debug("Matched (%s): %r -> %r", match.match_type, match.snapshot_name, match.mod_name)
            for name in result.unmatched_snapshot_names:
                print(f"Could not match mod from snapshot: {name}")
            store.save_mods_order(create_mods_order(result.mods))
            print(
                f"Sorted {len(result.mods)} mods according to {Path(args.path).name} "
                f"({len(result.snapshot_names)} mods found in file)"
            )
            _print_mods(result.mods)
            return 0
    except (ConfigError, SnapshotFormatError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}")
        return 1

    raise SystemExit(f"Unhandled command: {args.command}")


if __name__ == "__main__":
    args = parse_args()
    store_dir = ConfigStore(args.config_dir).config_dir

    logger = setup_logging(store_dir)
    install_crash_handler(logger, store_dir)
    logger.info("Starting Stalker 2 Mod Manager: %s", args.command)

    raise SystemExit(run_command(args, logger))
