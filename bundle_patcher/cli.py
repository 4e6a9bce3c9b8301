"""
CLI entry point: argument parsing and main execution flow.
"""

from __future__ import annotations

import argparse
import sys

from . import __version__
from .api import apply_customizations, restore_original
from .cli_display import ReportDisplay, log, setup_logger
from .config import Config
from .diff_display import diff_stats, format_colored_diff
from .editing.metrics import read_apply_stats
from .editing.patch_applier import PatchContext
from .errors import ConfigError, PatchError, PromptDataError
from .hash_index import has_unapplied_system_prompt_changes
from .prompt_sync import load_prompt_descriptors


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bundle-patcher",
        description="Customise a minified JavaScript CLI bundle in place")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None,
                        help="Path to config.yaml / config.json")
    parser.add_argument("--debug", action="store_true",
                        help="Verbose logging with span diffs for every edit")

    sub = parser.add_subparsers(dest="command", required=True)

    apply_p = sub.add_parser("apply", help="Apply configured customisations")
    apply_p.add_argument("--file", default=None,
                         help="Target bundle (default: targetPath from config)")
    apply_p.add_argument("--target-version", default=None,
                         help="Version of the target bundle (selects prompt data)")
    apply_p.add_argument("--prompts-dir", default=None,
                         help="Directory of markdown prompt overrides")
    apply_p.add_argument("--dry-run", action="store_true",
                         help="Show what would change without writing")
    apply_p.add_argument("--show-diff", action="store_true",
                         help="With --dry-run, print the full colored diff")

    restore_p = sub.add_parser("restore", help="Restore the original bundle")
    restore_p.add_argument("--file", default=None,
                           help="Target bundle (default: targetPath from config)")

    status_p = sub.add_parser("status", help="Show pending prompt edits and apply history")
    status_p.add_argument("--prompts-dir", default=None,
                          help="Directory of markdown prompt overrides")
    return parser


def _load_prompts(cfg: Config, version: str | None, prompts_dir: str) -> list:
    if not cfg.SYSTEM_PROMPTS_ENABLED:
        return []
    if not version:
        log.warning("Target version unknown; system prompts will not be applied")
        return []
    try:
        return load_prompt_descriptors(version, prompts_dir, cfg.PROMPT_CACHE_DIR,
                                       cfg.PROMPT_DATA_URL)
    except PromptDataError as e:
        log.warning(f"System prompts unavailable: {e}")
        return []


def _cmd_apply(args, cfg: Config, debug: bool) -> int:
    target = args.file or cfg.TARGET_PATH
    if not target:
        print("\n  [ERROR] No target bundle. Pass --file or set targetPath in config.\n")
        return 2

    version = args.target_version or cfg.TARGET_VERSION
    prompts_dir = args.prompts_dir or cfg.PROMPTS_DIR
    ctx = PatchContext(
        settings=cfg.settings,
        target_version=version,
        prompts=_load_prompts(cfg, version, prompts_dir),
        prompts_dir=prompts_dir,
        config_dir=cfg.CONFIG_DIR,
        debug=debug,
    )

    try:
        report = apply_customizations(target, ctx, dry_run=args.dry_run)
    except (PatchError, OSError) as e:
        log.error(f"Apply failed: {e}")
        return 1

    ReportDisplay().show(report)
    if args.dry_run:
        added, removed = diff_stats(report.diff)
        print(f"\nDry run: +{added} -{removed} lines would change in {target}")
        if args.show_diff and report.diff:
            print(format_colored_diff(report.diff))
    return 0 if report.success else 1


def _cmd_restore(args, cfg: Config) -> int:
    target = args.file or cfg.TARGET_PATH
    if not target:
        print("\n  [ERROR] No target bundle. Pass --file or set targetPath in config.\n")
        return 2
    try:
        restored = restore_original(target, cfg.CONFIG_DIR)
    except (PatchError, OSError) as e:
        log.error(f"Restore failed: {e}")
        return 1
    if not restored:
        print("No backup found; nothing to restore.")
        return 1
    print(f"Restored {target}")
    return 0


def _cmd_status(args, cfg: Config) -> int:
    prompts_dir = args.prompts_dir or cfg.PROMPTS_DIR
    if has_unapplied_system_prompt_changes(cfg.CONFIG_DIR, prompts_dir):
        print("System prompts: edited since last apply (run `bundle-patcher apply`)")
    else:
        print("System prompts: up to date")

    stats = read_apply_stats(cfg.CONFIG_DIR)
    if not stats["total_cycles"]:
        print("No apply history yet.")
        return 0
    print(f"Last {stats['total_cycles']} cycles: "
          f"{stats['avg_applied']} applied, {stats['avg_skipped']} skipped on average")
    for name, count in stats["frequently_failing"].items():
        print(f"  {name}: failed {count}x")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = Config.load(args.config)
    except ConfigError as e:
        print(f"\n  [ERROR] {e}\n", file=sys.stderr)
        return 2

    debug = args.debug or cfg.DEBUG
    setup_logger(cfg.LOG_DIR, debug)

    if args.command == "apply":
        return _cmd_apply(args, cfg, debug)
    if args.command == "restore":
        return _cmd_restore(args, cfg)
    return _cmd_status(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
