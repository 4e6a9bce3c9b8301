"""
Programmatic API: apply or undo customisations on a target bundle.

Example usage::

    from bundle_patcher import Config, PatchContext, apply_customizations

    cfg = Config.load()
    ctx = PatchContext(settings=cfg.settings, config_dir=cfg.CONFIG_DIR)
    report = apply_customizations(cfg.TARGET_PATH, ctx)
    print(report.applied)
"""

from __future__ import annotations

import logging
import os

from .backup import (
    backup_is_stale,
    ensure_backup,
    read_backup,
    read_backup_info,
    read_text,
    replace_file_breaking_hard_links,
    restore_backup,
    write_backup_info,
)
from .config import BACKUP_FILENAME, BACKUP_INFO_FILENAME, default_config_dir
from .diff_display import compute_diff
from .editing.metrics import log_apply_metric
from .editing.patch_applier import ApplyReport, PatchApplier, PatchContext
from .hash_index import clear_all_applied_hashes, set_applied_hashes, store_original_hashes

_logger = logging.getLogger(__name__)


def apply_customizations(
    target_path: str,
    ctx: PatchContext,
    *,
    dry_run: bool = False,
    applier: PatchApplier | None = None,
) -> ApplyReport:
    """Run one apply cycle against *target_path*.

    Patches always run against the pristine backup (created on first use),
    so repeated cycles never stack.  The backup is retaken when the target
    was reinstalled (new version, or content other than what the last cycle
    wrote).  The target is written at most once, line endings untouched.
    With *dry_run* nothing is written; ``report.diff`` holds the unified
    diff between the current target and what would be written.
    """
    config_dir = ctx.config_dir or default_config_dir()
    backup_path = os.path.join(config_dir, BACKUP_FILENAME)
    info_path = os.path.join(config_dir, BACKUP_INFO_FILENAME)

    current = read_text(target_path)
    info = read_backup_info(info_path)
    stale = os.path.isfile(backup_path) and backup_is_stale(info, ctx.target_version, current)

    backup_version = info.get("version")
    if not dry_run and ensure_backup(target_path, backup_path, refresh=stale):
        backup_version = ctx.target_version

    if stale and dry_run:
        pristine = current
    elif os.path.isfile(backup_path):
        pristine = read_backup(backup_path)
    else:
        pristine = current

    new_text, report = (applier or PatchApplier()).apply(pristine, ctx)

    if dry_run:
        report.diff = compute_diff(current, new_text, os.path.basename(target_path))
        return report

    if new_text != current:
        replace_file_breaking_hard_links(target_path, new_text, "apply")
        report.written = True
        _logger.info("Wrote %s (%d chars)", target_path, len(new_text))
    else:
        _logger.info("%s already up to date", target_path)
    write_backup_info(info_path, backup_version, new_text)

    if ctx.prompts:
        store_original_hashes(config_dir, ctx.prompts)
    if report.applied_hashes:
        set_applied_hashes(config_dir, report.applied_hashes)

    metric = report.to_dict()
    metric["target_version"] = ctx.target_version
    metric["backup_refreshed"] = stale
    log_apply_metric(metric, config_dir)
    return report


def restore_original(target_path: str, config_dir: str | None = None) -> bool:
    """Put the pristine bundle back and forget which prompts were applied."""
    config_dir = config_dir or default_config_dir()
    restored = restore_backup(target_path, os.path.join(config_dir, BACKUP_FILENAME))
    if restored is None:
        return False
    info_path = os.path.join(config_dir, BACKUP_INFO_FILENAME)
    write_backup_info(info_path, read_backup_info(info_path).get("version"), restored)
    clear_all_applied_hashes(config_dir)
    return True
