"""
Backup & restore: keeps a pristine copy of the target bundle so every apply
cycle starts from stock text and ``restore`` can undo everything.

A small JSON file next to the backup records which target version it was
taken from and the hash of the last text written to the target; a mismatch
on either means the target was reinstalled and the backup is stale.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import stat
from typing import Optional

from .errors import BackupError

logger = logging.getLogger(__name__)

DEFAULT_MODE = 0o755


def read_text(path: str) -> str:
    """File contents with line endings left exactly as stored."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def content_hash(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def ensure_backup(target_path: str, backup_path: str, refresh: bool = False) -> bool:
    """Copy *target_path* to *backup_path* unless a backup already exists.

    With *refresh* an existing backup is replaced.  Returns ``True`` if a new
    backup was written.
    """
    if os.path.isfile(backup_path) and not refresh:
        return False
    os.makedirs(os.path.dirname(backup_path) or ".", exist_ok=True)
    try:
        shutil.copyfile(target_path, backup_path)
    except OSError as exc:
        raise BackupError(f"Could not back up {target_path}: {exc}") from exc
    logger.info("Backed up %s to %s", target_path, backup_path)
    return True


def read_backup(backup_path: str) -> str:
    """Pristine bundle text."""
    try:
        return read_text(backup_path)
    except OSError as exc:
        raise BackupError(f"Could not read backup {backup_path}: {exc}") from exc


def read_backup_info(info_path: str) -> dict:
    """``{"version": ..., "outputHash": ...}`` or ``{}`` when never recorded."""
    if not os.path.isfile(info_path):
        return {}
    try:
        with open(info_path, "r", encoding="utf-8") as f:
            info = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable backup info %s: %s", info_path, exc)
        return {}
    return info if isinstance(info, dict) else {}


def write_backup_info(info_path: str, version: Optional[str], output_text: str) -> None:
    os.makedirs(os.path.dirname(info_path) or ".", exist_ok=True)
    with open(info_path, "w", encoding="utf-8") as f:
        json.dump({"version": version, "outputHash": content_hash(output_text)},
                  f, indent=2, sort_keys=True)


def backup_is_stale(info: dict, target_version: Optional[str], current_text: str) -> bool:
    """True when the installed target no longer descends from the backup.

    When the last cycle's output hash is recorded it decides: any other
    content means the target was reinstalled.  A target that still holds
    that output is never re-backed-up, whatever version it reports.  Without
    a recorded hash, a version different from the backed-up one means stale;
    unknown versions never do.
    """
    backed_up = info.get("version")
    output_hash = info.get("outputHash")
    if output_hash:
        if content_hash(current_text) != output_hash:
            logger.info("Target changed outside bundle-patcher since the last cycle")
            return True
        if target_version and backed_up and target_version != backed_up:
            logger.warning("Target reports version %s but still holds the output patched "
                           "from %s; keeping the existing backup", target_version, backed_up)
        return False
    if target_version and backed_up and target_version != backed_up:
        logger.info("Target version changed (%s -> %s)", backed_up, target_version)
        return True
    return False


def replace_file_breaking_hard_links(path: str, content: str,
                                     operation: str = "replace") -> None:
    """Write *content* to *path* as a new inode, keeping the old permissions.

    Package managers hard-link installed files; unlinking first means the
    other links keep the stock content.
    """
    try:
        mode = stat.S_IMODE(os.stat(path).st_mode)
        logger.debug("[%s] original mode for %s: %o", operation, path, mode)
    except OSError as exc:
        mode = DEFAULT_MODE
        logger.debug("[%s] could not stat %s (%s), using %o", operation, path, exc, mode)

    try:
        os.unlink(path)
    except FileNotFoundError:
        pass

    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    os.chmod(path, mode)


def restore_backup(target_path: str, backup_path: str) -> Optional[str]:
    """Write the backup over *target_path*.

    Returns the restored text, or ``None`` if there is no backup.
    """
    if not os.path.isfile(backup_path):
        logger.debug("no backup at %s, nothing to restore", backup_path)
        return None
    pristine = read_backup(backup_path)
    replace_file_breaking_hard_links(target_path, pristine, "restore")
    logger.info("Restored %s from backup", target_path)
    return pristine
