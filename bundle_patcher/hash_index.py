"""
Prompt hash indices.

``systemPromptOriginalHashes.json`` maps ``"<promptId>-<version>"`` to the MD5
of the stock prompt text; ``systemPromptAppliedHashes.json`` maps a prompt id
to the MD5 of the content last written into the bundle (``null`` once the
bundle has been restored).  Both only feed the "changes pending" check.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from typing import Iterable, Optional

from .prompt_sync import parse_markdown_prompt

logger = logging.getLogger(__name__)

ORIGINAL_HASHES_FILE = "systemPromptOriginalHashes.json"
APPLIED_HASHES_FILE = "systemPromptAppliedHashes.json"


def compute_md5_hash(content: str) -> str:
    """MD5 of *content* with surrounding whitespace trimmed."""
    return hashlib.md5(content.strip().encode("utf-8")).hexdigest()


def hash_key(prompt_id: str, version: str) -> str:
    return f"{prompt_id}-{version}"


def _read(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write(path: str, index: dict) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(index, f, indent=2, sort_keys=True, ensure_ascii=False)


# ------------------------------------------------------------------
# Original hashes
# ------------------------------------------------------------------

def read_original_hashes(config_dir: str) -> dict:
    return _read(os.path.join(config_dir, ORIGINAL_HASHES_FILE))


def store_original_hashes(config_dir: str, prompts: Iterable) -> int:
    """Record the stock-content hash of every prompt not yet indexed.

    *prompts* are ``PromptDescriptor`` objects; returns how many were added.
    """
    path = os.path.join(config_dir, ORIGINAL_HASHES_FILE)
    index = _read(path)
    added = 0
    for prompt in prompts:
        key = hash_key(prompt.prompt_id, prompt.version)
        if key not in index:
            index[key] = compute_md5_hash(prompt.baseline)
            added += 1
    _write(path, index)
    return added


def get_original_hash(config_dir: str, prompt_id: str, version: str) -> Optional[str]:
    return read_original_hashes(config_dir).get(hash_key(prompt_id, version))


# ------------------------------------------------------------------
# Applied hashes
# ------------------------------------------------------------------

def read_applied_hashes(config_dir: str) -> dict:
    return _read(os.path.join(config_dir, APPLIED_HASHES_FILE))


def set_applied_hashes(config_dir: str, hashes: dict) -> None:
    """Merge ``{prompt_id: md5}`` into the applied index."""
    path = os.path.join(config_dir, APPLIED_HASHES_FILE)
    index = _read(path)
    index.update(hashes)
    _write(path, index)


def clear_all_applied_hashes(config_dir: str) -> None:
    """Set every applied hash to ``None`` (the bundle was restored)."""
    path = os.path.join(config_dir, APPLIED_HASHES_FILE)
    index = _read(path)
    _write(path, {key: None for key in index})


def has_unapplied_system_prompt_changes(config_dir: str, prompts_dir: str) -> bool:
    """True if a prompt file was edited since its content was last applied."""
    applied = read_applied_hashes(config_dir)
    if not applied or not os.path.isdir(prompts_dir):
        return False

    for filename in sorted(os.listdir(prompts_dir)):
        if not filename.endswith(".md"):
            continue
        prompt_id = filename[:-3]
        applied_hash = applied.get(prompt_id)
        if applied_hash is None:
            continue
        with open(os.path.join(prompts_dir, filename), "r", encoding="utf-8") as f:
            parsed = parse_markdown_prompt(f.read())
        if compute_md5_hash(parsed.content) != applied_hash:
            logger.debug("prompt %s changed since last apply", prompt_id)
            return True
    return False
