"""
Apply metrics: keeps a history of apply cycles in a JSONL log file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter, deque
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_METRICS_FILE = "apply_history.jsonl"


def _metrics_path(config_dir: str) -> str:
    return os.path.join(config_dir, _METRICS_FILE)


def log_apply_metric(data: dict, config_dir: str) -> None:
    """Append a single apply-cycle entry to the JSONL log.

    Parameters
    ----------
    data:
        Fields to log (target version, report counts, failed patch names...).
    config_dir:
        Directory holding the log.
    """
    path = _metrics_path(config_dir)
    os.makedirs(config_dir, exist_ok=True)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("Failed to write apply history: %s", exc)


def _iter_entries(path: str):
    """Yield parsed history entries, skipping lines that are not valid JSON."""
    if not os.path.isfile(path):
        return
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            raw = raw.strip()
            if not raw:
                continue
            try:
                yield json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("skipping corrupt apply history line")


def read_apply_stats(config_dir: str, last_n: int = 20) -> dict:
    """Compute statistics over the most recent apply cycles.

    Returns
    -------
    dict
        ``total_cycles``, ``avg_applied``, ``avg_skipped`` and
        ``frequently_failing`` (patch name -> failure count).
    """
    recent = deque(_iter_entries(_metrics_path(config_dir)), maxlen=last_n)
    if not recent:
        return {"total_cycles": 0}

    cycles = len(recent)
    failures = Counter(name for cycle in recent for name in cycle.get("failed", []))
    return {
        "total_cycles": cycles,
        "avg_applied": round(sum(c.get("applied", 0) for c in recent) / cycles, 1),
        "avg_skipped": round(sum(c.get("skipped", 0) for c in recent) / cycles, 1),
        "frequently_failing": dict(failures.most_common()),
    }
