import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime

_debug_enabled = False


def is_debug() -> bool:
    return _debug_enabled


def set_debug(enabled: bool = True) -> None:
    """Toggle debug diagnostics (span diffs, per-prompt match details)."""
    global _debug_enabled
    _debug_enabled = enabled
    level = logging.DEBUG if enabled else logging.WARNING
    for handler in log.handlers:
        if getattr(handler, "_bundle_patcher_console", False):
            handler.setLevel(level)


@contextmanager
def debug_scope(enabled: bool):
    """Turn span diagnostics on for one apply cycle, then restore the flag."""
    global _debug_enabled
    previous = _debug_enabled
    _debug_enabled = previous or enabled
    try:
        yield
    finally:
        _debug_enabled = previous


def setup_logger(log_dir: str | None = None, debug: bool = False) -> logging.Logger:
    """Configure the package logger.

    Console output goes to stderr (DEBUG when *debug*, WARNING otherwise).
    When *log_dir* is given, everything is also written to a timestamped file.
    """
    logger = logging.getLogger("bundle_patcher")
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Console handler: warnings always, everything in debug mode
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.DEBUG if debug else logging.WARNING)
    ch.setFormatter(logging.Formatter("%(message)s"))
    ch._bundle_patcher_console = True
    logger.addHandler(ch)

    # File handler: captures everything
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"apply_{timestamp}.log")
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
        ))
        logger.addHandler(fh)

    set_debug(debug)
    return logger


# Global logger instance; handlers are attached by setup_logger()
log = logging.getLogger("bundle_patcher")


class ReportDisplay:
    """Renders the per-cycle summary of an apply run."""

    ICONS = {
        "applied":  "✔",
        "failed":   "✘",
        "skipped":  "–",
        "unchanged": "○",
    }

    _COLORS = {
        "applied": "\033[32m",
        "failed": "\033[31m",
        "skipped": "\033[33m",
        "unchanged": "\033[2m",
    }
    _RESET = "\033[0m"

    def __init__(self, color: bool | None = None):
        if color is None:
            color = sys.stdout.isatty()
        self.color = color

    def _line(self, status: str, text: str) -> str:
        icon = self.ICONS[status]
        if self.color:
            return f"  {self._COLORS[status]}{icon}{self._RESET} {text}"
        return f"  {icon} {text}"

    def render(self, report) -> str:
        """Return the summary for an ``ApplyReport`` as display text."""
        lines = [f"Patches: {len(report.applied)} applied, "
                 f"{len(report.skipped)} skipped, {len(report.failed)} failed"]
        for name in report.applied:
            lines.append(self._line("applied", name))
        for name in report.unchanged:
            lines.append(self._line("unchanged", f"{name} (no change)"))
        for name, reason in report.skipped:
            lines.append(self._line("skipped", f"{name}: {reason}"))
        for name, reason in report.failed:
            lines.append(self._line("failed", f"{name}: {reason}"))

        total_prompts = (len(report.prompts_matched) + len(report.prompts_missed)
                         + len(report.prompts_rejected))
        if total_prompts:
            lines.append(
                f"System prompts: {len(report.prompts_matched)}/{total_prompts} matched"
            )
            for prompt_id in report.prompts_missed:
                lines.append(self._line("skipped", f"{prompt_id}: not found"))
            for prompt_id in report.prompts_rejected:
                lines.append(self._line("failed", f"{prompt_id}: unescaped backtick"))
        for item in report.items:
            lines.append(f"  {item}")
        return "\n".join(lines)

    def show(self, report) -> None:
        print(self.render(report))
