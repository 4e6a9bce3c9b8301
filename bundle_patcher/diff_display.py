"""
Diff display: bounded-context span diffs for patch debugging, plus colored
unified diffs of a whole patched file for dry runs.

Nothing here changes the text it is given; the span diff is only rendered when
debug mode is on.
"""

from __future__ import annotations

import difflib
import logging

from .cli_display import is_debug

logger = logging.getLogger(__name__)

_RED = "\033[31m"
_GREEN = "\033[32m"
_RESET = "\033[0m"

CONTEXT_CHARS = 20


def render_span_diff(
    old_text: str,
    new_text: str,
    injected: str,
    start: int,
    end: int,
    context: int = CONTEXT_CHARS,
) -> str | None:
    """Render OLD/NEW lines around an edited span.

    Returns ``None`` when the changed region is identical in both texts.
    """
    context_start = max(0, start - context)
    context_end_old = min(len(old_text), end + context)
    new_end = start + len(injected)
    context_end_new = min(len(new_text), new_end + context)

    old_before = old_text[context_start:start]
    old_changed = old_text[start:end]
    old_after = old_text[end:context_end_old]

    new_before = new_text[context_start:start]
    new_changed = new_text[start:new_end]
    new_after = new_text[new_end:context_end_new]

    if old_changed == new_changed:
        return None

    return "\n".join([
        "--- Diff ---",
        f"OLD: {old_before}{_RED}{old_changed}{_RESET}{old_after}",
        f"NEW: {new_before}{_GREEN}{new_changed}{_RESET}{new_after}",
        "--- End Diff ---",
    ])


def show_diff(
    old_text: str,
    new_text: str,
    injected: str,
    start: int,
    end: int,
    label: str | None = None,
) -> str | None:
    """Log a span diff when debug mode is on; returns what was logged."""
    if not is_debug():
        return None
    try:
        rendered = render_span_diff(old_text, new_text, injected, start, end)
    except Exception as exc:
        logger.debug("diff rendering failed: %s", exc)
        return None
    if rendered is None:
        return None
    if label:
        rendered = f"[{label}]\n{rendered}"
    logger.debug("\n%s\n", rendered)
    return rendered


def compute_diff(old_content: str, new_content: str, label: str = "target") -> str | None:
    """Return unified diff string, or None if content is unchanged.

    Minified bundles are mostly single lines, so statements are split on ``;``
    first to keep the diff readable.
    """
    if old_content == new_content:
        return None

    old_lines = old_content.replace(";", ";\n").splitlines(keepends=True)
    new_lines = new_content.replace(";", ";\n").splitlines(keepends=True)

    diff = difflib.unified_diff(
        old_lines, new_lines,
        fromfile=f"a/{label}",
        tofile=f"b/{label}",
        lineterm="",
    )
    diff_text = "\n".join(line.rstrip("\n") for line in diff)
    return diff_text if diff_text.strip() else None


_HUNK_STYLES = (
    ("+++", "\033[1m"),
    ("---", "\033[1m"),
    ("@@", "\033[36m"),
    ("+", _GREEN),
    ("-", _RED),
)


def format_colored_diff(diff_text: str) -> str:
    """ANSI-color a unified diff: bold file headers, cyan hunks, green/red lines."""
    colored: list[str] = []
    for line in diff_text.splitlines():
        style = next((s for prefix, s in _HUNK_STYLES if line.startswith(prefix)), None)
        colored.append(f"{style}{line}{_RESET}" if style else line)
    return "\n".join(colored)


def diff_stats(diff_text: str | None) -> tuple[int, int]:
    """Count (added, removed) lines in a unified diff."""
    if not diff_text:
        return 0, 0
    added = removed = 0
    for line in diff_text.splitlines():
        if line.startswith("+++") or line.startswith("---"):
            continue
        if line.startswith("+"):
            added += 1
        elif line.startswith("-"):
            removed += 1
    return added, removed
