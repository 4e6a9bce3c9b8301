"""
Location finding: regex and anchored searches over minified bundle text.

A finder returns a :class:`LocationResult` (or ``None`` when its pattern is not
present) and a writer turns that into replacement text.  Identifiers in the
bundle are machine-generated, so every pattern anchors on literal strings and
punctuation and captures whatever names it needs to regenerate valid code.

Notes for pattern writers:

- Match identifiers with ``[$\\w]+``; minified globals frequently contain ``$``.
- Put a boundary (``\\b``, ``(?<![$\\w])`` or an explicit ``,``/``;``) before a
  leading identifier group.  Without it the engine tries every offset of a
  multi-megabyte file and searches get roughly 50x slower.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

IDENT = r"[$\w]+"


@dataclass
class LocationResult:
    """Half-open span ``[start_index, end_index)`` plus captured identifiers."""
    start_index: int
    end_index: int
    identifiers: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.start_index < 0 or self.start_index > self.end_index:
            raise ValueError(
                f"invalid span [{self.start_index}, {self.end_index})"
            )

    def validate(self, text: str) -> bool:
        """True if the span lies inside *text*."""
        return self.end_index <= len(text)

    def slice(self, text: str) -> str:
        return text[self.start_index:self.end_index]


@dataclass
class ModificationEdit:
    """A fully resolved replacement against one snapshot of the text."""
    start_index: int
    end_index: int
    new_content: str


# ------------------------------------------------------------------
# Replacement primitives
# ------------------------------------------------------------------

def replace_span(text: str, start: int, end: int, new_content: str,
                 diff_label: str | None = None) -> str:
    """Return *text* with ``[start, end)`` replaced by *new_content*."""
    from ..diff_display import show_diff

    new_text = text[:start] + new_content + text[end:]
    show_diff(text, new_text, new_content, start, end, label=diff_label)
    return new_text


def apply_edits(text: str, edits: Iterable[ModificationEdit],
                diff_label: str | None = None) -> str:
    """Apply several edits computed against the same snapshot.

    Edits are applied in descending ``start_index`` order so that a replacement
    never shifts the offsets of an edit that has not been applied yet.
    Overlapping edits are rejected.
    """
    ordered = sorted(edits, key=lambda e: (e.start_index, e.end_index),
                     reverse=True)
    previous_start = len(text)
    for edit in ordered:
        if edit.end_index > previous_start:
            raise ValueError(
                f"overlapping edits at [{edit.start_index}, {edit.end_index})"
            )
        previous_start = edit.start_index

    new_text = text
    for edit in ordered:
        new_text = replace_span(new_text, edit.start_index, edit.end_index,
                                edit.new_content, diff_label=diff_label)
    return new_text


# ------------------------------------------------------------------
# Pattern families
# ------------------------------------------------------------------

def find_pattern(
    name: str,
    pattern: re.Pattern,
    text: str,
    group: int = 0,
) -> Optional[LocationResult]:
    """Direct regex match.

    The returned span covers *group* (the whole match by default) and the
    identifiers are all capture groups in order; an unmatched optional group
    is returned as an empty string.
    """
    match = pattern.search(text)
    if match is None:
        logger.warning("patch: %s: failed to find match", name)
        return None
    return LocationResult(
        start_index=match.start(group),
        end_index=match.end(group),
        identifiers=[g if g is not None else "" for g in match.groups()],
    )


def find_all(pattern: re.Pattern, text: str, group: int = 0) -> list[LocationResult]:
    """Every non-overlapping match of *pattern* as a LocationResult."""
    return [
        LocationResult(m.start(group), m.end(group),
                       [g if g is not None else "" for g in m.groups()])
        for m in pattern.finditer(text)
    ]


def search_window(
    text: str,
    anchor: str,
    before: int = 0,
    after: int = 0,
    start: int = 0,
) -> Optional[tuple[int, int, str]]:
    """Locate *anchor* and return a bounded window around it.

    Returns ``(anchor_index, window_start, window_text)`` or ``None`` when the
    anchor does not occur.  The window spans *before* characters ahead of the
    anchor and *after* characters from the anchor's start.
    """
    anchor_index = text.find(anchor, start)
    if anchor_index == -1:
        return None
    window_start = max(0, anchor_index - before)
    window_end = min(len(text), anchor_index + after) if after else anchor_index
    return anchor_index, window_start, text[window_start:window_end]


def last_match(pattern: re.Pattern, text: str) -> Optional[re.Match]:
    """The final match of *pattern* in *text* (nearest to a trailing anchor)."""
    found = None
    for found in pattern.finditer(text):
        pass
    return found


def find_near_anchor(
    name: str,
    text: str,
    anchor: str,
    pattern: re.Pattern,
    before: int = 0,
    after: int = 0,
) -> Optional[LocationResult]:
    """Anchored proximity search.

    Finds the literal *anchor*, then searches *pattern* only inside the window
    around it.  Looking backwards the occurrence nearest the anchor (the last
    one) wins; looking forwards the first one does.
    """
    found = search_window(text, anchor, before=before, after=after)
    if found is None:
        logger.warning("patch: %s: failed to find anchor %r", name, anchor)
        return None
    _, window_start, window = found

    match = last_match(pattern, window) if not after else pattern.search(window)
    if match is None:
        logger.warning("patch: %s: failed to find pattern near anchor %r",
                       name, anchor)
        return None
    return LocationResult(
        start_index=window_start + match.start(),
        end_index=window_start + match.end(),
        identifiers=[g if g is not None else "" for g in match.groups()],
    )


def skip_string(text: str, start: int) -> int:
    """Index just past the JS string literal whose opening quote is at *start*.

    Returns ``len(text)`` if the literal is unterminated.
    """
    quote = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return n


def scan_balanced(text: str, open_index: int, opener: str = "[",
                  closer: str = "]") -> Optional[int]:
    """Balanced-delimiter scan.

    *open_index* must point at *opener*.  Scans forward tracking nesting depth
    (string literals are skipped whole, so brackets inside strings do not
    count) and returns the index one past the matching *closer*, or ``None``
    if the literal never closes.
    """
    if open_index >= len(text) or text[open_index] != opener:
        return None
    depth = 0
    i = open_index
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "\"'`":
            i = skip_string(text, i)
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return None


def escape_ident(name: str) -> str:
    """Escape a minified identifier for use inside a regex."""
    return re.escape(name)


def to_js(value) -> str:
    """Compact JSON, the way the bundle writes its own literals."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


# ------------------------------------------------------------------
# Shared identifier discovery
# ------------------------------------------------------------------

_CHALK_RE = re.compile(
    r"\b([$\w]+)(?:\.(?:cyan|gray|green|red|yellow|ansi256|bgAnsi256|bgHex"
    r"|bgRgb|hex|rgb|bold|dim|inverse|italic|strikethrough|underline)\b)+\("
)
_REACT_RE = re.compile(r"\b([$\w]+)\.createElement\(")
_BOX_RE = re.compile(
    r"\.createElement\(([$\w]+),\{(?:flexDirection|alignItems|justifyContent"
    r"|paddingX|marginTop|borderStyle):"
)
_TEXT_RE = re.compile(
    r"\.createElement\(([$\w]+),\{(?:color|dimColor|bold|italic|wrap):"
)


def _most_common(pattern: re.Pattern, text: str) -> Optional[str]:
    counts = Counter(m.group(1) for m in pattern.finditer(text))
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def find_chalk_var(text: str) -> Optional[str]:
    """Name of the terminal-styling helper, by counting styled call chains."""
    return _most_common(_CHALK_RE, text)


def find_react_var(text: str) -> Optional[str]:
    """Name of the UI runtime namespace that owns ``createElement``."""
    return _most_common(_REACT_RE, text)


def find_box_component(text: str) -> Optional[str]:
    """Name of the layout (box) component, by counting layout props."""
    return _most_common(_BOX_RE, text)


def find_text_component(text: str) -> Optional[str]:
    """Name of the text component, by counting text-style props."""
    return _most_common(_TEXT_RE, text)
