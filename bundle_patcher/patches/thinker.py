"""
Thinking spinner: the verb list, the status line format, the glyph
animation (characters, speed, width, mirroring) and the freeze branch.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from ..editing.locations import (
    LocationResult,
    ModificationEdit,
    apply_edits,
    find_all,
    find_pattern,
    replace_span,
    to_js,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Verbs
# ------------------------------------------------------------------

VERBS_PATTERN = re.compile(r"[,;]([$\w]+)=\[(?:\"[^\"{}()]+ing\",)+\"[^\"{}()]+ing\"\]")
OLD_VERBS_PATTERN = re.compile(
    r"[, ]([$\w]+)=\{words:\[(?:\"[^\"{}()]+ing\",)+\"[^\"{}()]+ing\"\]\}"
)
VERBS_SOURCE_PATTERN = re.compile(
    r"\bfunction ([$\w]+)\(\)\{return [$\w]+\(\"tengu_spinner_words\",[$\w]+\)\.words\}"
)


def find_thinker_verbs(text: str) -> Optional[LocationResult]:
    """Span of ``VAR=[...]`` (plain form) or ``VAR={words:[...]}`` (old form).

    The leading delimiter is excluded from the span; the second identifier is
    ``"old_format"`` for the wrapped form.
    """
    match = VERBS_PATTERN.search(text)
    if match is not None:
        return LocationResult(match.start() + 1, match.end(), [match.group(1)])
    match = OLD_VERBS_PATTERN.search(text)
    if match is not None:
        return LocationResult(match.start() + 1, match.end(),
                              [match.group(1), "old_format"])
    logger.warning("patch: thinker_verbs: failed to find match")
    return None


def write_thinker_verbs(text: str, verbs: Sequence[str]) -> Optional[str]:
    location = find_thinker_verbs(text)
    if location is None:
        return None
    var_name = location.identifiers[0]
    old_format = len(location.identifiers) > 1

    if old_format:
        new_decl = f"{var_name}={to_js({'words': list(verbs)})}"
    else:
        new_decl = f"{var_name}={to_js(list(verbs))}"
    text = replace_span(text, location.start_index, location.end_index,
                        new_decl, diff_label="thinker_verbs")
    if not old_format:
        return text

    # The wrapped list used to be fetched through a feature-flag helper.
    source = find_pattern("thinker_verbs_source", VERBS_SOURCE_PATTERN, text)
    if source is None:
        return None
    new_fn = f"function {source.identifiers[0]}(){{return {var_name}.words}}"
    return replace_span(text, source.start_index, source.end_index, new_fn,
                        diff_label="thinker_verbs")


# ------------------------------------------------------------------
# Status line format
# ------------------------------------------------------------------

FORMAT_AREA_PATTERN = re.compile(
    r"spinnerTip:[$\w]+,(?:[$\w]+:[$\w]+,)*overrideMessage:[$\w]+,.{300}"
)
FORMAT_PATTERN = re.compile(r"(?<![$\w])([$\w]+)(=\(([^;]{1,200}?)\)\+\"…\")")
FORMAT_WINDOW = 600


def find_thinker_format(text: str) -> Optional[LocationResult]:
    """Span of ``=(<expr>)+"…"``; identifiers: ``[<expr>]``."""
    area = FORMAT_AREA_PATTERN.search(text)
    if area is None:
        logger.warning("patch: thinker_format: failed to find match")
        return None
    section = text[area.start():area.start() + FORMAT_WINDOW]
    match = FORMAT_PATTERN.search(section)
    if match is None:
        logger.warning("patch: thinker_format: failed to find format expression")
        return None
    start = area.start() + match.start(2)
    return LocationResult(start, start + len(match.group(2)), [match.group(3)])


def write_thinker_format(text: str, fmt: str) -> Optional[str]:
    """Replace the spinner text expression with a template built from *fmt*.

    ``{}`` in *fmt* stands for the current verb expression.
    """
    location = find_thinker_format(text)
    if location is None:
        return None
    serialized = fmt.replace("\\", "\\\\").replace("`", "\\`")
    expr = location.identifiers[0]
    template = "`" + serialized.replace("{}", "${" + expr + "}") + "`"
    return replace_span(text, location.start_index, location.end_index,
                        "=" + template, diff_label="thinker_format")


# ------------------------------------------------------------------
# Glyph animation
# ------------------------------------------------------------------

SYMBOL_CHARS_PATTERN = re.compile(
    r"\[\"[·✢*✳✶✻✽]\",\s*(?:\"[·✢*✳✶✻✽]\",?\s*)+\]"
)
SYMBOL_TIMER_PATTERN = re.compile(
    r"\b[$\w]+\(\(\)=>\{(if\(![$\w]+\)\{[$\w]+\(\d+\);return\})"
    r"[$\w]+\(\([^)]+\)=>[^)]+\+1\)\},(\d+)\)"
)
SYMBOL_WIDTH_PATTERN = re.compile(r"\{flexWrap:\"wrap\",height:1,width:2\}")
MIRROR_PATTERN = re.compile(r"=\s*\[\.\.\.([$\w]+),\s*\.\.\.?\[\.\.\.\1\]\.reverse\(\)\]")


def write_thinker_symbol_chars(text: str, phases: Sequence[str]) -> Optional[str]:
    """Replace every spinner glyph array with *phases*."""
    locations = find_all(SYMBOL_CHARS_PATTERN, text)
    if not locations:
        logger.warning("patch: thinker_symbol_chars: failed to find match")
        return None
    serialized = to_js(list(phases))
    edits = [ModificationEdit(loc.start_index, loc.end_index, serialized)
             for loc in locations]
    return apply_edits(text, edits, diff_label="thinker_symbol_chars")


def write_thinker_symbol_speed(text: str, interval_ms: int) -> Optional[str]:
    """Set the animation timer interval."""
    location = find_pattern("thinker_symbol_speed", SYMBOL_TIMER_PATTERN, text, group=2)
    if location is None:
        return None
    return replace_span(text, location.start_index, location.end_index,
                        str(int(interval_ms)), diff_label="thinker_symbol_speed")


def write_spinner_no_freeze(text: str) -> Optional[str]:
    """Drop the early return that stops the animation when output stalls."""
    location = find_pattern("spinner_no_freeze", SYMBOL_TIMER_PATTERN, text, group=1)
    if location is None:
        return None
    return replace_span(text, location.start_index, location.end_index, "",
                        diff_label="spinner_no_freeze")


def write_thinker_symbol_width(text: str, phases: Sequence[str]) -> Optional[str]:
    """Widen the glyph box so the longest phase fits."""
    location = find_pattern("thinker_symbol_width", SYMBOL_WIDTH_PATTERN, text)
    if location is None:
        return None
    width = max((len(p) for p in phases), default=1) + 1
    return replace_span(text, location.start_index, location.end_index,
                        f'{{flexWrap:"wrap",height:1,width:{width}}}',
                        diff_label="thinker_symbol_width")


def write_thinker_symbol_mirror(text: str, enable_mirror: bool) -> Optional[str]:
    location = find_pattern("thinker_symbol_mirror", MIRROR_PATTERN, text)
    if location is None:
        return None
    var = location.identifiers[0]
    new_array = f"=[...{var},...[...{var}].reverse()]" if enable_mirror else f"=[...{var}]"
    return replace_span(text, location.start_index, location.end_index,
                        new_array, diff_label="thinker_symbol_mirror")
