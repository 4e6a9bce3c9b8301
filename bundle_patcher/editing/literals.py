"""
Literal reconciliation: make injected text fit the string literal it lands in.

A prompt in the bundle can live inside a double-quoted, single-quoted or
backtick template literal (or, for whole expressions, in plain code).  The
replacement has to be re-encoded for that literal so the file still parses.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)

CLASSIFY_WINDOW = 4000

_IDENT_CHARS = r"[$\w]"
_UNICODE_ESCAPE_RE = re.compile(r"\\u[0-9a-fA-F]{4}")


class LiteralStyle(enum.Enum):
    PLAIN_CODE = "plain"
    DOUBLE_QUOTED = "double"
    SINGLE_QUOTED = "single"
    BACKTICK_TEMPLATE = "backtick"


_DELIMITER_STYLES = {
    '"': LiteralStyle.DOUBLE_QUOTED,
    "'": LiteralStyle.SINGLE_QUOTED,
    "`": LiteralStyle.BACKTICK_TEMPLATE,
}


def _is_escaped(text: str, index: int) -> bool:
    """True if the character at *index* is preceded by an odd run of backslashes."""
    count = 0
    i = index - 1
    while i >= 0 and text[i] == "\\":
        count += 1
        i -= 1
    return count % 2 == 1


def classify_context(text: str, offset: int,
                     window: int = CLASSIFY_WINDOW) -> LiteralStyle:
    """Literal style enclosing *offset*.

    Scans backwards (at most *window* characters) for the nearest unescaped
    quote or backtick.  When none is found the style is ambiguous; plain code
    is assumed and a warning is logged.
    """
    lower = max(0, offset - window)
    i = min(offset, len(text)) - 1
    while i >= lower:
        style = _DELIMITER_STYLES.get(text[i])
        if style is not None and not _is_escaped(text, i):
            return style
        i -= 1
    logger.warning(
        "could not determine literal style at offset %d; treating as plain code",
        offset,
    )
    return LiteralStyle.PLAIN_CODE


def _escape_unescaped(text: str, target: str) -> str:
    """Backslash-escape every occurrence of *target* that is not already escaped."""
    out: list[str] = []
    backslashes = 0
    i = 0
    n = len(text)
    width = len(target)
    while i < n:
        if text.startswith(target, i) and backslashes % 2 == 0:
            out.append("\\" + target)
            i += width
            backslashes = 0
            continue
        ch = text[i]
        backslashes = backslashes + 1 if ch == "\\" else 0
        out.append(ch)
        i += 1
    return "".join(out)


def _escape_newlines(text: str) -> str:
    return text.replace("\r\n", "\\n").replace("\r", "\\r").replace("\n", "\\n")


def encode_for_style(text: str, style: LiteralStyle) -> str:
    """Encode human-authored *text* for the body of a *style* literal.

    Backslashes are left alone: the text is expected to already use JS escape
    sequences where it needs them.
    """
    if style is LiteralStyle.DOUBLE_QUOTED:
        return _escape_newlines(_escape_unescaped(text, '"'))
    if style is LiteralStyle.SINGLE_QUOTED:
        return _escape_newlines(_escape_unescaped(text, "'"))
    if style is LiteralStyle.BACKTICK_TEMPLATE:
        return _escape_unescaped(_escape_unescaped(text, "`"), "${")
    return text


def escape_non_ascii(text: str) -> str:
    """Replace every non-ASCII character with a ``\\uXXXX`` escape.

    Characters outside the BMP become a surrogate pair, as a JS engine would
    store them.
    """
    out: list[str] = []
    for ch in text:
        code = ord(ch)
        if code < 0x80:
            out.append(ch)
        elif code <= 0xFFFF:
            out.append(f"\\u{code:04x}")
        else:
            code -= 0x10000
            out.append(f"\\u{0xD800 + (code >> 10):04x}")
            out.append(f"\\u{0xDC00 + (code & 0x3FF):04x}")
    return "".join(out)


def detect_unicode_escaping(text: str) -> bool:
    """Heuristic: does the bundle store non-ASCII text as ``\\uXXXX`` escapes?

    Bun-compiled native builds do; plain npm bundles usually do not.  Any
    ``\\uXXXX``-looking sequence counts, so ordinary content that happens to
    contain one will also trip it.
    """
    return _UNICODE_ESCAPE_RE.search(text) is not None


# ------------------------------------------------------------------
# Template pieces
# ------------------------------------------------------------------

def _lookup(identifier_map: Mapping, position) -> str:
    if position in identifier_map:
        return identifier_map[position]
    return identifier_map[str(position)]


def reconstruct_baseline(
    pieces: Sequence[str],
    identifier_positions: Sequence,
    identifier_map: Mapping,
) -> str:
    """Rebuild the original template text with semantic variable names.

    ``pieces[0] + name(positions[0]) + pieces[1] + ...``; used to compare the
    stock prompt with a user's customised version.
    """
    parts = [pieces[0] if pieces else ""]
    for index, position in enumerate(identifier_positions):
        parts.append(_lookup(identifier_map, position))
        if index + 1 < len(pieces):
            parts.append(pieces[index + 1])
    return "".join(parts)


def _hex_class(digit: str) -> str:
    if digit.isalpha():
        return f"[{digit.lower()}{digit.upper()}]"
    return digit


def _unicode_escape_pattern(ch: str) -> str:
    escaped = escape_non_ascii(ch)
    parts = []
    for chunk in escaped.split("\\u")[1:]:
        parts.append(r"\\u" + "".join(_hex_class(d) for d in chunk))
    return "".join(parts)


def _piece_pattern(piece: str) -> str:
    """Regex for a literal piece that tolerates the ways a bundle may encode it."""
    out: list[str] = []
    for ch in piece:
        if ch == "\n":
            out.append(r"(?:\n|\\n)")
        elif ch == "\t":
            out.append(r"(?:\t|\\t)")
        elif ch in "\"'`":
            out.append(r"\\?" + re.escape(ch))
        elif ord(ch) > 0x7F:
            out.append(f"(?:{re.escape(ch)}|{_unicode_escape_pattern(ch)})")
        else:
            out.append(re.escape(ch))
    return "".join(out)


def _group_name(position) -> str:
    return "v" + re.sub(r"\W", "_", str(position))


def build_prompt_pattern(
    pieces: Sequence[str],
    identifier_positions: Sequence,
) -> re.Pattern:
    """Compile the matching regex for a prompt template.

    Literal pieces are matched tolerantly (see ``_piece_pattern``); each
    identifier slot becomes a named ``[$\\w]+`` group and a slot that repeats
    an earlier identifier becomes a backreference to it.
    """
    seen: set[str] = set()
    parts: list[str] = []
    first_piece = pieces[0] if pieces else ""
    if not first_piece and identifier_positions:
        parts.append(r"(?<![$\w])")
    parts.append(_piece_pattern(first_piece))
    for index, position in enumerate(identifier_positions):
        name = _group_name(position)
        if name in seen:
            parts.append(f"(?P={name})")
        else:
            seen.add(name)
            parts.append(f"(?P<{name}>{_IDENT_CHARS}+)")
        if index + 1 < len(pieces):
            parts.append(_piece_pattern(pieces[index + 1]))
    return re.compile("".join(parts), re.S)


def captured_identifiers(match: re.Match, identifier_positions: Sequence) -> dict[str, str]:
    """Map each identifier position to the name captured for it."""
    captured: dict[str, str] = {}
    for position in identifier_positions:
        key = str(position)
        if key not in captured:
            captured[key] = match.group(_group_name(position))
    return captured


def interpolate_prompt(
    content: str,
    identifier_map: Mapping,
    captured: Mapping[str, str],
) -> str:
    """Swap semantic variable names in *content* for the captured identifiers.

    Substitution goes through a replacer function so that captured names such
    as ``J$$`` are inserted verbatim rather than read as ``$`` escapes.
    """
    replacements: dict[str, str] = {}
    for position, minified in captured.items():
        semantic = _lookup(identifier_map, position)
        replacements.setdefault(semantic, minified)
    if not replacements:
        return content

    names = sorted(replacements, key=len, reverse=True)
    pattern = re.compile(
        r"(?<![$\w])(" + "|".join(re.escape(n) for n in names) + r")(?![$\w])"
    )
    return pattern.sub(lambda m: replacements[m.group(1)], content)


# ------------------------------------------------------------------
# Template-literal safety
# ------------------------------------------------------------------

def find_unescaped_backticks(text: str) -> dict[int, list[int]]:
    """Locate backticks that would terminate an enclosing template literal.

    Returns ``{line: [columns]}`` with 1-based numbers.  Backticks inside a
    ``${...}`` interpolation are part of a nested expression and are ignored.
    """
    found: dict[int, list[int]] = {}
    depth = 0
    line = 1
    column = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        column += 1
        if ch == "\n":
            line += 1
            column = 0
        elif depth == 0 and ch == "$" and text.startswith("${", i) and not _is_escaped(text, i):
            depth = 1
            i += 2
            column += 1
            continue
        elif depth > 0:
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
        elif ch == "`" and not _is_escaped(text, i):
            found.setdefault(line, []).append(column)
        i += 1
    return found


def format_backtick_error(file_path: str, line: int, line_text: str,
                          columns: Sequence[int]) -> str:
    """Human-readable diagnostic pointing at unescaped backticks."""
    carets = [" "] * (max(columns) if columns else 0)
    for col in columns:
        carets[col - 1] = "^"
    cols = ", ".join(str(c) for c in columns)
    return (
        f"{file_path}:{line}: unescaped backtick at column {cols} would end "
        f"the template literal; escape it as \\`\n"
        f"  {line_text}\n"
        f"  {''.join(carets)}"
    )
