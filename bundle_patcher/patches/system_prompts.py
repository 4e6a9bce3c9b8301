"""
System prompts: swap stock prompt text in the bundle for the user's
markdown versions.

Per prompt: match the template built from the reference pieces, put the
captured minified names into the user's content, fit the result to the
enclosing literal, then replace the matched span.  A prompt that cannot be
found, or whose content would terminate its template literal, is skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..editing.literals import (
    LiteralStyle,
    build_prompt_pattern,
    captured_identifiers,
    classify_context,
    detect_unicode_escaping,
    encode_for_style,
    escape_non_ascii,
    find_unescaped_backticks,
    format_backtick_error,
    interpolate_prompt,
)
from ..editing.locations import replace_span
from ..hash_index import compute_md5_hash

logger = logging.getLogger(__name__)


@dataclass
class PromptResults:
    matched: list[str] = field(default_factory=list)
    missed: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    applied_hashes: dict[str, str] = field(default_factory=dict)
    original_chars: int = 0
    new_chars: int = 0

    @property
    def char_delta(self) -> int:
        """Positive when the customised prompts are shorter than stock."""
        return self.original_chars - self.new_chars

    def summary(self) -> Optional[str]:
        delta = self.char_delta
        if delta > 0:
            return f"system prompts: {delta} fewer chars than original"
        if delta < 0:
            return f"system prompts: {-delta} more chars than original"
        return None


def _reject_backticks(prompt, content: str) -> bool:
    """Log and return True if *content* would break out of a template literal."""
    found = find_unescaped_backticks(content)
    if not found:
        return False
    lines = prompt.content.split("\n")
    path = prompt.source_path or f"{prompt.prompt_id}.md"
    for line, columns in sorted(found.items()):
        line_text = lines[line - 1] if line - 1 < len(lines) else ""
        logger.warning(format_backtick_error(
            path, line + prompt.content_line_offset, line_text, columns))
    return True


def apply_prompt(text: str, prompt, escape_unicode: bool,
                 results: PromptResults) -> str:
    """Apply one descriptor; returns *text* unchanged if it was skipped."""
    pattern = build_prompt_pattern(prompt.pieces, prompt.identifier_positions)
    match = pattern.search(text)
    if match is None:
        logger.warning("Could not find system prompt %r in the bundle", prompt.name or prompt.prompt_id)
        results.missed.append(prompt.prompt_id)
        return text

    captured = captured_identifiers(match, prompt.identifier_positions)
    content = interpolate_prompt(prompt.content, prompt.identifier_map, captured)

    style = classify_context(text, match.start())
    if style is LiteralStyle.BACKTICK_TEMPLATE:
        if _reject_backticks(prompt, content):
            results.rejected.append(prompt.prompt_id)
            return text
    else:
        content = encode_for_style(content, style)
    if escape_unicode:
        content = escape_non_ascii(content)

    baseline = prompt.baseline.strip()
    results.original_chars += len(baseline)
    results.new_chars += len(prompt.content)
    if len(baseline) != len(prompt.content):
        logger.debug("prompt %s: %d chars stock, %d chars customised",
                     prompt.prompt_id, len(baseline), len(prompt.content))
    logger.debug("prompt %s: matched at %d (%s literal), captured %s",
                 prompt.prompt_id, match.start(), style.value, captured)

    text = replace_span(text, match.start(), match.end(), content,
                        diff_label=f"system_prompts:{prompt.prompt_id}")
    results.matched.append(prompt.prompt_id)
    results.applied_hashes[prompt.prompt_id] = compute_md5_hash(prompt.content)
    return text


def write_system_prompts(text: str, prompts: Sequence,
                         escape_unicode: Optional[bool] = None,
                         results: Optional[PromptResults] = None) -> Optional[str]:
    """Apply every prompt descriptor.

    *escape_unicode* defaults to whether the bundle already stores non-ASCII
    text as ``\\uXXXX`` escapes.  Returns ``None`` when no prompt matched.
    """
    if results is None:
        results = PromptResults()
    if not prompts:
        return None
    if escape_unicode is None:
        escape_unicode = detect_unicode_escaping(text)
        if escape_unicode:
            logger.debug("bundle uses unicode escapes; escaping non-ASCII prompt text")

    for prompt in prompts:
        text = apply_prompt(text, prompt, escape_unicode, results)

    return text if results.matched else None
