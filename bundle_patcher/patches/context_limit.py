"""
Context limit: let ``CLAUDE_CODE_CONTEXT_LIMIT`` override the model's
context window while keeping the bundle's own return path as the fallback.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..editing.locations import LocationResult, replace_span

logger = logging.getLogger(__name__)

ENV_VAR = "CLAUDE_CODE_CONTEXT_LIMIT"

OVERRIDE = (
    f"if(process.env.{ENV_VAR})"
    f"return Number(process.env.{ENV_VAR});"
)

# function X(A,Q){if(A.includes("[1m]")||Q?.includes(K)&&Y(A))return 1e6;return Z}
NEW_PATTERN = re.compile(
    r"\bfunction ([$\w]+)\(([$\w,]+)\)\{"
    r"if\([$\w]+\.includes\(\"\[(?:1m|2m)\]\"\)\|\|[$\w]+\?\.includes\([$\w]+\)"
    r"&&[$\w]+\([$\w]+\)\)return 1e6;return ([$\w]+)\}"
)

# function X(A){if(A.includes("[1m]"))return 1e6;return 200000}
OLD_PATTERN = re.compile(
    r"\bfunction ([$\w]+)\(([$\w]*)\)\{"
    r"((?:if\([$\w]+\.includes\(\"\[2m\]\"\)\)return 2000000;)?"
    r"(?:if\([$\w]+\.includes\(\"\[1m\]\"\)\)return 1e6;)?"
    r"return 200000)\}"
)


def find_context_limit(text: str) -> Optional[LocationResult]:
    """Insertion point just inside the context-limit function body."""
    match = NEW_PATTERN.search(text) or OLD_PATTERN.search(text)
    if match is None:
        logger.warning("patch: context_limit: failed to find match")
        return None
    body_start = text.index("{", match.start()) + 1
    return LocationResult(body_start, body_start, [match.group(1)])


def write_context_limit(text: str) -> Optional[str]:
    location = find_context_limit(text)
    if location is None:
        return None
    return replace_span(text, location.start_index, location.end_index,
                        OVERRIDE, diff_label="context_limit")
