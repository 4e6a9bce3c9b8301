"""
Feature toggles: small scalar, conditional and deletion patches.

Each writer replaces only the exact sub-expression it targets so the
surrounding control flow stays intact.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..editing.locations import (
    LocationResult,
    ModificationEdit,
    apply_edits,
    find_all,
    find_near_anchor,
    find_pattern,
    replace_span,
)

logger = logging.getLogger(__name__)


def _replace(text: str, name: str, location: Optional[LocationResult],
             new_content: str) -> Optional[str]:
    if location is None:
        return None
    return replace_span(text, location.start_index, location.end_index,
                        new_content, diff_label=name)


# ------------------------------------------------------------------
# verbose_property
# ------------------------------------------------------------------

SPINNER_ELEMENT_PATTERN = re.compile(
    r"\bcreateElement\([$\w]+,\{[^}]+spinnerTip[^}]+overrideMessage[^}]+\}"
)
VERBOSE_PATTERN = re.compile(r"verbose:[^,}]+")


def write_verbose_property(text: str) -> Optional[str]:
    """Force ``verbose:true`` on the spinner element."""
    element = SPINNER_ELEMENT_PATTERN.search(text)
    if element is None:
        logger.warning("patch: verbose_property: failed to find match")
        return None
    verbose = VERBOSE_PATTERN.search(element.group(0))
    if verbose is None:
        logger.warning("patch: verbose_property: failed to find verbose prop")
        return None
    start = element.start() + verbose.start()
    return _replace(text, "verbose_property",
                    LocationResult(start, start + len(verbose.group(0))),
                    "verbose:true")


# ------------------------------------------------------------------
# ignore_max_subscription
# ------------------------------------------------------------------

SUBSCRIPTION_ANCHOR = "subscription, no need to monitor cost"
SUBSCRIPTION_CHECK_PATTERN = re.compile(r"\bif\(([$\w]+)\(\)\)")


def write_ignore_max_subscription(text: str) -> Optional[str]:
    """Make ``/cost`` always show the detailed breakdown."""
    location = find_near_anchor("ignore_max_subscription", text, SUBSCRIPTION_ANCHOR,
                                SUBSCRIPTION_CHECK_PATTERN, before=60)
    return _replace(text, "ignore_max_subscription", location, "if(!1)")


# ------------------------------------------------------------------
# suppress_rate_limit_options
# ------------------------------------------------------------------

RATE_LIMIT_PATTERN = re.compile(
    r"\bshowAllInTranscript:[$\w]+,agentDefinitions:[$\w]+,onOpenRateLimitOptions:([$\w]+)"
)


def write_suppress_rate_limit_options(text: str) -> Optional[str]:
    location = find_pattern("suppress_rate_limit_options", RATE_LIMIT_PATTERN, text, group=1)
    return _replace(text, "suppress_rate_limit_options", location, "()=>{}")


# ------------------------------------------------------------------
# hide_startup_banner
# ------------------------------------------------------------------

STARTUP_BANNER_PATTERN = re.compile(
    r",[$\w]+\.createElement\([$\w]+,\{isBeforeFirstMessage:!1\}\),"
)


def write_hide_startup_banner(text: str) -> Optional[str]:
    location = find_pattern("hide_startup_banner", STARTUP_BANNER_PATTERN, text)
    return _replace(text, "hide_startup_banner", location, ",")


# ------------------------------------------------------------------
# hide_ctrl_g_to_edit / hide_ctrl_g_to_edit_prompt
# ------------------------------------------------------------------

EDITOR_HINT_PATTERN = re.compile(
    r"\bif\(([$\w]+&&[$\w]+)\)[$\w]+\(\"tengu_external_editor_hint_shown\","
)
EDIT_PROMPT_ANCHOR = "ctrl-g to edit prompt in "
EDIT_PROMPT_PATTERN = re.compile(r":[$\w]+&&(?=[$\w]+\.createElement)")


def write_hide_ctrl_g_to_edit(text: str) -> Optional[str]:
    location = find_pattern("hide_ctrl_g_to_edit", EDITOR_HINT_PATTERN, text, group=1)
    return _replace(text, "hide_ctrl_g_to_edit", location, "false")


def write_hide_ctrl_g_to_edit_prompt(text: str) -> Optional[str]:
    location = find_near_anchor("hide_ctrl_g_to_edit_prompt", text, EDIT_PROMPT_ANCHOR,
                                EDIT_PROMPT_PATTERN, before=150)
    return _replace(text, "hide_ctrl_g_to_edit_prompt", location, ":false&&")


# ------------------------------------------------------------------
# increase_file_read_limit
# ------------------------------------------------------------------

FILE_READ_LIMIT_PATTERN = re.compile(r"=(25000),[\s\S]{0,100}<system-reminder>")
FILE_READ_LIMIT = 1000000


def write_increase_file_read_limit(text: str) -> Optional[str]:
    location = find_pattern("increase_file_read_limit", FILE_READ_LIMIT_PATTERN, text, group=1)
    return _replace(text, "increase_file_read_limit", location, str(FILE_READ_LIMIT))


# ------------------------------------------------------------------
# suppress_line_numbers
# ------------------------------------------------------------------

LINE_NUMBER_PATTERN = re.compile(
    r"\bif\(([$\w]+)\.length>=\d+\)return`\$\{\1\}(?:→|\\u2192)\$\{([$\w]+)\}`;"
    r"return`\$\{\1\.padStart\(\d+,\" \"\)\}(?:→|\\u2192)\$\{\2\}`"
)


def write_suppress_line_numbers(text: str) -> Optional[str]:
    """Return file content without the ``N→`` line prefixes."""
    location = find_pattern("suppress_line_numbers", LINE_NUMBER_PATTERN, text)
    if location is None:
        return None
    return _replace(text, "suppress_line_numbers", location,
                    f"return {location.identifiers[1]}")


# ------------------------------------------------------------------
# thinking_visibility
# ------------------------------------------------------------------

THINKING_NEW_PATTERN = re.compile(
    r"(case\"thinking\":)\{if\(![$\w]+&&![$\w]+\)return null;"
    r"(return [$\w]+\.createElement\([$\w]+,\{addMargin:[$\w]+,param:[$\w]+,isTranscriptMode:)"
    r"([$\w]+)"
    r"(,verbose:[$\w]+,hideInTranscript:[$\w]+&&!\(![$\w]+\|\|[$\w]+===[$\w]+\)\})\)\}"
)
THINKING_OLD_PATTERN = re.compile(
    r"(case\"thinking\":)if\([$\w!&]+\)return null;"
    r"([$\w.]+\.createElement\([$\w]+,\{addMargin:[$\w]+,param:[$\w]+,isTranscriptMode:)"
    r"([$\w]+)"
    r"(,verbose:[$\w]+\s*\})\)"
)


def write_thinking_visibility(text: str) -> Optional[str]:
    """Render thinking blocks inline, as transcript mode does."""
    match = THINKING_NEW_PATTERN.search(text)
    if match is not None:
        new_content = f"{match.group(1)}{{{match.group(2)}true{match.group(4)})}}"
    else:
        match = THINKING_OLD_PATTERN.search(text)
        if match is None:
            logger.warning("patch: thinking_visibility: failed to find match")
            return None
        new_content = f"{match.group(1)}{match.group(2)}true{match.group(4)})"
    return _replace(text, "thinking_visibility",
                    LocationResult(match.start(), match.end()), new_content)


# ------------------------------------------------------------------
# show_more_items
# ------------------------------------------------------------------

VISIBLE_OPTION_COUNT_PATTERN = re.compile(r"\bvisibleOptionCount:[$\w]+=(\d+)")


def write_show_more_items(text: str, count: int = 25) -> Optional[str]:
    """Raise every select menu's default visible option count."""
    locations = find_all(VISIBLE_OPTION_COUNT_PATTERN, text, group=1)
    if not locations:
        logger.warning("patch: show_more_items: failed to find match")
        return None
    edits = [ModificationEdit(loc.start_index, loc.end_index, str(count))
             for loc in locations]
    return apply_edits(text, edits, diff_label="show_more_items")
