"""
Toolsets: named tool allow-lists.

Two edits make the app honour them: a ``toolset`` field is added to every
app-state initialiser, and the main component's tool-list ``useMemo`` is
rewritten to filter by the active toolset.
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
    replace_span,
    to_js,
)

logger = logging.getLogger(__name__)

THINKING_ENABLED_PATTERN = re.compile(r"\bthinkingEnabled:([$\w]+)\(\)")

APP_COMPONENT_PATTERN = re.compile(
    r"\bfunction ([$\w]+)\(\{(?:(?:commands|debug|initialPrompt|initialTools|initialMessages"
    r"|initialCheckpoints|initialFileHistorySnapshots|mcpClients|dynamicMcpConfig"
    r"|autoConnectIdeFlag|strictMcpConfig|systemPrompt|appendSystemPrompt|onBeforeQuery"
    r"|onTurnComplete|disabled):[$\w]+(?:=(?:[^,]+,|[^}]+\})|[,}]))+\)"
)
APP_STATE_PATTERN = re.compile(r"\blet\[([$\w]+),[$\w]+\]=([$\w]+)\(\)")
TOOLS_MEMO_PATTERN = re.compile(
    r"\blet ([$\w]+)=([$\w]+)\.useMemo\(\(\)=>([$\w]+)\(([$\w]+)\),\[\4\]\)"
)
APP_STATE_WINDOW = 20
TOOLS_MEMO_WINDOW = 300


def find_app_body_start(text: str) -> Optional[int]:
    """Index just past the main app component's signature (longest match)."""
    longest = None
    for match in APP_COMPONENT_PATTERN.finditer(text):
        if longest is None or len(match.group(0)) > len(longest.group(0)):
            longest = match
    if longest is None:
        logger.warning("patch: toolsets: failed to find app component")
        return None
    return longest.end()


def find_app_state_var(text: str, body_start: int) -> Optional[str]:
    match = APP_STATE_PATTERN.search(text, body_start, body_start + APP_STATE_WINDOW)
    if match is None:
        logger.warning("patch: toolsets: failed to find app state")
        return None
    return match.group(1)


def find_tools_memo(text: str, body_start: int) -> Optional[LocationResult]:
    """identifiers: ``[output_var, react_var, filter_fn, permission_context]``."""
    match = TOOLS_MEMO_PATTERN.search(text, body_start, body_start + TOOLS_MEMO_WINDOW)
    if match is None:
        logger.warning("patch: toolsets: failed to find tools useMemo")
        return None
    return LocationResult(match.start(), match.end(), list(match.groups()))


def write_toolset_app_state(text: str, default_toolset: Optional[str]) -> Optional[str]:
    """Add ``toolset:<default>`` after every ``thinkingEnabled:f()``."""
    locations = find_all(THINKING_ENABLED_PATTERN, text)
    if not locations:
        logger.warning("patch: toolsets: failed to find thinkingEnabled")
        return None
    value = to_js(default_toolset) if default_toolset else "undefined"
    edits = [ModificationEdit(loc.end_index, loc.end_index, f",toolset:{value}")
             for loc in locations]
    return apply_edits(text, edits, diff_label="toolsets")


def build_tools_memo(location: LocationResult, state_var: str, toolsets: Sequence) -> str:
    output_var, react_var, filter_fn, context_var = location.identifiers
    mapping = to_js({ts.name: ts.allowed_tools for ts in toolsets})
    all_tools = f"{filter_fn}({context_var})"
    return (
        f"let {output_var}={react_var}.useMemo(()=>{{"
        f"const toolsets={mapping};"
        f"if(toolsets.hasOwnProperty({state_var}.toolset)){{"
        f"const allowedTools=toolsets[{state_var}.toolset];"
        f"if(allowedTools===\"*\")return {all_tools};"
        f"return {all_tools}.filter(toolDef=>allowedTools.includes(toolDef.name))}}"
        f"return {all_tools}}},[{filter_fn},{state_var}.toolset])"
    )


def write_toolsets(text: str, toolsets: Sequence,
                   default_toolset: Optional[str] = None) -> Optional[str]:
    if not toolsets:
        return None
    text = write_toolset_app_state(text, default_toolset)
    if text is None:
        return None

    body_start = find_app_body_start(text)
    if body_start is None:
        return None
    state_var = find_app_state_var(text, body_start)
    memo = find_tools_memo(text, body_start)
    if state_var is None or memo is None:
        return None
    return replace_span(text, memo.start_index, memo.end_index,
                        build_tools_memo(memo, state_var, toolsets),
                        diff_label="toolsets")
