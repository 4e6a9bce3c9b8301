"""
Models: extra entries in the /model picker, friendly-name aliases, and
per-subagent model overrides.
"""

from __future__ import annotations

import json
import logging
import re
from typing import NamedTuple, Optional

from ..editing.literals import LiteralStyle, encode_for_style
from ..editing.locations import (
    LocationResult,
    escape_ident,
    last_match,
    replace_span,
    scan_balanced,
    to_js,
)

logger = logging.getLogger(__name__)


class CustomModel(NamedTuple):
    value: str
    label: str
    description: str
    slug: str


CUSTOM_MODELS = [
    CustomModel("claude-opus-4-5-20251101", "Opus 4.5", "Claude Opus 4.5 (November 2025)", "opus-4.5"),
    CustomModel("claude-sonnet-4-5-20250929", "Sonnet 4.5", "Claude Sonnet 4.5 (September 2025)", "sonnet-4.5"),
    CustomModel("claude-opus-4-1-20250805", "Opus 4.1", "Claude Opus 4.1 (August 2025)", "opus-4.1"),
    CustomModel("claude-opus-4-20250514", "Opus 4", "Claude Opus 4 (May 2025)", "opus-4"),
    CustomModel("claude-sonnet-4-20250514", "Sonnet 4", "Claude Sonnet 4 (May 2025)", "sonnet-4"),
    CustomModel("claude-3-7-sonnet-20250219", "Sonnet 3.7", "Claude 3.7 Sonnet (February 2025)", "sonnet-3.7"),
    CustomModel("claude-3-5-sonnet-20241022", "Sonnet 3.5 (October)", "Claude 3.5 Sonnet (October 2024)", "sonnet-3.5-october"),
    CustomModel("claude-3-5-haiku-20241022", "Haiku 3.5", "Claude 3.5 Haiku (October 2024)", "haiku-3.5"),
    CustomModel("claude-3-5-sonnet-20240620", "Sonnet 3.5 (June)", "Claude 3.5 Sonnet (June 2024)", "sonnet-3.5-june"),
    CustomModel("claude-3-haiku-20240307", "Haiku 3", "Claude 3 Haiku (March 2024)", "haiku-3"),
    CustomModel("claude-3-opus-20240229", "Opus 3", "Claude 3 Opus (February 2024)", "opus-3"),
]


# ------------------------------------------------------------------
# model_selector
# ------------------------------------------------------------------

CUSTOM_MODEL_PUSH_PATTERN = re.compile(
    r"\b([$\w]+)\.push\(\{value:[$\w]+,label:[$\w]+,description:\"Custom model\"\}\)"
)
MODEL_LIST_LOOKBACK = 600


def find_model_list_insertion(text: str) -> Optional[LocationResult]:
    """Point just after ``function f(){let LIST=...;``; identifiers: ``[LIST]``."""
    push = CUSTOM_MODEL_PUSH_PATTERN.search(text)
    if push is None:
        logger.warning("patch: model_selector: failed to find match")
        return None
    list_var = push.group(1)
    window_start = max(0, push.start() - MODEL_LIST_LOOKBACK)
    decl_pattern = re.compile(
        r"\bfunction [$\w]+\(\)\{let " + escape_ident(list_var) + r"=.+?;"
    )
    decl = last_match(decl_pattern, text[window_start:push.start()])
    if decl is None:
        logger.warning("patch: model_selector: failed to find declaration of %s", list_var)
        return None
    index = window_start + decl.end()
    return LocationResult(index, index, [list_var])


def write_model_selector(text: str, models=CUSTOM_MODELS) -> Optional[str]:
    location = find_model_list_insertion(text)
    if location is None:
        return None
    list_var = location.identifiers[0]
    inject = "".join(
        f"{list_var}.push({to_js({'value': m.value, 'label': m.label, 'description': m.description})});"
        for m in models
    )
    return replace_span(text, location.start_index, location.end_index, inject,
                        diff_label="model_selector")


# ------------------------------------------------------------------
# known_model_names / model_switch_mapping
# ------------------------------------------------------------------

KNOWN_NAMES_MARKER = '"sonnet[1m]"'
SWITCH_CASE_MARKER = 'case"sonnet[1m]"'


def find_known_model_names(text: str) -> Optional[LocationResult]:
    """Span of the ``NAME=[...]`` array literal holding ``"sonnet[1m]"``."""
    marker = text.find(KNOWN_NAMES_MARKER)
    if marker == -1:
        logger.warning("patch: known_model_names: failed to find match")
        return None
    open_index = text.rfind("[", 0, marker)
    before = text[max(0, open_index - 20):open_index].rstrip() if open_index != -1 else ""
    if not before.endswith("="):
        logger.warning("patch: known_model_names: failed to find array assignment")
        return None
    end = scan_balanced(text, open_index)
    if end is None:
        logger.warning("patch: known_model_names: failed to find array end")
        return None
    return LocationResult(open_index, end)


def write_known_model_names(text: str, models=CUSTOM_MODELS) -> Optional[str]:
    location = find_known_model_names(text)
    if location is None:
        return None
    try:
        names = json.loads(location.slice(text))
    except ValueError:
        logger.warning("patch: known_model_names: failed to parse array")
        return None
    for model in models:
        if model.slug not in names:
            names.append(model.slug)
    return replace_span(text, location.start_index, location.end_index, to_js(names),
                        diff_label="known_model_names")


def find_model_switch(text: str) -> Optional[LocationResult]:
    """Span of the ``{...}`` body of the friendly-name switch."""
    case_index = text.find(SWITCH_CASE_MARKER)
    if case_index == -1:
        logger.warning("patch: model_switch_mapping: failed to find match")
        return None
    open_index = text.rfind("{", 0, case_index)
    end = scan_balanced(text, open_index, "{", "}") if open_index != -1 else None
    if end is None:
        logger.warning("patch: model_switch_mapping: failed to find switch body")
        return None
    return LocationResult(open_index, end)


def write_model_switch_mapping(text: str, models=CUSTOM_MODELS) -> Optional[str]:
    location = find_model_switch(text)
    if location is None:
        return None
    close = location.end_index - 1
    cases = "".join(f"case{to_js(m.slug)}:return{to_js(m.value)};" for m in models)
    if not text[location.start_index:close].rstrip().endswith((";", "{")):
        cases = ";" + cases
    return replace_span(text, close, close, cases, diff_label="model_switch_mapping")


# ------------------------------------------------------------------
# subagent_models
# ------------------------------------------------------------------

def _agent_model_pattern(agent_type: str) -> re.Pattern:
    return re.compile(
        r"(\bagentType\s*:\s*\"" + re.escape(agent_type)
        + r"\"\s*,[\s\S]{1,2500}?\bmodel\s*:\s*\")[^\"]+(\")"
    )


PLAN_PATTERN = _agent_model_pattern("Plan")
EXPLORE_PATTERN = _agent_model_pattern("Explore")
GENERAL_PURPOSE_PATTERN = re.compile(
    r"(\b[$\w]+\s*=\s*\{agentType\s*:\s*\"general-purpose\"[\s\S]{0,2500}?)(\})"
)
_MODEL_PROP_PATTERN = re.compile(r"(model\s*:\s*\")[^\"]+(\")")


def _set_agent_model(text: str, name: str, pattern: re.Pattern,
                     model: str) -> tuple[str, bool]:
    match = pattern.search(text)
    if match is None:
        logger.warning("patch: subagent_models: %s: failed to find match", name)
        return text, False
    value = encode_for_style(model, LiteralStyle.DOUBLE_QUOTED)
    start, end = match.end(1), match.start(2)
    if text[start:end] == value:
        return text, True
    return replace_span(text, start, end, value, diff_label="subagent_models"), True


def _set_general_purpose_model(text: str, model: str) -> tuple[str, bool]:
    match = GENERAL_PURPOSE_PATTERN.search(text)
    if match is None:
        logger.warning("patch: subagent_models: general-purpose: failed to find match")
        return text, False
    body = match.group(1)
    value = encode_for_style(model, LiteralStyle.DOUBLE_QUOTED)
    if "model:" in body.replace(" ", ""):
        new_body = _MODEL_PROP_PATTERN.sub(lambda m: m.group(1) + value + m.group(2),
                                           body, count=1)
    else:
        separator = "" if body.strip().endswith(",") else ","
        new_body = f'{body}{separator}model:"{value}"'
    if new_body == body:
        return text, True
    return replace_span(text, match.start(1), match.end(1), new_body,
                        diff_label="subagent_models"), True


def write_subagent_models(text: str, models) -> Optional[str]:
    """Override the model of the Plan, Explore and general-purpose agents.

    *models* is a ``SubagentModels`` settings object; unset entries are left
    alone.  Returns ``None`` only when none of the configured agents was
    found; agents that already use the configured model count as found.
    """
    found = False
    if models.plan:
        text, hit = _set_agent_model(text, "Plan", PLAN_PATTERN, models.plan)
        found = found or hit
    if models.explore:
        text, hit = _set_agent_model(text, "Explore", EXPLORE_PATTERN, models.explore)
        found = found or hit
    if models.general_purpose:
        text, hit = _set_general_purpose_model(text, models.general_purpose)
        found = found or hit
    return text if found else None
