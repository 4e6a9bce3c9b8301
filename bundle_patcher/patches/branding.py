"""
Branding: welcome text, the sign-in banner and ``--version`` output.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..editing.locations import (
    LocationResult,
    ModificationEdit,
    apply_edits,
    find_chalk_var,
    find_pattern,
    replace_span,
    to_js,
)

logger = logging.getLogger(__name__)

WELCOME_PATTERN = re.compile(
    r"\" Welcome to \",[$\w]+\.createElement\([^,]+,\{bold:!0\},(\"Claude Code\"),\"!\""
)

# The ASCII-art logo is a backtick literal made of box-drawing characters.
SIGNIN_BANNER_PATTERN = re.compile(r"` ██████╗██╗[ █╗╔═╝║╚\n]{100,2000}?`")

VERSION_PATTERN = re.compile(r"\}\.VERSION\} \(Claude Code\)")
SESSION_ID_PATTERN = re.compile(
    r",([$\w]+)\.createElement\(([$\w]+),null,\1\.createElement\(([$\w]+),\{dimColor:!0\},"
    r"\" L \"\),\1\.createElement\(\3,null,\"Session ID: \",[$\w]+\(\)\)\)"
)


def write_welcome_message(text: str, welcome: str) -> Optional[str]:
    location = find_pattern("welcome_message", WELCOME_PATTERN, text, group=1)
    if location is None:
        return None
    return replace_span(text, location.start_index, location.end_index,
                        to_js(welcome), diff_label="welcome_message")


def write_signin_banner(text: str, banner: str) -> Optional[str]:
    """Replace the logo literal (backticks included) with a JSON string."""
    location = find_pattern("signin_banner", SIGNIN_BANNER_PATTERN, text)
    if location is None:
        return None
    return replace_span(text, location.start_index, location.end_index,
                        to_js(banner), diff_label="signin_banner")


def find_version_locations(text: str) -> Optional[tuple[LocationResult, LocationResult]]:
    """(``--version`` string span, insertion point after the session-ID row)."""
    version = find_pattern("version_output", VERSION_PATTERN, text)
    if version is None:
        return None
    session = SESSION_ID_PATTERN.search(text)
    if session is None:
        logger.warning("patch: version_output: failed to find session id row")
        return None
    return version, LocationResult(session.end(), session.end(), list(session.groups()))


def write_version_output(text: str, tool_version: str) -> Optional[str]:
    """Mention this tool's version in ``--version`` and in the status panel."""
    locations = find_version_locations(text)
    if locations is None:
        return None
    version, status = locations
    chalk_var = find_chalk_var(text)
    if chalk_var is None:
        logger.warning("patch: version_output: failed to find chalk variable")
        return None

    react_var, box, text_component = status.identifiers
    label = to_js(f"bundle-patcher: v{tool_version}")
    status_row = (
        f",{react_var}.createElement({box},null,"
        f"{react_var}.createElement({text_component},{{dimColor:!0}},\" L \"),"
        f"{react_var}.createElement({text_component},null,"
        f"{chalk_var}.rgb(235,109,13).bold({label})))"
    )
    edits = [
        ModificationEdit(version.start_index, version.end_index,
                         version.slice(text) + f"\\n{tool_version} (bundle-patcher)"),
        ModificationEdit(status.start_index, status.end_index, status_row),
    ]
    return apply_edits(text, edits, diff_label="version_output")
