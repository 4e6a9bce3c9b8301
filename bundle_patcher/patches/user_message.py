"""
User message display and the input box border.

The user-message writer regenerates the element tree that renders a
submitted prompt: a box (border, padding, fit-to-content) around a text
element whose content is a styling call chain applied to the formatted
message.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..editing.literals import LiteralStyle, encode_for_style
from ..editing.locations import (
    LocationResult,
    find_box_component,
    find_chalk_var,
    find_near_anchor,
    replace_span,
)

logger = logging.getLogger(__name__)

NEW_DISPLAY_PATTERN = re.compile(
    r"\breturn ([$\w]+)\.createElement\(([$\w]+),\{backgroundColor:\"userMessageBackground\"\},"
    r"([$\w]+)\.createElement\([$\w]+,\{color:\"subtle\"\},([$\w]+)\.pointer,\" \"\),"
    r"[$\w]+\.createElement\([$\w]+,\{color:\"text\"\},([$\w]+)\)\)"
)
OLD_DISPLAY_PATTERN = re.compile(
    r"\breturn ([$\w]+)\.createElement\(([$\w]+),"
    r"\{backgroundColor:\"userMessageBackground\",color:\"text\"\},\"> \",([$\w]+)\+\" \"\);"
)

_CUSTOM_BORDERS = {
    "topBottomSingle": "─",
    "topBottomDouble": "═",
    "topBottomBold": "━",
}


def find_user_message_display(text: str) -> Optional[LocationResult]:
    """identifiers: ``[react_var, text_component, message_var, format]``."""
    match = NEW_DISPLAY_PATTERN.search(text)
    if match is not None:
        return LocationResult(match.start(), match.end(),
                              [match.group(1), match.group(2), match.group(5), "new_format"])
    match = OLD_DISPLAY_PATTERN.search(text)
    if match is not None:
        return LocationResult(match.start(), match.end(),
                              [match.group(1), match.group(2), match.group(3), "old_format"])
    logger.warning("patch: user_message_display: failed to find match")
    return None


def _rgb_args(color: str) -> Optional[str]:
    digits = re.findall(r"\d+", color)
    return ",".join(digits) if digits else None


def _custom_border(char: str) -> str:
    return (f'{{top:"{char}",bottom:"{char}",left:" ",right:" ",'
            f'topLeft:" ",topRight:" ",bottomLeft:" ",bottomRight:" "}}')


def build_box_attrs(display) -> str:
    attrs = []
    if display.border_style != "none":
        if display.border_style in _CUSTOM_BORDERS:
            attrs.append("borderStyle:" + _custom_border(_CUSTOM_BORDERS[display.border_style]))
        else:
            attrs.append(f'borderStyle:"{display.border_style}"')
        rgb = _rgb_args(display.border_color)
        if rgb:
            attrs.append(f'borderColor:"rgb({rgb})"')
    if display.padding_x > 0:
        attrs.append(f"paddingX:{display.padding_x}")
    if display.padding_y > 0:
        attrs.append(f"paddingY:{display.padding_y}")
    if display.fit_box_to_content:
        attrs.append('alignSelf:"flex-start"')
    return "{" + ",".join(attrs) + "}"


def build_text_attrs(display) -> str:
    attrs = []
    if display.foreground_color == "default":
        attrs.append('color:"text"')
    if display.background_color == "default":
        attrs.append('backgroundColor:"userMessageBackground"')
    return "{" + ",".join(attrs) + "}"


def build_chalk_chain(chalk_var: str, display) -> Optional[str]:
    """Styling call chain in fixed order: color, background, then text styles.

    Returns ``None`` when no styling applies.
    """
    chain = chalk_var
    if display.foreground_color != "default":
        rgb = _rgb_args(display.foreground_color)
        if rgb:
            chain += f".rgb({rgb})"
    if display.background_color not in ("default", None):
        rgb = _rgb_args(display.background_color)
        if rgb:
            chain += f".bgRgb({rgb})"
    for style in ("bold", "italic", "underline", "strikethrough", "inverse"):
        if style in display.styling:
            chain += f".{style}"

    needs_chalk = (
        display.foreground_color != "default"
        or display.background_color not in ("default", None)
        or bool(display.styling)
    )
    return chain if needs_chalk else None


def format_message(fmt: str, message_var: str) -> str:
    """``" > {}"`` -> ``" > "+msg+""``."""
    pieces = [encode_for_style(piece, LiteralStyle.DOUBLE_QUOTED) for piece in fmt.split("{}")]
    return '"' + f'"+{message_var}+"'.join(pieces) + '"'


def write_user_message_display(text: str, display) -> Optional[str]:
    location = find_user_message_display(text)
    if location is None:
        return None
    chalk_var = find_chalk_var(text)
    if chalk_var is None:
        logger.warning("patch: user_message_display: failed to find chalk variable")
        return None
    box = find_box_component(text)
    if box is None:
        logger.warning("patch: user_message_display: failed to find box component")
        return None

    react_var, text_component, message_var, layout = location.identifiers
    message = format_message(display.format, message_var)
    chain = build_chalk_chain(chalk_var, display)
    if chain is not None:
        message = f"{chain}({message})"

    new_content = (
        f"return {react_var}.createElement({box},{build_box_attrs(display)},"
        f"{react_var}.createElement({text_component},{build_text_attrs(display)},{message}))"
    )
    if layout == "old_format":
        new_content += ";"
    return replace_span(text, location.start_index, location.end_index,
                        new_content, diff_label="user_message_display")


# ------------------------------------------------------------------
# Input box
# ------------------------------------------------------------------

INPUT_BORDER_ANCHOR = 'bash:"bashBorder"'
INPUT_BORDER_STYLE_PATTERN = re.compile(r"borderStyle:\"[^\"]*\"")
INPUT_BORDER_WINDOW = 500


def write_input_box_border(text: str, remove_border: bool) -> Optional[str]:
    """Remove the prompt input border when *remove_border* is set."""
    location = find_near_anchor("input_box_border", text, INPUT_BORDER_ANCHOR,
                                INPUT_BORDER_STYLE_PATTERN, after=INPUT_BORDER_WINDOW)
    if location is None:
        return None
    if not remove_border:
        return text
    return replace_span(text, location.start_index, location.end_index,
                        "borderColor:undefined", diff_label="input_box_border")
