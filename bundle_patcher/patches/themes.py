"""
Themes: replace the built-in color tables with configured themes.

Older bundles keep three related literals that must change together: the
``switch`` mapping theme id to colors, the ``[{label,value}]`` option list
and the id-to-name map.  Newer bundles only carry ``case"dark"`` and
``case"light"`` color objects; there both are replaced by the first theme.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..editing.locations import LocationResult, ModificationEdit, apply_edits, to_js

logger = logging.getLogger(__name__)

SWITCH_PATTERN = re.compile(
    r"\bswitch\s*\(([^)]+)\)\s*\{[^}]*case\s*[\"']light[\"'][^}]+\}", re.S
)
OPTIONS_PATTERN = re.compile(r"\[(?:\{label:\"(?:Dark|Light).+?\",value:\".+?\"\},?)+\]")
NAMES_PATTERN = re.compile(r"\breturn\{(?:[$\w]+?:\"(?:Dark|Light).+?\",?)+\}")
DARK_CASE_PATTERN = re.compile(r"\bcase\"dark\":return\{[^}]+\};", re.S)
LIGHT_CASE_PATTERN = re.compile(r"\bcase\"light\":return\{[^}]+\};", re.S)


@dataclass
class ThemeLocations:
    switch: LocationResult
    options: Optional[LocationResult] = None
    names: Optional[LocationResult] = None

    @property
    def simplified(self) -> bool:
        return self.options is None or self.names is None


def _span(match: re.Match, *identifiers: str) -> LocationResult:
    return LocationResult(match.start(), match.end(), list(identifiers))


def find_theme_locations(text: str) -> Optional[ThemeLocations]:
    switch = SWITCH_PATTERN.search(text)
    options = OPTIONS_PATTERN.search(text)
    names = NAMES_PATTERN.search(text)
    if switch and options and names:
        return ThemeLocations(
            switch=_span(switch, switch.group(1).strip()),
            options=_span(options),
            names=_span(names),
        )

    case = DARK_CASE_PATTERN.search(text) or LIGHT_CASE_PATTERN.search(text)
    if case is None:
        logger.warning("patch: themes: failed to find match")
        return None
    logger.debug("patch: themes: using simplified theme layout")
    return ThemeLocations(switch=_span(case))


def _simplified_edits(text: str, themes: Sequence) -> list[ModificationEdit]:
    colors = to_js(themes[0].colors)
    edits = []
    for theme_id, pattern in (("dark", DARK_CASE_PATTERN), ("light", LIGHT_CASE_PATTERN)):
        match = pattern.search(text)
        if match is not None:
            edits.append(ModificationEdit(
                match.start(), match.end(), f'case"{theme_id}":return{colors};'))
    return edits


def write_themes(text: str, themes: Sequence) -> Optional[str]:
    """Install *themes* (``Theme`` objects with ``id``, ``name``, ``colors``)."""
    locations = find_theme_locations(text)
    if locations is None:
        return None
    if not themes:
        return text

    if locations.simplified:
        return apply_edits(text, _simplified_edits(text, themes), diff_label="themes")

    names = "return" + to_js({theme.id: theme.name for theme in themes})
    options = to_js([{"label": theme.name, "value": theme.id} for theme in themes])
    cases = "".join(f'case{to_js(theme.id)}:return{to_js(theme.colors)};\n'
                    for theme in themes)
    switch = (f"switch({locations.switch.identifiers[0]}){{\n{cases}"
              f"default:return{to_js(themes[0].colors)};\n}}")

    edits = [
        ModificationEdit(locations.names.start_index, locations.names.end_index, names),
        ModificationEdit(locations.options.start_index, locations.options.end_index, options),
        ModificationEdit(locations.switch.start_index, locations.switch.end_index, switch),
    ]
    return apply_edits(text, edits, diff_label="themes")
