"""
Prompt reference data: versioned strings files and user-editable markdown.

A strings file (``prompts-<version>.json``) lists every customisable prompt
of one target version as literal pieces interleaved with identifier slots.
Each prompt is mirrored to ``<prompts_dir>/<id>.md``; whatever the user
writes there is what gets injected.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Optional

import requests
import yaml

from .editing.literals import reconstruct_baseline
from .errors import PromptDataError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30

_FRONTMATTER_RE = re.compile(r"\A\s*<!--(.*?)-->[ \t]*\r?\n?", re.S)


@dataclass
class PromptDescriptor:
    """One customisable prompt, resolved for a single target version."""
    prompt_id: str
    content: str
    pieces: list[str]
    identifier_positions: list
    identifier_map: dict
    variables: list[str] = field(default_factory=list)
    name: str = ""
    version: str = ""
    content_line_offset: int = 0
    source_path: Optional[str] = None

    @property
    def baseline(self) -> str:
        """Stock prompt text with semantic variable names."""
        return reconstruct_baseline(self.pieces, self.identifier_positions,
                                    self.identifier_map)


@dataclass
class MarkdownPrompt:
    content: str
    metadata: dict = field(default_factory=dict)
    content_line_offset: int = 0


def parse_markdown_prompt(text: str) -> MarkdownPrompt:
    """Split ``<!-- yaml -->`` frontmatter from the prompt body.

    ``content_line_offset`` is the number of lines that precede the body, so
    body line N is file line ``N + content_line_offset``.
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return MarkdownPrompt(content=text.strip())

    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise PromptDataError(f"invalid prompt frontmatter: {exc}") from exc
    if not isinstance(metadata, dict):
        metadata = {}

    rest = text[match.end():]
    leading = rest[:len(rest) - len(rest.lstrip())]
    offset = text[:match.end()].count("\n") + leading.count("\n")
    return MarkdownPrompt(content=rest.strip(), metadata=metadata,
                          content_line_offset=offset)


def render_markdown_prompt(prompt: dict, content: str) -> str:
    """Markdown file body for a strings-file prompt entry."""
    metadata = {
        "name": prompt.get("name", prompt["id"]),
        "description": prompt.get("description", ""),
        "ccVersion": prompt.get("version", ""),
    }
    variables = sorted(set(prompt.get("identifierMap", {}).values()))
    if variables:
        metadata["variables"] = variables
    front = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True)
    return f"<!--\n{front}-->\n{content}\n"


# ------------------------------------------------------------------
# Strings files
# ------------------------------------------------------------------

def _http_error_message(status: int, reason: str, version: str) -> str:
    if status == 429:
        return ("Rate limit exceeded. GitHub has temporarily blocked requests. "
                "Please wait a few minutes and try again.")
    if status == 404:
        return (f"Prompts file not found for target version {version}. "
                "Recently released versions are usually supported within a few hours.")
    if status >= 500:
        return f"GitHub server error ({status}). Please try again later."
    return f"HTTP {status}: {reason}"


def load_strings_file(version: str, cache_dir: str, base_url: str) -> dict:
    """Strings file for *version*, from the cache or downloaded into it."""
    cache_path = os.path.join(cache_dir, f"prompts-{version}.json")
    if os.path.isfile(cache_path):
        try:
            with open(cache_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("ignoring unreadable prompt cache %s: %s", cache_path, exc)

    url = f"{base_url.rstrip('/')}/prompts-{version}.json"
    try:
        response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
    except requests.RequestException as exc:
        raise PromptDataError(
            f"Failed to download prompts for version {version}: {exc}") from exc
    if response.status_code != 200:
        raise PromptDataError(
            _http_error_message(response.status_code, response.reason, version))
    try:
        data = response.json()
    except ValueError as exc:
        raise PromptDataError(f"Invalid prompts file for version {version}: {exc}") from exc

    try:
        os.makedirs(cache_dir, exist_ok=True)
        with open(cache_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as exc:
        logger.warning("Failed to write prompt cache %s: %s", cache_path, exc)
    return data


def sync_prompt_files(strings: dict, prompts_dir: str) -> int:
    """Create a markdown file for every prompt that does not have one yet."""
    os.makedirs(prompts_dir, exist_ok=True)
    created = 0
    for prompt in strings.get("prompts", []):
        path = os.path.join(prompts_dir, f"{prompt['id']}.md")
        if os.path.exists(path):
            continue
        baseline = reconstruct_baseline(prompt["pieces"], prompt["identifiers"],
                                        prompt["identifierMap"])
        with open(path, "w", encoding="utf-8") as f:
            f.write(render_markdown_prompt(prompt, baseline.strip()))
        created += 1
    if created:
        logger.info("created %d prompt files in %s", created, prompts_dir)
    return created


def build_descriptors(strings: dict, prompts_dir: Optional[str] = None) -> list[PromptDescriptor]:
    """Merge strings-file prompts with their markdown overrides."""
    descriptors = []
    for prompt in strings.get("prompts", []):
        descriptor = PromptDescriptor(
            prompt_id=prompt["id"],
            content="",
            pieces=list(prompt["pieces"]),
            identifier_positions=list(prompt["identifiers"]),
            identifier_map=dict(prompt["identifierMap"]),
            name=prompt.get("name", prompt["id"]),
            version=prompt.get("version", ""),
        )
        descriptor.variables = sorted(set(descriptor.identifier_map.values()))
        descriptor.content = descriptor.baseline.strip()

        path = os.path.join(prompts_dir, f"{descriptor.prompt_id}.md") if prompts_dir else None
        if path and os.path.isfile(path):
            with open(path, "r", encoding="utf-8") as f:
                parsed = parse_markdown_prompt(f.read())
            descriptor.content = parsed.content
            descriptor.content_line_offset = parsed.content_line_offset
            descriptor.source_path = path
        descriptors.append(descriptor)
    return descriptors


def load_prompt_descriptors(version: str, prompts_dir: str, cache_dir: str,
                            base_url: str) -> list[PromptDescriptor]:
    """Resolve the prompt descriptors for one target version."""
    strings = load_strings_file(version, cache_dir, base_url)
    sync_prompt_files(strings, prompts_dir)
    return build_descriptors(strings, prompts_dir)
