"""
Patch applier: runs every enabled patch writer over one in-memory copy of
the target bundle, threading the text from writer to writer.

A writer that cannot find its pattern returns ``None`` and is skipped; a
writer that raises is logged and recorded as failed.  Neither stops the
cycle.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from ..cli_display import debug_scope

logger = logging.getLogger(__name__)


def parse_version(version: str) -> tuple[int, ...]:
    """``"1.0.24"`` -> ``(1, 0, 24)``; non-numeric suffixes are ignored."""
    parts = []
    for piece in version.split("."):
        m = re.match(r"\d+", piece)
        parts.append(int(m.group(0)) if m else 0)
    return tuple(parts)


@dataclass
class PatchContext:
    """Everything a writer may read during one apply cycle.

    Built once before the cycle starts and never re-read from disk while
    patches run.
    """
    settings: Any
    target_version: Optional[str] = None
    prompts: list = field(default_factory=list)
    prompts_dir: Optional[str] = None
    config_dir: Optional[str] = None
    debug: bool = False
    report: Optional["ApplyReport"] = None


@dataclass
class PatchSpec:
    """One entry of the writer registry."""
    name: str
    apply: Callable[[str, PatchContext], Optional[str]]
    enabled: Callable[[Any], bool] = lambda settings: True
    min_version: Optional[str] = None
    max_version: Optional[str] = None
    group: str = "misc"

    def supports(self, version: Optional[str]) -> bool:
        """True if the writer applies to target *version* (unknown = yes)."""
        if not version:
            return True
        v = parse_version(version)
        if self.min_version and v < parse_version(self.min_version):
            return False
        if self.max_version and v > parse_version(self.max_version):
            return False
        return True


@dataclass
class ApplyReport:
    """Summary of one apply cycle."""
    applied: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)
    prompts_matched: list[str] = field(default_factory=list)
    prompts_missed: list[str] = field(default_factory=list)
    prompts_rejected: list[str] = field(default_factory=list)
    items: list[str] = field(default_factory=list)
    applied_hashes: dict[str, str] = field(default_factory=dict)
    written: bool = False
    diff: Optional[str] = None

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "applied": len(self.applied),
            "unchanged": len(self.unchanged),
            "skipped": len(self.skipped),
            "failed": [name for name, _ in self.failed],
            "prompts_matched": len(self.prompts_matched),
            "prompts_missed": len(self.prompts_missed),
            "prompts_rejected": len(self.prompts_rejected),
            "written": self.written,
        }


class PatchApplier:
    """Apply the writer registry to a bundle's text."""

    def __init__(self, registry: Sequence[PatchSpec] | None = None) -> None:
        if registry is None:
            from ..patches import REGISTRY
            registry = REGISTRY
        self._registry = list(registry)

    @property
    def registry(self) -> list[PatchSpec]:
        return list(self._registry)

    def apply(self, text: str, ctx: PatchContext) -> tuple[str, ApplyReport]:
        """Run every enabled, version-compatible writer in declared order.

        Parameters
        ----------
        text:
            Pristine bundle content (already restored from backup).
        ctx:
            Cycle context; ``ctx.report`` is replaced with the new report.

        Returns
        -------
        tuple
            ``(new_text, report)``.
        """
        report = ApplyReport()
        ctx.report = report

        with debug_scope(ctx.debug):
            text = self._run(text, ctx, report)

        logger.info(
            "Patches: %d applied, %d skipped, %d failed",
            len(report.applied), len(report.skipped), len(report.failed),
        )
        return text, report

    def _run(self, text: str, ctx: PatchContext, report: ApplyReport) -> str:
        for spec in self._registry:
            if not spec.enabled(ctx.settings):
                continue
            if not spec.supports(ctx.target_version):
                report.skipped.append(
                    (spec.name, f"not supported on {ctx.target_version}"))
                continue

            try:
                result = spec.apply(text, ctx)
            except Exception as exc:
                logger.exception("patch: %s: failed with error", spec.name)
                report.failed.append((spec.name, str(exc) or type(exc).__name__))
                continue

            if result is None:
                report.skipped.append((spec.name, "pattern not found"))
            elif result == text:
                report.unchanged.append(spec.name)
            else:
                report.applied.append(spec.name)
                text = result
        return text
