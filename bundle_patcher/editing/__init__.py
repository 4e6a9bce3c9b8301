"""
Editing engine: span location, literal reconciliation and the patch
applier that threads a bundle's text through every writer.
"""

from .locations import LocationResult, ModificationEdit, apply_edits, replace_span
from .literals import LiteralStyle, classify_context, encode_for_style
from .patch_applier import ApplyReport, PatchApplier, PatchContext, PatchSpec

__all__ = [
    "LocationResult",
    "ModificationEdit",
    "apply_edits",
    "replace_span",
    "LiteralStyle",
    "classify_context",
    "encode_for_style",
    "ApplyReport",
    "PatchApplier",
    "PatchContext",
    "PatchSpec",
]
