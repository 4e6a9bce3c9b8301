"""
bundle_patcher: customise a minified JavaScript CLI bundle in place.

Public API for library usage::

    from bundle_patcher import apply_customizations, restore_original

    report = apply_customizations("/path/to/cli.js", ctx)
"""

__version__ = "0.1.0"

from .api import apply_customizations, restore_original
from .config import Config
from .editing.patch_applier import ApplyReport, PatchContext

__all__ = [
    "__version__",
    "apply_customizations",
    "restore_original",
    "ApplyReport",
    "Config",
    "PatchContext",
]
