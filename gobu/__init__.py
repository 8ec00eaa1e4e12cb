"""Traitful ``go build``: turn trait names into go tool flags and environment."""
from __future__ import annotations

__version__ = "0.1.0"

from .build_config import BuildConfig
from .traits import InvalidTraitsError, TraitKind, TraitRegistry

__all__ = [
    "BuildConfig",
    "InvalidTraitsError",
    "TraitKind",
    "TraitRegistry",
    "__version__",
]
