"""
Feat — Error taxonomy.

Execution outcomes (a candidate raising, hanging or crashing) are *not*
errors; they are recorded as ``Outcome`` values.  The exceptions below
are fatal to a run.
"""
from __future__ import annotations


class FeatError(Exception):
    """Base class for every fatal Feat error."""


class InvalidConfigError(FeatError):
    """Malformed or structurally inconsistent configuration, types or domains."""


class GenerationError(FeatError):
    """Exhaustive domain too large, or an invariant broken during generation."""


class ToolingError(FeatError):
    """An implementation cannot be loaded or invoked at all."""
