from __future__ import annotations

"""
Emit Error Taxonomy.

Only whole-run failures are raised. Per-file and per-link problems are
recorded as StepOutcome entries instead.
"""

from typing import Optional


class EmitError(Exception):
    """Base class for fatal emit failures."""


class TraceError(EmitError):
    """The dependency tracer could not run or returned malformed output."""


class MaterializationError(EmitError):
    """
    A package file or manifest could not be written.

    Attributes:
        path: Destination that failed, when known.
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class CacheFormatError(EmitError):
    """A persisted cache document does not follow the tagged encoding."""
