"""Exception types raised by the tidygrowth pipeline stages.

Every error derives from ``TidyGrowthError``. Resource failures are also
``OSError`` and data-quality failures are also ``ValueError``, so callers that
already catch the builtin types keep working.
"""

from __future__ import annotations

from typing import Any, Dict


class TidyGrowthError(Exception):
    """Base class for tidygrowth errors.

    ``context`` holds structured details (column names, offending values, ...)
    that are useful when reporting the failure.
    """

    def __init__(self, message: str, context: Dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context: Dict[str, Any] = dict(context or {})

    def with_context(self, context: Dict[str, Any]) -> "TidyGrowthError":
        self.context.update(context)
        return self


class ResourceError(TidyGrowthError, OSError):
    """A file or URL could not be reached or read."""


class TableParseError(TidyGrowthError, ValueError):
    """A delimited table or workbook could not be parsed."""


class TimeParseError(TidyGrowthError, ValueError):
    """A time value is not a valid ``HH:MM:SS`` reading."""


class NumericParseError(TidyGrowthError, ValueError):
    """A column that must be numeric holds non-numeric entries."""


class JoinIntegrityError(TidyGrowthError, ValueError):
    """Duplicate or unmatched well identifiers between measurements and design."""


__all__ = [
    "TidyGrowthError",
    "ResourceError",
    "TableParseError",
    "TimeParseError",
    "NumericParseError",
    "JoinIntegrityError",
]
