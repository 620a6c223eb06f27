from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner errors."""


class PlannerInputError(PlannerError, ValueError):
    """Raised at the caller boundary when projection inputs are malformed."""


class BackupFormatError(PlannerInputError):
    """Raised when a backup document cannot be restored."""
