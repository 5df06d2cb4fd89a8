"""Reconciliation error taxonomy.

Validation and structure errors are raised to the caller before any state
changes. Collaborator failures are absorbed by the engine into safe defaults,
and consistency drift is corrected in place (logged, never raised).
"""

from typing import Any


class ReconciliationError(Exception):
    """Base class for reconciliation errors."""


class PlanValidationError(ReconciliationError):
    """User input rejected (negative or non-numeric costs, bad clock times)."""


class PlanStructureError(ReconciliationError):
    """Upstream plan is malformed (missing days/items/budget)."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class CollaboratorError(ReconciliationError):
    """An external collaborator call failed or returned an unusable payload."""
