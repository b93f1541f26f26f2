"""Zone error taxonomy.

Components below the service facade raise these; :class:`ZoneService`
converts them into ``ServiceResult(ok=False, error=ServiceError(code=...))``.
Each subclass carries a stable ``code`` used in CLI/JSON output.
"""

from __future__ import annotations

from typing import Any


class ZoneError(Exception):
    """Base class for every failure the zone core reports to callers."""

    code = "ZONE_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail


class ValidationError(ZoneError):
    """Input has the wrong shape (empty name, negative price, NaN coordinate)."""

    code = "VALIDATION_FAILED"


class OverlapError(ZoneError):
    """A candidate zone intersects an active zone (buffer included)."""

    code = "OVERLAP"


class ConflictError(ZoneError):
    """An optimistic-concurrency check failed at commit time."""

    code = "CONFLICT"


class InsufficientFundsError(ZoneError):
    """Payer balance is below the creation cost."""

    code = "INSUFFICIENT_FUNDS"


class NotFoundError(ZoneError):
    """A zone, team, or pending-deletion token does not exist."""

    code = "NOT_FOUND"


class AuthorizationError(ZoneError):
    """A non-leader attempted a leader-only action (or a non-member a member action)."""

    code = "FORBIDDEN"


class ReconciliationError(ZoneError):
    """A primitive failed partway through an apply or teardown sequence.

    ``applied`` counts the primitives that were issued successfully before
    the failing ``step``; the remaining ones were never sent.
    """

    code = "RECONCILIATION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        step: int,
        label: str,
        applied: int,
    ) -> None:
        super().__init__(message, operation=operation, step=step, label=label, applied=applied)
        self.operation = operation
        self.step = step
        self.label = label
        self.applied = applied


class NoPendingRequestError(ZoneError):
    """Deletion confirmed without a live request (never requested or expired)."""

    code = "NO_PENDING_REQUEST"
