"""Shipment error taxonomy.

Every error carries a stable ``code`` so the service layer can translate
it into a :class:`~elxctl.services.result.ServiceError` without string
matching. ``DispatchError`` is recovered inside the scanner and never
reaches a caller. ``ReferenceCollision`` is retried inside the reference
generator; only exhausting every attempt escapes, and ``CreateService``
reports that as ``REFERENCE_SPACE_EXHAUSTED``.
"""

from __future__ import annotations

from typing import Any


class ShipmentError(Exception):
    """Base class for all shipment-domain failures."""

    code = "SHIPMENT_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidCargoComposition(ShipmentError):
    """Zero or several cargo variants populated, or the wrong one."""

    code = "INVALID_CARGO"


class InvalidTransition(ShipmentError):
    """Requested status change is not in the transition table."""

    code = "INVALID_TRANSITION"


class ReferenceCollision(ShipmentError):
    """Generator ran out of attempts to find a free reference.

    Raised only after ``max_attempts`` consecutive taken candidates.
    """

    code = "REFERENCE_COLLISION"


class NotFound(ShipmentError):
    """Record does not exist or has been soft-deleted."""

    code = "NOT_FOUND"


class ConcurrencyConflict(ShipmentError):
    """Stored record version moved since it was read."""

    code = "CONCURRENCY_CONFLICT"


class DispatchError(ShipmentError):
    """Mail collaborator failed to deliver a message."""

    code = "DISPATCH_FAILED"
