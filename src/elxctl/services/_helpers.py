"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (record timestamps, audit trails)."""
    return datetime.now(UTC).isoformat()


def current_year() -> int:
    """Booking year used in new references."""
    return datetime.now(UTC).year
