"""Tracking ledger — append-only event log embedded in a shipment.

Events keep insertion order, which is not necessarily ``occurred_at``
order: operators backfill events after the fact. Nothing here truncates,
reorders, or deletes.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TrackingEvent(BaseModel):
    """One milestone in a shipment's journey (e.g. ``SAILED`` from Southampton)."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    code: str = Field(min_length=1)
    description: str | None = None
    occurred_at: datetime = Field(default_factory=_utcnow)
    location: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.upper()

    @field_validator("occurred_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class TrackingLedger:
    """Ordered, append-only sequence of :class:`TrackingEvent`."""

    def __init__(self, events: Iterable[TrackingEvent] = ()) -> None:
        self._events: list[TrackingEvent] = list(events)

    def append(
        self,
        code: str,
        *,
        description: str | None = None,
        occurred_at: datetime | None = None,
        location: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> TrackingEvent:
        """Append an event; ``occurred_at`` defaults to now."""
        event = TrackingEvent(
            code=code,
            description=description,
            occurred_at=occurred_at or _utcnow(),
            location=location,
            meta=dict(meta or {}),
        )
        self._events.append(event)
        return event

    def append_event(self, event: TrackingEvent) -> TrackingEvent:
        self._events.append(event)
        return event

    @property
    def events(self) -> tuple[TrackingEvent, ...]:
        return tuple(self._events)

    @property
    def latest(self) -> TrackingEvent | None:
        """Most recently appended event (not the latest ``occurred_at``)."""
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TrackingEvent]:
        return iter(tuple(self._events))
