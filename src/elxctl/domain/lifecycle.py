"""Shipment status lifecycle.

Forward path, one step at a time::

    quote -> booked -> gate_in -> sailed -> arrived -> released -> delivered

Side transitions:
- any non-terminal state -> on_hold, and on_hold -> the state it was held from
- any non-terminal state -> cancelled

``delivered`` and ``cancelled`` are terminal.
"""

from __future__ import annotations

from enum import StrEnum

from elxctl.domain.errors import InvalidTransition


class ShipmentStatus(StrEnum):
    """Closed set of shipment states."""

    QUOTE = "quote"
    BOOKED = "booked"
    GATE_IN = "gate_in"
    SAILED = "sailed"
    ARRIVED = "arrived"
    RELEASED = "released"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"


INITIAL_STATUS = ShipmentStatus.QUOTE

FORWARD_PATH: tuple[ShipmentStatus, ...] = (
    ShipmentStatus.QUOTE,
    ShipmentStatus.BOOKED,
    ShipmentStatus.GATE_IN,
    ShipmentStatus.SAILED,
    ShipmentStatus.ARRIVED,
    ShipmentStatus.RELEASED,
    ShipmentStatus.DELIVERED,
)

TERMINAL_STATES = frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED})


def _build_transitions() -> dict[str, list[str]]:
    table: dict[str, list[str]] = {}
    for current, following in zip(FORWARD_PATH, FORWARD_PATH[1:], strict=False):
        table[current.value] = [
            following.value,
            ShipmentStatus.ON_HOLD.value,
            ShipmentStatus.CANCELLED.value,
        ]
    for terminal in TERMINAL_STATES:
        table[terminal.value] = []
    # on_hold returns only to its held_from state; resolved at apply time.
    table[ShipmentStatus.ON_HOLD.value] = [ShipmentStatus.CANCELLED.value]
    return table


SHIPMENT_TRANSITIONS: dict[str, list[str]] = _build_transitions()


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATES


def allowed_transitions(current: str, *, held_from: str | None = None) -> list[str]:
    """Statuses reachable from *current* in a single step."""
    allowed = list(SHIPMENT_TRANSITIONS.get(current, []))
    if current == ShipmentStatus.ON_HOLD and held_from is not None:
        allowed.insert(0, held_from)
    return allowed


def is_valid_transition(current: str, target: str, *, held_from: str | None = None) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    return target in allowed_transitions(current, held_from=held_from)


def apply_transition(
    current: str,
    requested: str,
    *,
    held_from: str | None = None,
) -> ShipmentStatus:
    """Validate a status change and return the new state.

    Args:
        current: The record's present status.
        requested: The status the caller asks for.
        held_from: Status an ``on_hold`` record was held from. Required
            to release a hold.

    Raises:
        InvalidTransition: Unknown status, terminal source, skipped
            forward step, self-transition, or a release to anything
            other than *held_from*.
    """
    try:
        source = ShipmentStatus(current)
        target = ShipmentStatus(requested)
    except ValueError:
        raise InvalidTransition(
            f"Unknown status in transition: {current!r} -> {requested!r}",
            current=current,
            requested=requested,
        ) from None

    if source in TERMINAL_STATES:
        raise InvalidTransition(
            f"Status {source.value!r} is terminal; no further transitions permitted",
            current=source.value,
            requested=target.value,
        )

    allowed = allowed_transitions(source.value, held_from=held_from)
    if target.value not in allowed:
        raise InvalidTransition(
            f"Invalid status transition: {source.value} -> {target.value}. Allowed: {allowed}",
            current=source.value,
            requested=target.value,
            allowed=allowed,
        )
    return target
