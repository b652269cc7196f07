"""Lifecycle email kinds, dedup flags, and recipient rules.

Each kind is tied to one trigger status and one boolean flag on the
shipment. A flag goes false -> true once, after a successful dispatch,
and is never cleared by the core.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, Field

from elxctl.domain.lifecycle import ShipmentStatus


class NotificationKind(StrEnum):
    PENDING = "pending"
    DELIVERED = "delivered"


@dataclass(frozen=True)
class KindRule:
    """How one notification kind is triggered, flagged, and addressed."""

    kind: NotificationKind
    trigger: ShipmentStatus
    flag: str
    template: str
    subject: str


# "pending" mail goes out while a booking is still a quote.
KIND_RULES: dict[NotificationKind, KindRule] = {
    NotificationKind.PENDING: KindRule(
        kind=NotificationKind.PENDING,
        trigger=ShipmentStatus.QUOTE,
        flag="pending_sent",
        template="pending.txt.j2",
        subject="Shipment {reference} - Now Pending",
    ),
    NotificationKind.DELIVERED: KindRule(
        kind=NotificationKind.DELIVERED,
        trigger=ShipmentStatus.DELIVERED,
        flag="delivered_sent",
        template="delivered.txt.j2",
        subject="Delivered: Shipment {reference} Successfully Completed",
    ),
}


class NotificationFlags(BaseModel):
    """Dedup flags, one per lifecycle email kind."""

    model_config = {"frozen": True}

    pending_sent: bool = False
    delivered_sent: bool = False

    def is_sent(self, kind: NotificationKind | str) -> bool:
        return bool(getattr(self, KIND_RULES[NotificationKind(kind)].flag))

    def mark_sent(self, kind: NotificationKind | str) -> NotificationFlags:
        """Return a copy with *kind* flagged. Already-set flags stay set."""
        flag = KIND_RULES[NotificationKind(kind)].flag
        return self.model_copy(update={flag: True})


class MailMessage(BaseModel):
    """Outbound message handed to the mail collaborator."""

    model_config = {"frozen": True}

    to: str
    cc: tuple[str, ...] = ()
    subject: str
    body: str
    tags: dict[str, str] = Field(default_factory=dict)


def pick_recipients(
    kind: NotificationKind | str,
    *,
    shipper_email: str | None,
    consignee_email: str | None,
    notify_email: str | None,
    support_email: str,
) -> tuple[str, tuple[str, ...]]:
    """Resolve ``(to, cc)`` for a lifecycle email.

    Pending mail goes to the shipper, delivered mail to the consignee;
    both fall back through the other party to *support_email*. The
    primary recipient never appears again in CC.
    """
    kind = NotificationKind(kind)
    if kind is NotificationKind.PENDING:
        to = shipper_email or support_email
        cc_candidates = [consignee_email, notify_email]
    else:
        to = consignee_email or shipper_email or support_email
        cc_candidates = [shipper_email, notify_email]

    cc: list[str] = []
    for address in cc_candidates:
        if address and address != to and address not in cc:
            cc.append(address)
    return to, tuple(cc)
