"""ShipmentRecord — the aggregate entity and its mutation rules.

Every mutation goes through a method on the record so the invariants
hold in one place:

- cargo exclusivity: ``cargo`` is a tagged union; :meth:`apply_changes`
  re-runs :func:`~elxctl.domain.cargo.resolve_cargo` whenever cargo is touched.
- mode derivation: ``mode`` is computed from the cargo tag, never stored input.
- reference immutability: :meth:`assign_reference` refuses to overwrite.
- notification monotonicity: flags only move false -> true.
- append-only ledgers: tracking, documents, and payments are tuples that
  only ever grow.

``id``, ``version``, ``created_at`` and ``updated_at`` belong to the
persistence layer; the record carries them but never changes them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, computed_field

from elxctl.domain.cargo import (
    CargoType,
    CargoVariant,
    TransportMode,
    cargo_candidates,
    mode_for,
    resolve_cargo,
)
from elxctl.domain.lifecycle import INITIAL_STATUS, ShipmentStatus, apply_transition
from elxctl.domain.notifications import NotificationFlags, NotificationKind
from elxctl.domain.pricing import Money, Pricing, Surcharge
from elxctl.domain.pricing import total as pricing_total
from elxctl.domain.tracking import TrackingEvent, TrackingLedger


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Sub-documents
# ---------------------------------------------------------------------------


class _Part(BaseModel):
    model_config = {"frozen": True, "extra": "forbid", "str_strip_whitespace": True}


class Contact(_Part):
    """Shipper, consignee, or notify party."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class Ports(_Part):
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    origin_country: str | None = None
    destination_country: str | None = None
    pickup_address: str | None = None


class Carrier(_Part):
    """Vessel and schedule. Estimated and actual times are both optional."""

    vessel: str | None = None
    voyage: str | None = None
    etd: datetime | None = None
    eta: datetime | None = None
    atd: datetime | None = None
    ata: datetime | None = None


class ContainerProcurement(_Part):
    """Container secured ahead of stuffing."""

    container_no: str | None = None
    supplier: str | None = None


class PaymentStatus(StrEnum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(_Part):
    provider: str = Field(min_length=1)
    amount: Money
    status: PaymentStatus = PaymentStatus.PENDING
    reference: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class ShipmentDocument(_Part):
    """An attached file, e.g. BOL, invoice, V5."""

    type: str = Field(min_length=1)
    url: str = Field(min_length=1)
    uploaded_at: datetime = Field(default_factory=_utcnow)
    uploaded_by: str | None = None


# Fields a general update may replace. Everything else has a dedicated
# operation or belongs to persistence.
UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "ports",
        "carrier",
        "shipper",
        "consignee",
        "notify_party",
        "container_procurement",
        "cargo",
        "cargo_type",
    }
)

_PART_MODELS: dict[str, type[_Part]] = {
    "ports": Ports,
    "carrier": Carrier,
    "shipper": Contact,
    "consignee": Contact,
    "notify_party": Contact,
    "container_procurement": ContainerProcurement,
}


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


class ShipmentRecord(BaseModel):
    """A shipment booking and everything that happens to it."""

    model_config = {"validate_assignment": True}

    id: str | None = None
    reference: str | None = None
    customer_id: str = Field(min_length=1)
    cargo: CargoVariant
    ports: Ports
    carrier: Carrier | None = None
    status: ShipmentStatus = INITIAL_STATUS
    held_from: ShipmentStatus | None = None
    pricing: Pricing = Field(default_factory=Pricing)
    payments: tuple[Payment, ...] = ()
    shipper: Contact | None = None
    consignee: Contact | None = None
    notify_party: Contact | None = None
    container_procurement: ContainerProcurement | None = None
    documents: tuple[ShipmentDocument, ...] = ()
    tracking: tuple[TrackingEvent, ...] = ()
    notifications: NotificationFlags = Field(default_factory=NotificationFlags)
    is_deleted: bool = False
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cargo_type(self) -> CargoType:
        return CargoType(self.cargo.kind)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def mode(self) -> TransportMode:
        return mode_for(self.cargo.kind)

    @property
    def total(self) -> int:
        """Pricing total in minor units, recomputed on every access."""
        return pricing_total(self.pricing)

    @property
    def ledger(self) -> TrackingLedger:
        return TrackingLedger(self.tracking)

    # -- construction -------------------------------------------------------

    @classmethod
    def new(
        cls,
        *,
        customer_id: str,
        cargo_type: CargoType | str,
        cargo: dict[str, Any],
        ports: Ports | dict[str, Any],
        **fields: Any,
    ) -> ShipmentRecord:
        """Build an unsaved record: guarded cargo, initial status, flags false.

        ``mode``, ``status``, ``reference`` and ``notifications`` are not
        accepted here; they are derived or assigned later.
        """
        for forbidden in ("mode", "status", "reference", "notifications", "id"):
            fields.pop(forbidden, None)
        variant = resolve_cargo(cargo_type, cargo)
        return cls(customer_id=customer_id, cargo=variant, ports=ports, **fields)

    # -- mutations ----------------------------------------------------------

    def assign_reference(self, reference: str) -> None:
        """Set the booking reference. A no-op if one is already assigned."""
        if self.reference:
            return
        self.reference = reference

    def transition(self, requested: ShipmentStatus | str) -> ShipmentStatus:
        """Move to *requested* through the state machine."""
        current = self.status
        new_status = apply_transition(current, requested, held_from=self.held_from)
        if new_status is ShipmentStatus.ON_HOLD:
            self.held_from = current
        elif current is ShipmentStatus.ON_HOLD:
            self.held_from = None
        self.status = new_status
        return new_status

    def append_tracking(
        self,
        code: str,
        *,
        description: str | None = None,
        occurred_at: datetime | None = None,
        location: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> TrackingEvent:
        ledger = self.ledger
        event = ledger.append(
            code,
            description=description,
            occurred_at=occurred_at,
            location=location,
            meta=meta,
        )
        self.tracking = ledger.events
        return event

    def append_document(
        self,
        doc_type: str,
        url: str,
        *,
        uploaded_by: str | None = None,
        uploaded_at: datetime | None = None,
    ) -> ShipmentDocument:
        document = ShipmentDocument(
            type=doc_type,
            url=url,
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at or _utcnow(),
        )
        self.documents = (*self.documents, document)
        return document

    def append_payment(self, payment: Payment) -> Payment:
        self.payments = (*self.payments, payment)
        return payment

    def add_surcharge(self, surcharge: Surcharge) -> Surcharge:
        self.pricing = self.pricing.with_surcharge(surcharge)
        return surcharge

    def mark_notified(self, kind: NotificationKind | str) -> bool:
        """Flag *kind* as sent. Returns False if it already was."""
        if self.notifications.is_sent(kind):
            return False
        self.notifications = self.notifications.mark_sent(kind)
        return True

    def soft_delete(self) -> None:
        self.is_deleted = True

    def apply_changes(self, changes: dict[str, Any]) -> tuple[list[str], list[str]]:
        """Apply a partial update. Returns ``(fields_changed, warnings)``.

        Sub-document changes are merged field-by-field into the current
        value; ``None`` clears an optional sub-document. Cargo changes use
        the flat ``{vehicle, container, lcl}`` shape and are merged
        variant-by-variant before the exclusivity guard runs again.
        """
        changed: list[str] = []
        warnings: list[str] = []

        pending = dict(changes)
        if "status" in pending:
            pending.pop("status")
            warnings.append("Status changes go through a transition, not an update")

        for key in sorted(set(pending) - UPDATABLE_FIELDS):
            warnings.append(f"Cannot change field: {key}")
            pending.pop(key)

        if "cargo" in pending or "cargo_type" in pending:
            self.cargo = self._merged_cargo(
                pending.pop("cargo_type", None) or self.cargo.kind,
                pending.pop("cargo", None) or {},
            )
            changed.append("cargo")

        for key, value in pending.items():
            model_cls = _PART_MODELS[key]
            current = getattr(self, key)
            if value is None:
                new_value = None
            elif current is not None and isinstance(value, dict):
                new_value = model_cls.model_validate({**current.model_dump(), **value})
            else:
                new_value = value if isinstance(value, model_cls) else model_cls.model_validate(value)
            setattr(self, key, new_value)
            changed.append(key)

        return changed, warnings

    def _merged_cargo(self, cargo_type: str, cargo_changes: dict[str, Any]) -> Any:
        candidates = cargo_candidates(self.cargo)
        for name, payload in cargo_changes.items():
            existing = candidates.get(name)
            if isinstance(payload, dict) and isinstance(existing, dict):
                candidates[name] = {**existing, **payload}
            else:
                candidates[name] = payload
        return resolve_cargo(cargo_type, candidates)
