"""UpdateService — every mutation of an existing shipment.

Each operation is a single read-modify-write on one record inside one
transaction (see :meth:`BaseService._mutate`). Callers that read a record
earlier and want to guard against lost updates pass ``expected_version``;
a mismatch fails with ``CONCURRENCY_CONFLICT`` and nothing is written.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from elxctl.domain.errors import NotFound, ShipmentError
from elxctl.domain.pricing import Money, Surcharge
from elxctl.domain.shipment import Payment, ShipmentRecord
from elxctl.services.base import BaseService
from elxctl.services.result import ServiceResult

logger = logging.getLogger(__name__)


class UpdateService(BaseService):
    """Handles field updates, status transitions, and ledger appends."""

    def update(
        self,
        shipment_id: str,
        *,
        changes: dict[str, Any],
        expected_version: int | None = None,
    ) -> ServiceResult:
        """Apply a partial update; cargo changes re-run the exclusivity guard.

        Changes to fields with their own operation (status, tracking,
        documents, payments, pricing) or owned by persistence (id,
        reference, mode, timestamps) are skipped with a warning.
        """

        def apply(record: ShipmentRecord) -> dict[str, Any]:
            fields_changed, warnings = record.apply_changes(changes)
            data: dict[str, Any] = {"fields_changed": fields_changed, "warnings": warnings}
            if "cargo" in fields_changed:
                data["cargo_type"] = record.cargo_type.value
                data["mode"] = record.mode.value
            return data

        return self._mutate("update", shipment_id, apply, expected_version=expected_version)

    def transition_status(
        self,
        shipment_id: str,
        status: str,
        *,
        note: str | None = None,
        location: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult:
        """Move a shipment through the state machine.

        When *note* or *location* is given, a ``STATUS_<NEW>`` tracking
        event is appended in the same write.
        """

        def apply(record: ShipmentRecord) -> dict[str, Any]:
            previous = record.status
            new_status = record.transition(status)
            if note is not None or location is not None:
                record.append_tracking(
                    f"STATUS_{new_status.value}",
                    description=note,
                    location=location,
                    meta={"from": previous.value, "to": new_status.value},
                )
            logger.info("Shipment %s: %s -> %s", record.reference, previous, new_status)
            data: dict[str, Any] = {"previous_status": previous.value}
            if record.held_from is not None:
                data["held_from"] = record.held_from.value
            return data

        return self._mutate(
            "transition_status", shipment_id, apply, expected_version=expected_version
        )

    def append_tracking(
        self,
        shipment_id: str,
        code: str,
        *,
        description: str | None = None,
        occurred_at: datetime | None = None,
        location: str | None = None,
        meta: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult:
        """Append one event to the tracking ledger."""

        def apply(record: ShipmentRecord) -> dict[str, Any]:
            event = record.append_tracking(
                code,
                description=description,
                occurred_at=occurred_at,
                location=location,
                meta=meta,
            )
            return {
                "event": event.model_dump(mode="json"),
                "tracking_count": len(record.tracking),
            }

        return self._mutate("append_tracking", shipment_id, apply, expected_version=expected_version)

    def append_document(
        self,
        shipment_id: str,
        doc_type: str,
        url: str,
        *,
        uploaded_by: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult:
        """Attach a document reference (BOL, invoice, V5, ...)."""

        def apply(record: ShipmentRecord) -> dict[str, Any]:
            document = record.append_document(doc_type, url, uploaded_by=uploaded_by)
            return {
                "document": document.model_dump(mode="json"),
                "document_count": len(record.documents),
            }

        return self._mutate("append_document", shipment_id, apply, expected_version=expected_version)

    def add_surcharge(
        self,
        shipment_id: str,
        code: str,
        amount: int,
        *,
        currency: str | None = None,
        description: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult:
        """Add a surcharge; the returned total reflects it immediately."""

        def apply(record: ShipmentRecord) -> dict[str, Any]:
            surcharge = Surcharge(
                code=code,
                value=Money(amount=amount, currency=currency or self._settings.pricing.currency),
                description=description,
            )
            record.add_surcharge(surcharge)
            data: dict[str, Any] = {
                "surcharge": surcharge.model_dump(mode="json"),
                "total": record.total,
            }
            if len(record.pricing.currencies()) > 1:
                data["warnings"] = [
                    "Pricing mixes currencies "
                    f"({', '.join(sorted(record.pricing.currencies()))}); total is not converted"
                ]
            return data

        return self._mutate("add_surcharge", shipment_id, apply, expected_version=expected_version)

    def add_payment(
        self,
        shipment_id: str,
        provider: str,
        amount: int,
        *,
        currency: str | None = None,
        status: str = "pending",
        reference: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult:
        """Record a payment attempt. Earlier attempts are never modified."""

        def apply(record: ShipmentRecord) -> dict[str, Any]:
            payment = record.append_payment(
                Payment(
                    provider=provider,
                    amount=Money(amount=amount, currency=currency or self._settings.pricing.currency),
                    status=status,
                    reference=reference,
                )
            )
            return {
                "payment": payment.model_dump(mode="json"),
                "payment_count": len(record.payments),
            }

        return self._mutate("add_payment", shipment_id, apply, expected_version=expected_version)

    def soft_delete(self, shipment_id: str, *, expected_version: int | None = None) -> ServiceResult:
        """Retire a shipment. The row stays for audit; reads treat it as gone."""

        def apply(record: ShipmentRecord) -> dict[str, Any]:
            record.soft_delete()
            logger.info("Soft-deleted shipment %s", record.reference)
            return {"is_deleted": True}

        return self._mutate("soft_delete", shipment_id, apply, expected_version=expected_version)

    def hard_delete(self, shipment_id: str) -> ServiceResult:
        """Physically remove a shipment, soft-deleted or not.

        The audit trail goes with the row.
        """
        op = "hard_delete"
        try:
            with self._repo.transaction() as txn:
                record = txn.find_by_id(shipment_id, include_deleted=True)
                if record is None:
                    raise NotFound(f"No shipment found with ID: {shipment_id}", id=shipment_id)
                txn.hard_delete(shipment_id)
        except ShipmentError as exc:
            return self._error(op, exc)

        logger.warning("Hard-deleted shipment %s", record.reference)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": shipment_id, "reference": record.reference, "deleted": True},
        )
