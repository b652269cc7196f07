"""QueryService — read-only access to shipments."""

from __future__ import annotations

from elxctl.domain.lifecycle import ShipmentStatus
from elxctl.domain.pricing import format_minor
from elxctl.infrastructure.repository import ShipmentFilter
from elxctl.services.base import BaseService, shipment_payload
from elxctl.services.result import ServiceResult


class QueryService(BaseService):
    """Lookups and listings. Soft-deleted shipments are invisible here."""

    def get(self, shipment_id: str) -> ServiceResult:
        """Fetch one shipment by id."""
        op = "get"
        record = self._repo.find_by_id(shipment_id)
        if record is None:
            return ServiceResult.failure(
                op, "NOT_FOUND", f"No shipment found with ID: {shipment_id}", id=shipment_id
            )
        return ServiceResult(ok=True, op=op, data=shipment_payload(record))

    def get_by_reference(self, reference: str) -> ServiceResult:
        """Fetch one shipment by its booking reference."""
        op = "get_by_reference"
        with self._repo.transaction() as txn:
            record = txn.find_by_reference(reference)
        if record is None:
            return ServiceResult.failure(
                op, "NOT_FOUND", f"No shipment found with reference: {reference}", reference=reference
            )
        return ServiceResult(ok=True, op=op, data=shipment_payload(record))

    def list_shipments(
        self,
        *,
        customer_id: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> ServiceResult:
        """List shipments newest first, by customer and/or status."""
        op = "list_shipments"
        statuses: tuple[str, ...] = ()
        if status is not None:
            try:
                statuses = (ShipmentStatus(status).value,)
            except ValueError:
                return ServiceResult.failure(
                    op,
                    "VALIDATION_FAILED",
                    f"Unknown status: {status!r}",
                    allowed=[s.value for s in ShipmentStatus],
                )

        records = self._repo.find(
            ShipmentFilter(customer_id=customer_id, statuses=statuses, limit=limit)
        )
        items = [
            {
                "id": r.id,
                "reference": r.reference,
                "customer_id": r.customer_id,
                "cargo_type": r.cargo_type.value,
                "mode": r.mode.value,
                "status": r.status.value,
                "origin": r.ports.origin,
                "destination": r.ports.destination,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in records
        ]
        return ServiceResult(ok=True, op=op, data={"items": items, "count": len(items)})

    def pricing_total(self, shipment_id: str) -> ServiceResult:
        """Derived pricing total with a per-line breakdown."""
        op = "pricing_total"
        record = self._repo.find_by_id(shipment_id)
        if record is None:
            return ServiceResult.failure(
                op, "NOT_FOUND", f"No shipment found with ID: {shipment_id}", id=shipment_id
            )

        pricing = record.pricing
        currency = pricing.base.currency
        warnings: list[str] = []
        if len(pricing.currencies()) > 1:
            warnings.append(
                f"Pricing mixes currencies ({', '.join(sorted(pricing.currencies()))}); "
                "amounts are summed without conversion"
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "reference": record.reference,
                "base": pricing.base.amount,
                "surcharges": [
                    {"code": s.code, "amount": s.value.amount} for s in pricing.surcharges
                ],
                "insurance": pricing.insurance.amount,
                "vat": pricing.vat.amount,
                "discount": pricing.discount.amount,
                "total": record.total,
                "currency": currency,
                "display": format_minor(record.total, currency),
            },
            warnings=warnings,
        )
