"""CreateService — new shipment bookings.

Pipeline: VALIDATE → PREPARE → PERSIST → RESPOND

PREPARE is the explicit pre-commit step: it claims a counter value,
assigns the booking reference, and leaves ``mode``, ``status`` and the
notification flags at their derived or initial values. It runs inside
the same transaction as the insert, so a failed insert never leaves a
half-created record behind.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from elxctl.domain.errors import ReferenceCollision, ShipmentError
from elxctl.domain.pricing import Pricing
from elxctl.domain.references import ReferenceGenerator
from elxctl.domain.shipment import ShipmentRecord
from elxctl.infrastructure.repository import RepositoryTransaction
from elxctl.services._helpers import current_year
from elxctl.services.base import BaseService, shipment_payload
from elxctl.services.result import ServiceResult

logger = logging.getLogger(__name__)

_MONEY_FIELDS = ("base", "insurance", "vat", "discount")

REFERENCE_SPACE_EXHAUSTED = "REFERENCE_SPACE_EXHAUSTED"


def _default_currency(pricing: Mapping[str, Any] | None, currency: str) -> dict[str, Any]:
    """Fill in *currency* wherever a pricing amount omits one."""
    data = dict(pricing or {})
    for key in _MONEY_FIELDS:
        money = data.get(key)
        if isinstance(money, Mapping):
            data[key] = {"currency": currency, **money}
        elif money is None:
            data[key] = {"amount": 0, "currency": currency}
    surcharges = []
    for surcharge in data.get("surcharges") or ():
        if isinstance(surcharge, Mapping) and isinstance(surcharge.get("value"), Mapping):
            surcharge = {**surcharge, "value": {"currency": currency, **surcharge["value"]}}
        surcharges.append(surcharge)
    data["surcharges"] = surcharges
    return data


class CreateService(BaseService):
    """Creates shipment records."""

    def _generator(self, txn: RepositoryTransaction) -> ReferenceGenerator:
        cfg = self._settings.references
        return ReferenceGenerator(
            lambda year: txn.next_reference_sequence(cfg.prefix, year),
            prefix=cfg.prefix,
            min_digits=cfg.min_digits,
            max_attempts=cfg.max_attempts,
        )

    def prepare_for_insert(
        self,
        txn: RepositoryTransaction,
        record: ShipmentRecord,
        *,
        year: int | None = None,
    ) -> ShipmentRecord:
        """Assign the booking reference if the record has none yet."""
        reference = self._generator(txn).ensure(
            record.reference,
            year or current_year(),
            txn.exists_reference,
        )
        record.assign_reference(reference)
        return record

    def create_shipment(
        self,
        *,
        customer_id: str,
        cargo_type: str,
        cargo: Mapping[str, Any],
        ports: Mapping[str, Any],
        carrier: Mapping[str, Any] | None = None,
        shipper: Mapping[str, Any] | None = None,
        consignee: Mapping[str, Any] | None = None,
        notify_party: Mapping[str, Any] | None = None,
        pricing: Mapping[str, Any] | None = None,
        container_procurement: Mapping[str, Any] | None = None,
        year: int | None = None,
    ) -> ServiceResult:
        """Create a shipment booking.

        *cargo* uses the flat ``{vehicle, container, lcl}`` shape; exactly
        one entry must be populated and it must match *cargo_type*.
        """
        op = "create_shipment"

        # ── VALIDATE ─────────────────────────────────────────
        try:
            optional = {
                "carrier": carrier,
                "shipper": shipper,
                "consignee": consignee,
                "notify_party": notify_party,
                "container_procurement": container_procurement,
            }
            record = ShipmentRecord.new(
                customer_id=customer_id,
                cargo_type=cargo_type,
                cargo=dict(cargo),
                ports=dict(ports),
                pricing=Pricing.model_validate(
                    _default_currency(pricing, self._settings.pricing.currency)
                ),
                **{k: dict(v) for k, v in optional.items() if v is not None},
            )
        except (ShipmentError, ValidationError) as exc:
            return self._error(op, exc)

        # ── PREPARE + PERSIST ────────────────────────────────
        try:
            with self._repo.transaction() as txn:
                self.prepare_for_insert(txn, record, year=year)
                saved = txn.insert(record)
        except ReferenceCollision as exc:
            # Single collisions are retried by the generator; this is exhaustion.
            logger.error("Reference space exhausted: %s", exc.message)
            return ServiceResult.failure(
                op, REFERENCE_SPACE_EXHAUSTED, exc.message, **exc.detail
            )
        except ShipmentError as exc:
            return self._error(op, exc)

        logger.info("Created shipment %s (%s, %s)", saved.reference, saved.cargo_type, saved.mode)

        # ── RESPOND ──────────────────────────────────────────
        return ServiceResult(ok=True, op=op, data=shipment_payload(saved))
