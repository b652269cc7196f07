"""BaseService — shared foundation for the shipment services.

Every service receives the :class:`ShipmentRepository` and the resolved
settings at construction time. Services own their transaction
boundaries via ``self._repo.transaction()`` and translate domain
exceptions into failed :class:`ServiceResult` values at the edge.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from elxctl.domain.errors import ConcurrencyConflict, NotFound, ShipmentError
from elxctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from elxctl.config.settings import ElxSettings
    from elxctl.domain.shipment import ShipmentRecord
    from elxctl.infrastructure.repository import RepositoryTransaction, ShipmentRepository

logger = logging.getLogger(__name__)


def shipment_payload(record: ShipmentRecord) -> dict[str, Any]:
    """JSON-safe view of a record, including the derived total."""
    data = record.model_dump(mode="json")
    data["total"] = record.total
    return data


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class UpdateService(BaseService):
            def add_surcharge(self, shipment_id: str, ...) -> ServiceResult:
                return self._mutate("add_surcharge", shipment_id, apply)
    """

    def __init__(self, repository: ShipmentRepository, settings: ElxSettings) -> None:
        self._repo = repository
        self._settings = settings

    @staticmethod
    def _error(op: str, exc: Exception) -> ServiceResult:
        """Translate a domain or validation failure into a ServiceResult."""
        if isinstance(exc, ShipmentError):
            return ServiceResult(ok=False, op=op, error=ServiceError.from_exception(exc))
        if isinstance(exc, ValidationError):
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in exc.errors()
            ]
            return ServiceResult.failure(op, "VALIDATION_FAILED", "; ".join(errors), errors=errors)
        raise exc

    @staticmethod
    def _load(
        txn: RepositoryTransaction,
        shipment_id: str,
        *,
        expected_version: int | None = None,
    ) -> ShipmentRecord:
        """Load an active record for modification.

        Raises:
            NotFound: Missing or soft-deleted.
            ConcurrencyConflict: Caller read an older version.
        """
        record = txn.find_by_id(shipment_id)
        if record is None:
            raise NotFound(f"No shipment found with ID: {shipment_id}", id=shipment_id)
        if expected_version is not None and record.version != expected_version:
            raise ConcurrencyConflict(
                f"Shipment {record.reference} is at version {record.version}, "
                f"caller expected {expected_version}",
                id=shipment_id,
                expected=expected_version,
                found=record.version,
            )
        return record

    def _mutate(
        self,
        op: str,
        shipment_id: str,
        apply: Callable[[ShipmentRecord], dict[str, Any]],
        *,
        expected_version: int | None = None,
    ) -> ServiceResult:
        """Read-modify-write one record inside a single transaction.

        *apply* mutates the record and returns extra result data. Any
        domain or validation error rolls the transaction back.
        """
        try:
            with self._repo.transaction() as txn:
                record = self._load(txn, shipment_id, expected_version=expected_version)
                extra = apply(record)
                warnings = extra.pop("warnings", [])
                saved = txn.save(record)
        except (ShipmentError, ValidationError) as exc:
            logger.debug("%s failed for %s: %s", op, shipment_id, exc)
            return self._error(op, exc)

        data = {
            "id": saved.id,
            "reference": saved.reference,
            "status": saved.status.value,
            "version": saved.version,
            **extra,
        }
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)
