"""ShipmentRepository — persistence collaborator with optimistic concurrency.

The repository owns the database engine. :meth:`ShipmentRepository.transaction`
yields a :class:`RepositoryTransaction` whose methods share one connection,
so a reference claim and the insert that uses it commit or roll back
together. The convenience methods on the repository itself each run in
their own short transaction.

Write rules enforced here rather than trusted to callers:

- ``save`` only succeeds against the version it was read at; otherwise
  :class:`~elxctl.domain.errors.ConcurrencyConflict`.
- ``save`` never rewrites ``reference`` and never lowers a notification flag.
- ``mark_notified`` is a conditional single-row update that also bumps the
  version, so a writer holding an older copy conflicts instead of
  clearing the flag.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update

from elxctl.domain.errors import ConcurrencyConflict, NotFound
from elxctl.domain.notifications import KIND_RULES, NotificationKind
from elxctl.domain.shipment import ShipmentRecord
from elxctl.infrastructure.database.counters import next_reference_sequence
from elxctl.infrastructure.database.engine import init_database
from elxctl.infrastructure.database.schema import shipments
from elxctl.services._helpers import now_iso

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy import Connection, Row
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Fields stored as real columns; everything else goes into ``document``.
_COLUMN_FIELDS = frozenset(
    {
        "id",
        "reference",
        "customer_id",
        "status",
        "notifications",
        "is_deleted",
        "version",
        "created_at",
        "updated_at",
        "mode",
        "cargo_type",
    }
)


@dataclass(frozen=True)
class ShipmentFilter:
    """Query filter for :meth:`RepositoryTransaction.find`.

    ``unnotified`` restricts to records whose flag for that kind is still
    false. Soft-deleted records are excluded unless ``include_deleted``.
    Results are newest first.
    """

    customer_id: str | None = None
    statuses: tuple[str, ...] = ()
    unnotified: NotificationKind | None = None
    include_deleted: bool = False
    limit: int | None = None


def _document_json(record: ShipmentRecord) -> str:
    body = record.model_dump(mode="json", exclude=set(_COLUMN_FIELDS))
    return json.dumps(body, separators=(",", ":"), sort_keys=True)


def _row_to_record(row: Row[Any]) -> ShipmentRecord:
    data: dict[str, Any] = json.loads(row.document)
    data.update(
        id=row.id,
        reference=row.reference,
        customer_id=row.customer_id,
        status=row.status,
        notifications={
            "pending_sent": bool(row.pending_sent),
            "delivered_sent": bool(row.delivered_sent),
        },
        is_deleted=bool(row.is_deleted),
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
    return ShipmentRecord.model_validate(data)


@dataclass
class RepositoryTransaction:
    """Active transaction over the shipment tables."""

    conn: Connection

    # -- reads ----------------------------------------------------------------

    def exists_reference(self, reference: str) -> bool:
        row = self.conn.execute(
            select(shipments.c.id).where(shipments.c.reference == reference)
        ).first()
        return row is not None

    def find_by_id(self, shipment_id: str, *, include_deleted: bool = False) -> ShipmentRecord | None:
        """Load a record, or None if missing (or soft-deleted, by default)."""
        stmt = select(shipments).where(shipments.c.id == shipment_id)
        if not include_deleted:
            stmt = stmt.where(shipments.c.is_deleted == 0)
        row = self.conn.execute(stmt).first()
        return _row_to_record(row) if row is not None else None

    def find_by_reference(self, reference: str) -> ShipmentRecord | None:
        row = self.conn.execute(
            select(shipments).where(
                shipments.c.reference == reference,
                shipments.c.is_deleted == 0,
            )
        ).first()
        return _row_to_record(row) if row is not None else None

    def find(self, flt: ShipmentFilter | None = None) -> list[ShipmentRecord]:
        flt = flt or ShipmentFilter()
        stmt = select(shipments)
        if not flt.include_deleted:
            stmt = stmt.where(shipments.c.is_deleted == 0)
        if flt.customer_id is not None:
            stmt = stmt.where(shipments.c.customer_id == flt.customer_id)
        if flt.statuses:
            stmt = stmt.where(shipments.c.status.in_([str(s) for s in flt.statuses]))
        if flt.unnotified is not None:
            flag_col = shipments.c[KIND_RULES[flt.unnotified].flag]
            stmt = stmt.where(flag_col == 0)
        stmt = stmt.order_by(shipments.c.created_at.desc(), shipments.c.id)
        if flt.limit is not None:
            stmt = stmt.limit(flt.limit)
        return [_row_to_record(row) for row in self.conn.execute(stmt)]

    # -- writes ---------------------------------------------------------------

    def next_reference_sequence(self, prefix: str, year: int) -> int:
        return next_reference_sequence(self.conn, prefix, year)

    def insert(self, record: ShipmentRecord) -> ShipmentRecord:
        """Persist a new record; assigns ``id``, ``version`` and timestamps.

        The record must already carry its reference.
        """
        if not record.reference:
            msg = "Cannot insert a shipment without a reference"
            raise ValueError(msg)

        shipment_id = uuid.uuid4().hex
        now = now_iso()
        self.conn.execute(
            insert(shipments).values(
                id=shipment_id,
                reference=record.reference,
                customer_id=record.customer_id,
                cargo_type=record.cargo_type.value,
                mode=record.mode.value,
                status=record.status.value,
                pending_sent=int(record.notifications.pending_sent),
                delivered_sent=int(record.notifications.delivered_sent),
                is_deleted=int(record.is_deleted),
                version=1,
                document=_document_json(record),
                created_at=now,
                updated_at=now,
            )
        )
        stored = self.find_by_id(shipment_id, include_deleted=True)
        assert stored is not None
        return stored

    def save(self, record: ShipmentRecord) -> ShipmentRecord:
        """Write *record* back if nobody else has since its ``version``.

        Raises:
            NotFound: No row with this id.
            ConcurrencyConflict: The stored version moved.
        """
        if record.id is None:
            msg = "Cannot save a shipment that was never inserted"
            raise ValueError(msg)

        now = now_iso()
        result = self.conn.execute(
            update(shipments)
            .where(shipments.c.id == record.id, shipments.c.version == record.version)
            .values(
                cargo_type=record.cargo_type.value,
                mode=record.mode.value,
                status=record.status.value,
                pending_sent=func.max(shipments.c.pending_sent, int(record.notifications.pending_sent)),
                delivered_sent=func.max(
                    shipments.c.delivered_sent, int(record.notifications.delivered_sent)
                ),
                is_deleted=int(record.is_deleted),
                version=shipments.c.version + 1,
                document=_document_json(record),
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            stored = self.conn.execute(
                select(shipments.c.version).where(shipments.c.id == record.id)
            ).first()
            if stored is None:
                raise NotFound(f"No shipment found with ID: {record.id}", id=record.id)
            raise ConcurrencyConflict(
                f"Shipment {record.reference} was modified concurrently "
                f"(expected version {record.version}, found {stored.version})",
                id=record.id,
                expected=record.version,
                found=stored.version,
            )

        reloaded = self.find_by_id(record.id, include_deleted=True)
        assert reloaded is not None
        return reloaded

    def mark_notified(self, shipment_id: str, kind: NotificationKind | str) -> bool:
        """Set the dedup flag for *kind*. Returns False if it was already set."""
        flag_col = shipments.c[KIND_RULES[NotificationKind(kind)].flag]
        result = self.conn.execute(
            update(shipments)
            .where(shipments.c.id == shipment_id, flag_col == 0)
            .values({flag_col: 1, "version": shipments.c.version + 1, "updated_at": now_iso()})
        )
        return result.rowcount == 1

    def hard_delete(self, shipment_id: str) -> bool:
        """Physically remove a row. Returns False if it did not exist."""
        result = self.conn.execute(delete(shipments).where(shipments.c.id == shipment_id))
        return result.rowcount == 1


class ShipmentRepository:
    """Persistence collaborator for shipment records.

    Usage::

        repo = ShipmentRepository.open(db_path)
        with repo.transaction() as txn:
            seq = txn.next_reference_sequence("ELX", 2026)
            ...
            txn.insert(record)
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def open(cls, db_path: Path) -> ShipmentRepository:
        """Initialize (if needed) and open the database at *db_path*."""
        return cls(init_database(db_path))

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def transaction(self) -> Iterator[RepositoryTransaction]:
        """Commit on success, roll back on any exception."""
        with self._engine.begin() as conn:
            yield RepositoryTransaction(conn=conn)

    def find(self, flt: ShipmentFilter | None = None) -> list[ShipmentRecord]:
        with self._engine.connect() as conn:
            return RepositoryTransaction(conn=conn).find(flt)

    def find_by_id(self, shipment_id: str, *, include_deleted: bool = False) -> ShipmentRecord | None:
        with self._engine.connect() as conn:
            return RepositoryTransaction(conn=conn).find_by_id(
                shipment_id, include_deleted=include_deleted
            )

    def exists_reference(self, reference: str) -> bool:
        with self._engine.connect() as conn:
            return RepositoryTransaction(conn=conn).exists_reference(reference)

    def save(self, record: ShipmentRecord) -> ShipmentRecord:
        with self.transaction() as txn:
            return txn.save(record)

    def mark_notified(self, shipment_id: str, kind: NotificationKind | str) -> bool:
        with self.transaction() as txn:
            marked = txn.mark_notified(shipment_id, kind)
        if not marked:
            logger.debug("Flag for %s on %s was already set", kind, shipment_id)
        return marked

    def close(self) -> None:
        self._engine.dispose()
