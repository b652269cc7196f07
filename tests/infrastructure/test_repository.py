"""Tests for ShipmentRepository — persistence and write rules."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from elxctl.domain.errors import ConcurrencyConflict, NotFound
from elxctl.domain.lifecycle import ShipmentStatus
from elxctl.domain.notifications import NotificationKind
from elxctl.domain.shipment import ShipmentRecord
from elxctl.infrastructure.database.schema import shipments
from elxctl.infrastructure.repository import ShipmentFilter, ShipmentRepository
from tests.conftest import vehicle_cargo


def _new(reference: str, customer_id: str = "cust_1") -> ShipmentRecord:
    record = ShipmentRecord.new(
        customer_id=customer_id,
        cargo_type="vehicle",
        cargo=vehicle_cargo(),
        ports={"origin": "Southampton", "destination": "Tema"},
    )
    record.assign_reference(reference)
    return record


def _insert(repository: ShipmentRepository, reference: str, **kwargs) -> ShipmentRecord:
    with repository.transaction() as txn:
        return txn.insert(_new(reference, **kwargs))


class TestInsertAndLoad:
    def test_insert_assigns_persistence_fields(self, repository: ShipmentRepository) -> None:
        saved = _insert(repository, "ELX-2026-0001")
        assert saved.id
        assert saved.version == 1
        assert saved.created_at is not None
        assert saved.created_at == saved.updated_at

    def test_roundtrip_preserves_record(self, repository: ShipmentRepository) -> None:
        saved = _insert(repository, "ELX-2026-0001")
        loaded = repository.find_by_id(saved.id or "")
        assert loaded is not None
        assert loaded.cargo == saved.cargo
        assert loaded.ports == saved.ports
        assert loaded.reference == "ELX-2026-0001"

    def test_insert_requires_reference(self, repository: ShipmentRepository) -> None:
        record = _new("ELX-2026-0001")
        record.reference = None
        with pytest.raises(ValueError), repository.transaction() as txn:
            txn.insert(record)

    def test_derived_columns_written(self, repository: ShipmentRepository) -> None:
        saved = _insert(repository, "ELX-2026-0001")
        with repository.engine.connect() as conn:
            row = conn.execute(select(shipments).where(shipments.c.id == saved.id)).one()
        assert row.mode == "RoRo"
        assert row.cargo_type == "vehicle"
        assert row.status == "quote"

    def test_exists_reference(self, repository: ShipmentRepository) -> None:
        _insert(repository, "ELX-2026-0001")
        assert repository.exists_reference("ELX-2026-0001")
        assert not repository.exists_reference("ELX-2026-0002")


class TestSave:
    def test_save_bumps_version(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        record.transition("booked")
        saved = repository.save(record)
        assert saved.version == 2
        assert saved.status is ShipmentStatus.BOOKED

    def test_stale_write_conflicts(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        first = record.model_copy(deep=True)
        second = record.model_copy(deep=True)

        first.append_tracking("GATE_IN")
        repository.save(first)

        second.append_tracking("SAILED")
        with pytest.raises(ConcurrencyConflict) as exc_info:
            repository.save(second)
        assert exc_info.value.detail["expected"] == 1
        assert exc_info.value.detail["found"] == 2

        stored = repository.find_by_id(record.id or "")
        assert stored is not None
        assert [e.code for e in stored.tracking] == ["GATE_IN"]

    def test_save_missing_row(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        with repository.transaction() as txn:
            txn.hard_delete(record.id or "")
        with pytest.raises(NotFound):
            repository.save(record)

    def test_save_never_rewrites_reference(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        record.reference = "ELX-2099-9999"
        saved = repository.save(record)
        assert saved.reference == "ELX-2026-0001"


class TestNotificationFlags:
    def test_mark_notified_once(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        assert repository.mark_notified(record.id or "", NotificationKind.PENDING) is True
        assert repository.mark_notified(record.id or "", NotificationKind.PENDING) is False
        stored = repository.find_by_id(record.id or "")
        assert stored is not None
        assert stored.notifications.pending_sent
        assert stored.version == 2

    def test_stale_copy_cannot_clear_flag(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        repository.mark_notified(record.id or "", "pending")

        # A writer holding the pre-flag copy is rejected instead of clearing it.
        record.transition("booked")
        with pytest.raises(ConcurrencyConflict):
            repository.save(record)

        stored = repository.find_by_id(record.id or "")
        assert stored is not None
        assert stored.notifications.pending_sent

    def test_save_with_lower_flag_keeps_flag(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        with repository.transaction() as txn:
            txn.mark_notified(record.id or "", "pending")
            current = txn.find_by_id(record.id or "")
            assert current is not None
            cleared = current.notifications.model_copy(update={"pending_sent": False})
            lowered = current.model_copy(update={"notifications": cleared})
            saved = txn.save(lowered)
        assert saved.notifications.pending_sent


class TestFind:
    def test_soft_deleted_hidden(self, repository: ShipmentRepository) -> None:
        record = _insert(repository, "ELX-2026-0001")
        record.soft_delete()
        repository.save(record)
        assert repository.find_by_id(record.id or "") is None
        assert repository.find_by_id(record.id or "", include_deleted=True) is not None
        assert repository.find() == []
        assert len(repository.find(ShipmentFilter(include_deleted=True))) == 1

    def test_filter_by_customer_and_status(self, repository: ShipmentRepository) -> None:
        _insert(repository, "ELX-2026-0001", customer_id="a")
        b = _insert(repository, "ELX-2026-0002", customer_id="b")
        b.transition("booked")
        repository.save(b)

        assert [r.reference for r in repository.find(ShipmentFilter(customer_id="a"))] == [
            "ELX-2026-0001"
        ]
        booked = repository.find(ShipmentFilter(statuses=("booked",)))
        assert [r.reference for r in booked] == ["ELX-2026-0002"]

    def test_unnotified_filter(self, repository: ShipmentRepository) -> None:
        a = _insert(repository, "ELX-2026-0001")
        _insert(repository, "ELX-2026-0002")
        repository.mark_notified(a.id or "", "pending")
        pending = repository.find(ShipmentFilter(unnotified=NotificationKind.PENDING))
        assert [r.reference for r in pending] == ["ELX-2026-0002"]

    def test_limit(self, repository: ShipmentRepository) -> None:
        for i in range(3):
            _insert(repository, f"ELX-2026-000{i + 1}")
        assert len(repository.find(ShipmentFilter(limit=2))) == 2

    def test_find_by_reference(self, repository: ShipmentRepository) -> None:
        _insert(repository, "ELX-2026-0001")
        with repository.transaction() as txn:
            found = txn.find_by_reference("ELX-2026-0001")
            missing = txn.find_by_reference("ELX-2026-0404")
        assert found is not None
        assert missing is None
