"""Tests for CreateService — booking creation and reference assignment."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import update

from elxctl.config.settings import ElxSettings
from elxctl.domain.references import validate_reference
from elxctl.infrastructure.database.schema import reference_counters
from elxctl.infrastructure.repository import ShipmentRepository
from elxctl.services._helpers import current_year
from elxctl.services.create import REFERENCE_SPACE_EXHAUSTED, CreateService
from tests.conftest import create_shipment, vehicle_cargo


class TestCreateShipment:
    def test_vehicle_booking(self, repository: ShipmentRepository, settings: ElxSettings) -> None:
        data = create_shipment(repository, settings)
        assert data["status"] == "quote"
        assert data["mode"] == "RoRo"
        assert data["cargo_type"] == "vehicle"
        assert data["notifications"] == {"pending_sent": False, "delivered_sent": False}
        assert data["version"] == 1
        assert validate_reference(data["reference"])
        assert data["reference"].startswith(f"ELX-{current_year()}-")

    def test_container_booking(self, repository: ShipmentRepository, settings: ElxSettings) -> None:
        data = create_shipment(
            repository,
            settings,
            cargo_type="container",
            cargo={"container": {"container_no": "MSCU1234567", "size": "40HC"}},
            container_procurement={"supplier": "Box Traders"},
        )
        assert data["mode"] == "Container"
        assert data["cargo"]["container_no"] == "MSCU1234567"
        assert data["container_procurement"]["supplier"] == "Box Traders"

    def test_references_are_sequential(
        self, repository: ShipmentRepository, settings: ElxSettings
    ) -> None:
        refs = [create_shipment(repository, settings, year=2026)["reference"] for _ in range(3)]
        assert refs == ["ELX-2026-0001", "ELX-2026-0002", "ELX-2026-0003"]

    def test_configured_prefix(self, repository: ShipmentRepository, tmp_path) -> None:
        (tmp_path / "elxctl.toml").write_text('[references]\nprefix = "abc"\n')
        settings = ElxSettings.from_cli(project_root=tmp_path)
        data = create_shipment(repository, settings, year=2026)
        assert data["reference"] == "ABC-2026-0001"

    def test_pricing_defaults_currency(
        self, repository: ShipmentRepository, settings: ElxSettings
    ) -> None:
        data = create_shipment(
            repository,
            settings,
            pricing={
                "base": {"amount": 100_000},
                "surcharges": [{"code": "doc", "value": {"amount": 5_000}}],
                "vat": {"amount": 20_000},
            },
        )
        assert data["pricing"]["base"]["currency"] == "GBP"
        assert data["pricing"]["surcharges"][0]["code"] == "DOC"
        assert data["total"] == 125_000

class TestCreateValidation:
    def test_two_cargo_variants(self, repository: ShipmentRepository, settings: ElxSettings) -> None:
        result = CreateService(repository, settings).create_shipment(
            customer_id="cust_1",
            cargo_type="vehicle",
            cargo={"vehicle": {"make": "Ford"}, "lcl": {"packages": 2}},
            ports={"origin": "Southampton", "destination": "Tema"},
        )
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_CARGO"
        assert repository.find() == []

    def test_mismatched_cargo_type(
        self, repository: ShipmentRepository, settings: ElxSettings
    ) -> None:
        result = CreateService(repository, settings).create_shipment(
            customer_id="cust_1",
            cargo_type="lcl",
            cargo=vehicle_cargo(),
            ports={"origin": "Southampton", "destination": "Tema"},
        )
        assert result.error is not None
        assert result.error.code == "INVALID_CARGO"

    def test_missing_destination(self, repository: ShipmentRepository, settings: ElxSettings) -> None:
        result = CreateService(repository, settings).create_shipment(
            customer_id="cust_1",
            cargo_type="vehicle",
            cargo=vehicle_cargo(),
            ports={"origin": "Southampton"},
        )
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert any("destination" in e for e in result.error.detail["errors"])

    def test_failed_create_does_not_consume_reference(
        self, repository: ShipmentRepository, settings: ElxSettings
    ) -> None:
        CreateService(repository, settings).create_shipment(
            customer_id="cust_1",
            cargo_type="vehicle",
            cargo={},
            ports={"origin": "Southampton", "destination": "Tema"},
        )
        data = create_shipment(repository, settings, year=2026)
        assert data["reference"] == "ELX-2026-0001"


class TestReferenceCollisions:
    def test_skips_existing_reference(
        self, repository: ShipmentRepository, settings: ElxSettings
    ) -> None:
        first = create_shipment(repository, settings, year=2026)
        # Rewind the counter so the next candidate collides with the first.
        with repository.transaction() as txn:
            txn.conn.execute(update(reference_counters).values(next_value=1))
        second = create_shipment(repository, settings, year=2026)
        assert first["reference"] == "ELX-2026-0001"
        assert second["reference"] == "ELX-2026-0002"

    def test_exhausted_reference_space(
        self,
        repository: ShipmentRepository,
        settings: ElxSettings,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(
            "elxctl.infrastructure.repository.RepositoryTransaction.exists_reference",
            lambda self, reference: True,
        )
        result = CreateService(repository, settings).create_shipment(
            customer_id="cust_1",
            cargo_type="vehicle",
            cargo=vehicle_cargo(),
            ports={"origin": "Southampton", "destination": "Tema"},
        )
        assert result.error is not None
        assert result.error.code == REFERENCE_SPACE_EXHAUSTED
        assert result.error.detail["attempts"] == settings.references.max_attempts
        assert repository.find() == []


class TestConcurrentCreation:
    def test_references_unique_across_threads(
        self, repository: ShipmentRepository, settings: ElxSettings
    ) -> None:
        def book(_: int) -> str:
            return create_shipment(repository, settings, year=2026)["reference"]

        with ThreadPoolExecutor(max_workers=4) as pool:
            refs = list(pool.map(book, range(20)))

        assert len(set(refs)) == 20
        assert sorted(refs) == [f"ELX-2026-{n:04d}" for n in range(1, 21)]
