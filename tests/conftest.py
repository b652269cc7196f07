"""Shared pytest fixtures and test helpers for elxctl tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from elxctl.config.settings import ElxSettings
from elxctl.domain.errors import DispatchError
from elxctl.domain.notifications import MailMessage
from elxctl.infrastructure.database.engine import init_database
from elxctl.infrastructure.repository import ShipmentRepository


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's ELXCTL_* environment out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("ELXCTL_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo the handlers and levels a CLI invocation installs."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    elx_level = logging.getLogger("elxctl").level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("elxctl").setLevel(elx_level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "test.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def settings(tmp_path: Path) -> ElxSettings:
    """Default settings rooted at a temporary project directory."""
    return ElxSettings.from_cli(project_root=tmp_path)


@pytest.fixture
def repository(settings: ElxSettings) -> Iterator[ShipmentRepository]:
    """Repository over a fresh database inside the temp project."""
    repo = ShipmentRepository.open(settings.db_path)
    try:
        yield repo
    finally:
        repo.close()


class FakeMailer:
    """Mail collaborator that records messages instead of sending them.

    Addresses in ``fail_for`` make ``dispatch`` raise ``DispatchError``.
    """

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.sent: list[MailMessage] = []
        self.fail_for = set(fail_for or ())

    def dispatch(self, message: MailMessage) -> None:
        if message.to in self.fail_for:
            raise DispatchError(f"Mailbox unavailable: {message.to}", to=message.to)
        self.sent.append(message)

    def subjects(self) -> list[str]:
        return [m.subject for m in self.sent]


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp project so the CLI creates an isolated database.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def vehicle_cargo(**overrides: Any) -> dict[str, Any]:
    """Flat cargo input with only the vehicle variant populated."""
    vehicle = {"make": "Toyota", "model": "Land Cruiser", "year": 2019, "vin": "JTMHV05J604123456"}
    vehicle.update(overrides)
    return {"vehicle": vehicle, "container": None, "lcl": None}


def create_shipment(
    repository: ShipmentRepository,
    settings: ElxSettings,
    *,
    cargo_type: str = "vehicle",
    cargo: dict[str, Any] | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """Create a shipment via CreateService, asserting success."""
    from elxctl.services.create import CreateService

    kwargs.setdefault("customer_id", "cust_1")
    kwargs.setdefault("ports", {"origin": "Southampton", "destination": "Tema"})
    result = CreateService(repository, settings).create_shipment(
        cargo_type=cargo_type,
        cargo=cargo if cargo is not None else vehicle_cargo(),
        **kwargs,
    )
    assert result.ok, result.error
    return result.data


def transition(
    repository: ShipmentRepository,
    settings: ElxSettings,
    shipment_id: str,
    *statuses: str,
) -> dict[str, Any]:
    """Walk a shipment through *statuses*, asserting each step succeeds."""
    from elxctl.services.update import UpdateService

    svc = UpdateService(repository, settings)
    data: dict[str, Any] = {}
    for status in statuses:
        result = svc.transition_status(shipment_id, status)
        assert result.ok, result.error
        data = result.data
    return data


DELIVERY_PATH = ("booked", "gate_in", "sailed", "arrived", "released", "delivered")
