"""NotificationScanner — at-most-once lifecycle emails.

One tick, per enabled kind:

1. find active shipments in the kind's trigger status whose flag is false
2. render and dispatch the email
3. on success, set the flag (conditional update; the commit point)
4. on failure, log and leave the flag false so the next tick retries

INVARIANT: A flag is only ever set after its dispatch returned.
INVARIANT: One record's failure never stops the rest of the tick.

A stop request is honoured between records: records already flagged stay
flagged, the rest are picked up by the next tick.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from jinja2 import Environment, TemplateError

from elxctl.domain.cargo import ContainerCargo, LclCargo, VehicleCargo
from elxctl.domain.errors import DispatchError
from elxctl.domain.notifications import (
    KIND_RULES,
    KindRule,
    MailMessage,
    NotificationKind,
    pick_recipients,
)
from elxctl.domain.shipment import Contact, ShipmentRecord
from elxctl.infrastructure.repository import ShipmentFilter
from elxctl.infrastructure.templates import build_template_environment
from elxctl.services.base import BaseService
from elxctl.services.result import ServiceResult

if TYPE_CHECKING:
    from datetime import datetime

    from elxctl.config.settings import ElxSettings
    from elxctl.infrastructure.mail import Mailer
    from elxctl.infrastructure.repository import ShipmentRepository

log = structlog.get_logger(__name__)


def _date(value: datetime | None, fallback: str) -> str:
    return value.strftime("%d/%m/%Y") if value is not None else fallback


def cargo_summary(record: ShipmentRecord) -> str:
    """One-line cargo description for emails."""
    cargo = record.cargo
    if isinstance(cargo, VehicleCargo):
        name = " ".join(str(p) for p in (cargo.year, cargo.make, cargo.model) if p)
        summary = name or "Vehicle"
        if cargo.vin:
            summary += f" (VIN {cargo.vin})"
    elif isinstance(cargo, ContainerCargo):
        summary = " ".join(p for p in (cargo.size, "container", cargo.container_no) if p)
    elif isinstance(cargo, LclCargo):
        parts = []
        if cargo.packages is not None:
            parts.append(f"{cargo.packages} packages")
        if cargo.volume_cbm is not None:
            parts.append(f"{cargo.volume_cbm:g} cbm")
        summary = "LCL " + (", ".join(parts) if parts else "consignment")
    else:  # pragma: no cover - union is closed
        summary = record.cargo_type.value
    if cargo.description:
        summary += f" - {cargo.description}"
    return summary


@dataclass
class TickReport:
    """What one tick did."""

    sent: list[dict[str, str]] = field(default_factory=list)
    failed: list[dict[str, str]] = field(default_factory=list)
    skipped: list[dict[str, str]] = field(default_factory=list)
    interrupted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "sent_count": len(self.sent),
            "failed_count": len(self.failed),
            "interrupted": self.interrupted,
        }


class NotificationScanner(BaseService):
    """Finds shipments owed a lifecycle email and sends each one once.

    Parameters:
        repository: Shipment persistence.
        settings: Resolved settings (``[scanner]`` and ``[mail]``).
        mailer: Mail collaborator.
        stop_event: Set to ask a running tick to stop between records.
    """

    def __init__(
        self,
        repository: ShipmentRepository,
        settings: ElxSettings,
        mailer: Mailer,
        *,
        stop_event: threading.Event | None = None,
    ) -> None:
        super().__init__(repository, settings)
        self._mailer = mailer
        self._stop = stop_event or threading.Event()
        self._env: Environment | None = None

    @property
    def kinds(self) -> list[NotificationKind]:
        return [NotificationKind(k) for k in self._settings.scanner.kinds]

    def _templates(self) -> Environment:
        if self._env is None:
            self._env = build_template_environment(
                "notifications", project_root=self._settings.project_root
            )
        return self._env

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run_tick(self) -> ServiceResult:
        """Run one scan over every enabled notification kind."""
        report = TickReport()
        for kind in self.kinds:
            if self._stop.is_set():
                report.interrupted = True
                break
            self._scan_kind(KIND_RULES[kind], report)

        log.info(
            "scanner.tick",
            sent=len(report.sent),
            failed=len(report.failed),
            interrupted=report.interrupted,
        )
        warnings = [f"{f['reference']}: {f['error']}" for f in report.failed]
        return ServiceResult(ok=True, op="run_tick", data=report.to_dict(), warnings=warnings)

    def render(self, record: ShipmentRecord, rule: KindRule) -> MailMessage:
        """Build the message for *record* without sending it."""
        mail_cfg = self._settings.mail
        to, cc = pick_recipients(
            rule.kind,
            shipper_email=record.shipper.email if record.shipper else None,
            consignee_email=record.consignee.email if record.consignee else None,
            notify_email=record.notify_party.email if record.notify_party else None,
            support_email=mail_cfg.support_address,
        )
        carrier = record.carrier
        body = (
            self._templates()
            .get_template(rule.template)
            .render(
                reference=record.reference,
                mode=record.mode.value,
                cargo_summary=cargo_summary(record),
                ports=record.ports,
                carrier=carrier,
                shipper=record.shipper or Contact(),
                consignee=record.consignee or Contact(),
                notify_party=record.notify_party or Contact(),
                etd=_date(carrier.etd if carrier else None, "TBA"),
                eta=_date(carrier.eta if carrier else None, "TBA"),
                delivered_on=_date(record.updated_at, "N/A"),
            )
        )
        return MailMessage(
            to=to,
            cc=cc,
            subject=rule.subject.format(reference=record.reference),
            body=body,
            tags={"kind": rule.kind.value, "reference": record.reference or ""},
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _scan_kind(self, rule: KindRule, report: TickReport) -> None:
        candidates = self._repo.find(
            ShipmentFilter(statuses=(rule.trigger.value,), unnotified=rule.kind)
        )
        if not candidates:
            log.debug("scanner.idle", kind=rule.kind.value)
            return

        for record in candidates:
            if self._stop.is_set():
                report.interrupted = True
                return
            self._process(record, rule, report)

    def _process(self, record: ShipmentRecord, rule: KindRule, report: TickReport) -> None:
        entry = {"kind": rule.kind.value, "id": record.id or "", "reference": record.reference or ""}
        bound = log.bind(kind=rule.kind.value, reference=record.reference)
        try:
            message = self.render(record, rule)
            self._mailer.dispatch(message)
        except (DispatchError, TemplateError) as exc:
            bound.warning("scanner.dispatch_failed", error=str(exc))
            report.failed.append({**entry, "error": str(exc)})
            return
        except Exception as exc:
            bound.exception("scanner.record_failed")
            report.failed.append({**entry, "error": f"{type(exc).__name__}: {exc}"})
            return

        # Commit point: only reached after a successful dispatch.
        try:
            marked = self._repo.mark_notified(record.id or "", rule.kind)
        except Exception as exc:
            bound.exception("scanner.flag_failed")
            report.failed.append({**entry, "error": f"flag not saved: {exc}"})
            return

        if marked:
            bound.info("scanner.sent", to=message.to, cc=list(message.cc))
            report.sent.append({**entry, "to": message.to})
        else:
            # Another scanner instance flagged it between query and commit.
            bound.warning("scanner.already_flagged")
            report.skipped.append(entry)
