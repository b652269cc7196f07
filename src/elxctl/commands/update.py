"""Commands: mutate an existing shipment.

Every command takes a shipment ID or booking reference and an optional
``--expected-version`` guard against lost updates.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import click

from elxctl.commands._base import ElxCommand
from elxctl.domain.lifecycle import ShipmentStatus
from elxctl.domain.shipment import PaymentStatus

if TYPE_CHECKING:
    from elxctl.commands._context import AppContext
    from elxctl.services.update import UpdateService

_DATE = click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"])

_expected_version = click.option(
    "--expected-version",
    type=int,
    default=None,
    help="Fail with CONCURRENCY_CONFLICT unless the shipment is at this version.",
)


def _update_service(app: AppContext) -> UpdateService:
    from elxctl.services.update import UpdateService

    return UpdateService(app.repository, app.settings)


def _parse_json(_ctx: click.Context, _param: click.Parameter, value: str | None) -> Any:
    if value is None:
        return None
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise click.BadParameter("must be a JSON object")
    return data


@click.command(
    cls=ElxCommand,
    examples="""\
  elxctl update {ref} --vessel "Grande Tema" --voyage 042W
  elxctl update {ref} --eta 2026-11-20 --consignee-email buyer@example.com
  elxctl update {ref} --cargo-json '{"vehicle": {"vin": "JTMHV05J604123456"}}'
  elxctl update {ref} --changes-json '{"notify_party": null}' --expected-version 3""",
)
@click.argument("shipment")
@click.option("--origin", default=None, help="New port of loading.")
@click.option("--destination", default=None, help="New port of discharge.")
@click.option("--vessel", default=None, help="Vessel name.")
@click.option("--voyage", default=None, help="Voyage number.")
@click.option("--etd", type=_DATE, default=None, help="Estimated departure.")
@click.option("--eta", type=_DATE, default=None, help="Estimated arrival.")
@click.option("--atd", type=_DATE, default=None, help="Actual departure.")
@click.option("--ata", type=_DATE, default=None, help="Actual arrival.")
@click.option("--shipper-email", default=None, help="Shipper email.")
@click.option("--consignee-email", default=None, help="Consignee email.")
@click.option("--notify-email", default=None, help="Notify party email.")
@click.option("--cargo-type", default=None, help="Switch cargo type (requires --cargo-json).")
@click.option("--cargo-json", callback=_parse_json, default=None, help="Cargo changes as JSON.")
@click.option(
    "--changes-json", callback=_parse_json, default=None, help="Raw field changes as JSON."
)
@_expected_version
@click.pass_obj
def update(
    app: AppContext,
    shipment: str,
    origin: str | None,
    destination: str | None,
    vessel: str | None,
    voyage: str | None,
    etd: Any,
    eta: Any,
    atd: Any,
    ata: Any,
    shipper_email: str | None,
    consignee_email: str | None,
    notify_email: str | None,
    cargo_type: str | None,
    cargo_json: dict[str, Any] | None,
    changes_json: dict[str, Any] | None,
    expected_version: int | None,
) -> None:
    """Update routing, schedule, contacts, or cargo details."""
    changes: dict[str, Any] = dict(changes_json or {})

    ports = {k: v for k, v in {"origin": origin, "destination": destination}.items() if v}
    if ports:
        changes["ports"] = ports
    schedule = {"vessel": vessel, "voyage": voyage, "etd": etd, "eta": eta, "atd": atd, "ata": ata}
    carrier = {k: v for k, v in schedule.items() if v is not None}
    if carrier:
        changes["carrier"] = carrier
    for key, email in (
        ("shipper", shipper_email),
        ("consignee", consignee_email),
        ("notify_party", notify_email),
    ):
        if email is not None:
            changes[key] = {"email": email}
    if cargo_json is not None:
        changes["cargo"] = cargo_json
    if cargo_type is not None:
        changes["cargo_type"] = cargo_type

    if not changes:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)

    app.emit(
        _update_service(app).update(
            app.resolve_id(shipment), changes=changes, expected_version=expected_version
        )
    )


@click.command(
    cls=ElxCommand,
    examples="""\
  elxctl status {ref} booked
  elxctl status {ref} sailed --location Southampton --note "Departed on time"
  elxctl status {ref} on_hold --note "Awaiting customs"
  elxctl status {ref} sailed   # resume from hold""",
)
@click.argument("shipment")
@click.argument("new_status", type=click.Choice([s.value for s in ShipmentStatus]))
@click.option("--note", default=None, help="Record a tracking event with this note.")
@click.option("--location", default=None, help="Record a tracking event at this location.")
@_expected_version
@click.pass_obj
def status(
    app: AppContext,
    shipment: str,
    new_status: str,
    note: str | None,
    location: str | None,
    expected_version: int | None,
) -> None:
    """Move a shipment to a new lifecycle status."""
    app.emit(
        _update_service(app).transition_status(
            app.resolve_id(shipment),
            new_status,
            note=note,
            location=location,
            expected_version=expected_version,
        )
    )


@click.command(
    cls=ElxCommand,
    examples="""\
  elxctl track {ref} GATE_IN --location "Southampton Eastern Docks"
  elxctl track {ref} customs_hold --description "Inspection" --at 2026-11-02T09:30""",
)
@click.argument("shipment")
@click.argument("code")
@click.option("--description", default=None, help="Event description.")
@click.option("--location", default=None, help="Where it happened.")
@click.option("--at", "occurred_at", type=_DATE, default=None, help="When it happened (default now).")
@_expected_version
@click.pass_obj
def track(
    app: AppContext,
    shipment: str,
    code: str,
    description: str | None,
    location: str | None,
    occurred_at: Any,
    expected_version: int | None,
) -> None:
    """Append a tracking event."""
    app.emit(
        _update_service(app).append_tracking(
            app.resolve_id(shipment),
            code,
            description=description,
            occurred_at=occurred_at,
            location=location,
            expected_version=expected_version,
        )
    )


@click.command(
    cls=ElxCommand,
    examples="""\
  elxctl document {ref} BOL https://files.example.com/bol-0042.pdf
  elxctl document {ref} V5 https://files.example.com/v5.pdf --by ops@example.com""",
)
@click.argument("shipment")
@click.argument("doc_type")
@click.argument("url")
@click.option("--by", "uploaded_by", default=None, help="Uploader.")
@_expected_version
@click.pass_obj
def document(
    app: AppContext,
    shipment: str,
    doc_type: str,
    url: str,
    uploaded_by: str | None,
    expected_version: int | None,
) -> None:
    """Attach a document reference."""
    app.emit(
        _update_service(app).append_document(
            app.resolve_id(shipment),
            doc_type,
            url,
            uploaded_by=uploaded_by,
            expected_version=expected_version,
        )
    )


@click.command(
    cls=ElxCommand,
    examples="""\
  elxctl surcharge {ref} BAF 2500
  elxctl surcharge {ref} THC 1200 --description 'Terminal handling'""",
)
@click.argument("shipment")
@click.argument("code")
@click.argument("amount", type=click.IntRange(min=0))
@click.option("--currency", default=None, help="ISO currency code (default from config).")
@click.option("--description", default=None, help="Surcharge description.")
@_expected_version
@click.pass_obj
def surcharge(
    app: AppContext,
    shipment: str,
    code: str,
    amount: int,
    currency: str | None,
    description: str | None,
    expected_version: int | None,
) -> None:
    """Add a surcharge (amount in minor units)."""
    app.emit(
        _update_service(app).add_surcharge(
            app.resolve_id(shipment),
            code,
            amount,
            currency=currency,
            description=description,
            expected_version=expected_version,
        )
    )


@click.command(
    cls=ElxCommand,
    examples="""\
  elxctl payment {ref} stripe 117000 --reference pi_3N9 --status succeeded""",
)
@click.argument("shipment")
@click.argument("provider")
@click.argument("amount", type=click.IntRange(min=0))
@click.option("--currency", default=None, help="ISO currency code (default from config).")
@click.option(
    "--status",
    "payment_status",
    type=click.Choice([s.value for s in PaymentStatus]),
    default=PaymentStatus.PENDING.value,
    show_default=True,
    help="Payment attempt status.",
)
@click.option("--reference", default=None, help="Provider reference.")
@_expected_version
@click.pass_obj
def payment(
    app: AppContext,
    shipment: str,
    provider: str,
    amount: int,
    currency: str | None,
    payment_status: str,
    reference: str | None,
    expected_version: int | None,
) -> None:
    """Record a payment attempt (amount in minor units)."""
    app.emit(
        _update_service(app).add_payment(
            app.resolve_id(shipment),
            provider,
            amount,
            currency=currency,
            status=payment_status,
            reference=reference,
            expected_version=expected_version,
        )
    )


@click.command(
    cls=ElxCommand,
    examples="""\
  elxctl delete {ref}
  elxctl delete 3f2a9c0d8e7b4a1c9d0e1f2a3b4c5d6e --hard --yes""",
)
@click.argument("shipment")
@click.option("--hard", is_flag=True, help="Remove the row entirely instead of soft-deleting.")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt for --hard.")
@_expected_version
@click.pass_obj
def delete(
    app: AppContext,
    shipment: str,
    hard: bool,
    yes: bool,
    expected_version: int | None,
) -> None:
    """Soft-delete a shipment (or remove it with --hard)."""
    service = _update_service(app)
    shipment_id = app.resolve_id(shipment)
    if not hard:
        app.emit(service.soft_delete(shipment_id, expected_version=expected_version))
        return
    if not yes:
        click.confirm(f"Permanently delete {shipment}?", abort=True, err=True)
    app.emit(service.hard_delete(shipment_id))
