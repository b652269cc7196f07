"""Command group: shipment creation (vehicle, container, lcl)."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from elxctl.commands._base import ElxGroup
from elxctl.services.create import CreateService

if TYPE_CHECKING:
    from elxctl.commands._context import AppContext

_DATE = click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"])

_CREATE_EXAMPLES = """\
  elxctl create vehicle --customer c_42 --origin Southampton --destination Tema \\
      --make Toyota --model "Land Cruiser" --year 2019 --vin JTMHV05J604123456
  elxctl create container --customer c_42 --origin Felixstowe --destination Lagos \\
      --container-no MSCU1234567 --size 40HC --base 250000
  elxctl create lcl --customer c_7 --origin Tilbury --destination Accra \\
      --packages 12 --volume 3.5 --shipper-email ops@example.com"""


def _common_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every cargo subcommand."""
    options = [
        click.option("--customer", "customer_id", required=True, help="Owning customer ID."),
        click.option("--origin", required=True, help="Port of loading."),
        click.option("--destination", required=True, help="Port of discharge."),
        click.option("--origin-country", default=None, help="Origin country."),
        click.option("--destination-country", default=None, help="Destination country."),
        click.option("--pickup-address", default=None, help="Collection address."),
        click.option("--vessel", default=None, help="Vessel name."),
        click.option("--voyage", default=None, help="Voyage number."),
        click.option("--etd", type=_DATE, default=None, help="Estimated departure."),
        click.option("--eta", type=_DATE, default=None, help="Estimated arrival."),
        click.option("--shipper-name", default=None, help="Shipper name."),
        click.option("--shipper-email", default=None, help="Shipper email."),
        click.option("--consignee-name", default=None, help="Consignee name."),
        click.option("--consignee-email", default=None, help="Consignee email."),
        click.option("--notify-email", default=None, help="Notify party email (CC'd)."),
        click.option("--description", default=None, help="Cargo description."),
        click.option("--weight", "weight_kg", type=float, default=None, help="Weight in kg."),
        click.option("--base", type=int, default=0, show_default=True, help="Base price (minor units)."),
        click.option("--insurance", type=int, default=0, help="Insurance (minor units)."),
        click.option("--vat", type=int, default=0, help="VAT (minor units)."),
        click.option("--discount", type=int, default=0, help="Discount (minor units)."),
        click.option("--currency", default=None, help="ISO currency code (default from config)."),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _contact(name: str | None, email: str | None) -> dict[str, Any] | None:
    if name is None and email is None:
        return None
    return {"name": name, "email": email}


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _run_create(
    app: AppContext,
    cargo_type: str,
    cargo_fields: dict[str, Any],
    opts: dict[str, Any],
    *,
    container_procurement: dict[str, Any] | None = None,
) -> None:
    """Assemble the service call shared by every cargo subcommand."""
    cargo = _compact(
        {**cargo_fields, "description": opts["description"], "weight_kg": opts["weight_kg"]}
    )
    currency = opts["currency"] or app.settings.pricing.currency
    pricing = {
        key: {"amount": opts[key], "currency": currency}
        for key in ("base", "insurance", "vat", "discount")
    }
    carrier = _compact(
        {
            "vessel": opts["vessel"],
            "voyage": opts["voyage"],
            "etd": opts["etd"],
            "eta": opts["eta"],
        }
    )
    notify_email = opts["notify_email"]

    app.emit(
        CreateService(app.repository, app.settings).create_shipment(
            customer_id=opts["customer_id"],
            cargo_type=cargo_type,
            cargo={cargo_type: cargo},
            ports=_compact(
                {
                    "origin": opts["origin"],
                    "destination": opts["destination"],
                    "origin_country": opts["origin_country"],
                    "destination_country": opts["destination_country"],
                    "pickup_address": opts["pickup_address"],
                }
            ),
            carrier=carrier or None,
            shipper=_contact(opts["shipper_name"], opts["shipper_email"]),
            consignee=_contact(opts["consignee_name"], opts["consignee_email"]),
            notify_party={"email": notify_email} if notify_email else None,
            pricing=pricing,
            container_procurement=container_procurement,
        )
    )


@click.group(cls=ElxGroup, examples=_CREATE_EXAMPLES)
@click.pass_obj
def create(app: AppContext) -> None:
    """Create shipment bookings (vehicle, container, lcl)."""


@create.command(
    examples="""\
  elxctl create vehicle --customer c_42 --origin Southampton --destination Tema \\
      --make Toyota --model Hilux --year 2021
  elxctl --json create vehicle --customer c_42 --origin Southampton \\
      --destination Tema --vin JTMHV05J604123456 --booking-no BK-889"""
)
@click.option("--make", default=None, help="Vehicle make.")
@click.option("--model", default=None, help="Vehicle model.")
@click.option("--year", type=int, default=None, help="Model year.")
@click.option("--vin", default=None, help="Vehicle identification number.")
@click.option("--booking-no", default=None, help="Carrier booking number.")
@_common_options
@click.pass_obj
def vehicle(
    app: AppContext,
    make: str | None,
    model: str | None,
    year: int | None,
    vin: str | None,
    booking_no: str | None,
    **opts: Any,
) -> None:
    """Book a vehicle on RoRo."""
    cargo = {"make": make, "model": model, "year": year, "vin": vin, "booking_no": booking_no}
    _run_create(app, "vehicle", cargo, opts)


@create.command(
    examples="""\
  elxctl create container --customer c_42 --origin Felixstowe --destination Lagos \\
      --container-no MSCU1234567 --size 40HC --seal-no SL-1
  elxctl create container --customer c_42 --origin Felixstowe --destination Lagos \\
      --size 20GP --supplier 'Box Traders Ltd'"""
)
@click.option("--container-no", default=None, help="Container number.")
@click.option("--size", default=None, help="Container size (20GP, 40HC, ...).")
@click.option("--seal-no", default=None, help="Seal number.")
@click.option("--supplier", default=None, help="Container supplier, if procured for the booking.")
@_common_options
@click.pass_obj
def container(
    app: AppContext,
    container_no: str | None,
    size: str | None,
    seal_no: str | None,
    supplier: str | None,
    **opts: Any,
) -> None:
    """Book a full container load."""
    cargo = {"container_no": container_no, "size": size, "seal_no": seal_no}
    procurement = None
    if supplier is not None:
        procurement = {"supplier": supplier, "container_no": container_no}
    _run_create(app, "container", cargo, opts, container_procurement=procurement)


@create.command(
    examples="""\
  elxctl create lcl --customer c_7 --origin Tilbury --destination Accra \\
      --packages 12 --volume 3.5 --commodity 'household goods'"""
)
@click.option("--packages", type=int, default=None, help="Number of packages.")
@click.option("--volume", "volume_cbm", type=float, default=None, help="Volume in cubic metres.")
@click.option("--commodity", default=None, help="Commodity description.")
@_common_options
@click.pass_obj
def lcl(
    app: AppContext,
    packages: int | None,
    volume_cbm: float | None,
    commodity: str | None,
    **opts: Any,
) -> None:
    """Book a less-than-container-load consignment."""
    cargo = {"packages": packages, "volume_cbm": volume_cbm, "commodity": commodity}
    _run_create(app, "lcl", cargo, opts)

