"""Command group: read-only shipment queries."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from elxctl.commands._base import ElxGroup
from elxctl.domain.lifecycle import ShipmentStatus

if TYPE_CHECKING:
    from elxctl.commands._context import AppContext

_QUERY_EXAMPLES = """\
  elxctl query get {ref}
  elxctl query list --customer c_42 --status sailed
  elxctl --json query total {ref}"""


@click.group(cls=ElxGroup, examples=_QUERY_EXAMPLES)
@click.pass_obj
def query(app: AppContext) -> None:
    """Look up and list shipments."""


@query.command(
    examples="""\
  elxctl query get {ref}
  elxctl query get 3f2a9c0d8e7b4a1c9d0e1f2a3b4c5d6e
  elxctl -v query get {ref}   # full tracking, documents, payments"""
)
@click.argument("shipment")
@click.pass_obj
def get(app: AppContext, shipment: str) -> None:
    """Show one shipment by ID or booking reference."""
    from elxctl.domain.references import validate_reference
    from elxctl.services.query import QueryService

    service = QueryService(app.repository, app.settings)
    if validate_reference(shipment, app.settings.references.prefix):
        app.emit(service.get_by_reference(shipment))
    else:
        app.emit(service.get(shipment))


@query.command(
    "list",
    examples="""\
  elxctl query list
  elxctl query list --customer c_42
  elxctl query list --status delivered --limit 20
  elxctl -q query list --status on_hold   # references only""",
)
@click.option("--customer", "customer_id", default=None, help="Filter by customer ID.")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ShipmentStatus]),
    default=None,
    help="Filter by status.",
)
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum rows.")
@click.pass_obj
def list_cmd(
    app: AppContext,
    customer_id: str | None,
    status: str | None,
    limit: int | None,
) -> None:
    """List shipments, newest first."""
    from elxctl.services.query import QueryService

    app.emit(
        QueryService(app.repository, app.settings).list_shipments(
            customer_id=customer_id, status=status, limit=limit
        )
    )


@query.command(
    examples="""\
  elxctl query total {ref}"""
)
@click.argument("shipment")
@click.pass_obj
def total(app: AppContext, shipment: str) -> None:
    """Show the pricing breakdown and derived total."""
    from elxctl.services.query import QueryService

    app.emit(QueryService(app.repository, app.settings).pricing_total(app.resolve_id(shipment)))
