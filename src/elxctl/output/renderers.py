"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from elxctl.domain.pricing import DEFAULT_CURRENCY, format_minor
from elxctl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from elxctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    # Listings print one reference per line
    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(str(item.get("reference") or item.get("id", "")) for item in items)

    reference = result.data.get("reference")
    return str(reference) if reference else f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="elx.ok")
    op = Text(f"  {result.op}", style="elx.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="elx.key")
    if isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    elif key == "id" or key.endswith("_id"):
        v = Text(str(value), style="elx.id")
    elif key == "reference":
        v = Text(str(value), style="elx.reference")
    elif key in ("status", "previous_status", "held_from"):
        v = Text(str(value), style=style_for_status(str(value)))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}")


def _currency(data: dict[str, Any]) -> str:
    pricing = data.get("pricing") or {}
    base = pricing.get("base") or {}
    return str(base.get("currency") or DEFAULT_CURRENCY)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="elx.error")
    op = Text(f"  {result.op}", style="elx.op")
    code = Text(f" [{err.code}]" if err else "", style="dim")
    console.print(label, op, code, Text(": "), msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render update, transition and append results."""
    _status_line(console, result)
    mutation_keys = (
        "id",
        "reference",
        "status",
        "previous_status",
        "held_from",
        "version",
        "fields_changed",
        "cargo_type",
        "mode",
        "tracking_count",
        "document_count",
        "payment_count",
        "deleted",
    )
    for key in mutation_keys:
        if key in result.data:
            _field(console, key, result.data[key])
    if "total" in result.data:
        _field(console, "total", result.data["total"])
    if verbose:
        for key in ("event", "document", "payment", "surcharge"):
            if key in result.data:
                _field(console, key, result.data[key])
        _render_meta(console, result)


# ── Query renderers ───────────────────────────────────────────────────


def _render_shipment(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render one shipment as a panel."""
    d = result.data
    ports = d.get("ports") or {}
    lines: list[str] = [
        f"status: {d.get('status')}"
        + (f" (held from {d['held_from']})" if d.get("held_from") else ""),
        f"cargo: {d.get('cargo_type')} / {d.get('mode')}",
        f"route: {ports.get('origin') or '?'} -> {ports.get('destination') or '?'}",
        f"customer: {d.get('customer_id')}",
        f"total: {format_minor(int(d.get('total') or 0), _currency(d))}",
    ]
    carrier = d.get("carrier") or {}
    if carrier.get("vessel"):
        lines.append(f"vessel: {carrier['vessel']} {carrier.get('voyage') or ''}".rstrip())
    flags = d.get("notifications") or {}
    sent = [k.removesuffix("_sent") for k, v in flags.items() if v]
    lines.append(f"notified: {', '.join(sent) if sent else '-'}")
    lines.append(f"version: {d.get('version')}")

    tracking = d.get("tracking") or []
    if tracking:
        lines.append("")
        shown = tracking if verbose else tracking[-5:]
        for event in shown:
            where = f" @ {event['location']}" if event.get("location") else ""
            lines.append(f"  {event.get('occurred_at')}  {event.get('code')}{where}")

    if verbose:
        for key in ("documents", "payments"):
            for entry in d.get(key) or []:
                lines.append(f"{key[:-1]}: {_json.dumps(entry, separators=(',', ':'))}")

    title = f"{d.get('reference', '?')} ({d.get('id', '?')})"
    style = style_for_status(str(d.get("status", "")))
    console.print(Panel("\n".join(lines), title=title, border_style=style, expand=False))


def _render_shipment_table(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    """Render list_shipments results as a table."""
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Reference", style="elx.reference", no_wrap=True)
    table.add_column("Status")
    table.add_column("Cargo")
    table.add_column("Mode")
    table.add_column("Route")
    if verbose:
        table.add_column("ID", style="elx.id")
        table.add_column("Created", style="dim")

    for item in items:
        status = str(item.get("status", ""))
        row: list[Any] = [
            str(item.get("reference", "")),
            Text(status, style=style_for_status(status)),
            str(item.get("cargo_type", "")),
            str(item.get("mode", "")),
            f"{item.get('origin') or '?'} -> {item.get('destination') or '?'}",
        ]
        if verbose:
            row += [str(item.get("id", "")), str(item.get("created_at", ""))]
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} shipments")


def _render_pricing(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the pricing breakdown."""
    d = result.data
    currency = str(d.get("currency") or DEFAULT_CURRENCY)
    table = Table(show_header=False, pad_edge=False, expand=False, box=None)
    table.add_column("Line", style="elx.key")
    table.add_column("Amount", style="elx.money", justify="right")
    table.add_row("base", format_minor(d.get("base", 0), currency))
    for surcharge in d.get("surcharges", []):
        table.add_row(f"+ {surcharge['code']}", format_minor(surcharge["amount"], currency))
    table.add_row("insurance", format_minor(d.get("insurance", 0), currency))
    table.add_row("vat", format_minor(d.get("vat", 0), currency))
    table.add_row("discount", "-" + format_minor(d.get("discount", 0), currency))
    table.add_row(Text("total", style="bold"), Text(str(d.get("display", "")), style="bold"))

    _status_line(console, result)
    _field(console, "reference", d.get("reference"))
    console.print(table)


# ── Scanner renderers ─────────────────────────────────────────────────


def _render_tick(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render one notification tick."""
    d = result.data
    _status_line(console, result)
    _field(console, "sent", d.get("sent_count", 0))
    _field(console, "failed", d.get("failed_count", 0))
    if d.get("interrupted"):
        _field(console, "interrupted", True)
    for sent in d.get("sent", []) if verbose else []:
        console.print(f"  [elx.ok]sent[/elx.ok] {sent['kind']} {sent['reference']} -> {sent['to']}")
    for failed in d.get("failed", []):
        console.print(
            f"  [elx.error]failed[/elx.error] {failed['kind']} {failed['reference']}: "
            f"{failed['error']}"
        )


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Create / query
    "create_shipment": _render_shipment,
    "get": _render_shipment,
    "get_by_reference": _render_shipment,
    "list_shipments": _render_shipment_table,
    "pricing_total": _render_pricing,
    # Mutations
    "update": _render_mutation,
    "transition_status": _render_mutation,
    "append_tracking": _render_mutation,
    "append_document": _render_mutation,
    "add_surcharge": _render_mutation,
    "add_payment": _render_mutation,
    "soft_delete": _render_mutation,
    "hard_delete": _render_mutation,
    # Notifications
    "run_tick": _render_tick,
}
