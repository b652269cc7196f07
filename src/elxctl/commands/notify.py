"""Command group: lifecycle email scanner."""

from __future__ import annotations

import signal
import threading
from typing import TYPE_CHECKING

import click

from elxctl.commands._base import ElxGroup

if TYPE_CHECKING:
    from elxctl.commands._context import AppContext
    from elxctl.services.notify import NotificationScanner

_NOTIFY_EXAMPLES = """\
  elxctl notify tick
  elxctl notify run --interval 30
  ELXCTL_MAIL__TRANSPORT=http ELXCTL_MAIL__API_KEY=... elxctl notify run"""


def _scanner(app: AppContext, stop_event: threading.Event | None = None) -> NotificationScanner:
    from elxctl.services.notify import NotificationScanner

    return NotificationScanner(app.repository, app.settings, app.mailer, stop_event=stop_event)


@click.group(cls=ElxGroup, examples=_NOTIFY_EXAMPLES)
@click.pass_obj
def notify(app: AppContext) -> None:
    """Send pending and delivered emails, at most once per shipment."""


@notify.command(
    examples="""\
  elxctl notify tick
  elxctl --json notify tick"""
)
@click.pass_obj
def tick(app: AppContext) -> None:
    """Run a single scan and exit."""
    app.emit(_scanner(app).run_tick())


@notify.command(
    examples="""\
  elxctl notify run
  elxctl notify run --interval 15
  elxctl notify run --max-ticks 3 --interval 1"""
)
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between ticks (default from [scanner] interval_seconds).",
)
@click.option("--max-ticks", type=click.IntRange(min=1), default=None, help="Stop after N ticks.")
@click.pass_obj
def run(app: AppContext, interval: float | None, max_ticks: int | None) -> None:
    """Scan on a fixed interval until interrupted."""
    from elxctl.services.result import ServiceResult
    from elxctl.services.scheduler import NotificationScheduler

    if not app.settings.scanner.enabled:
        app.emit(
            ServiceResult.failure(
                "run_scheduler",
                "SCANNER_DISABLED",
                "Scanner is disabled ([scanner] enabled = false)",
            )
        )
        return

    stop_event = threading.Event()
    scheduler = NotificationScheduler(
        _scanner(app, stop_event),
        interval or app.settings.scanner.interval_seconds,
        stop_event=stop_event,
    )

    def _on_signal(_signum: int, _frame: object) -> None:
        stop_event.set()

    previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        ticks = scheduler.run(max_ticks=max_ticks)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        app.close()

    app.emit(ServiceResult(ok=True, op="run_scheduler", data={"ticks": ticks}))
