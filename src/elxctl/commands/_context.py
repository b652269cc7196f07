"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy repository and mailer initialization
and centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from elxctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from elxctl.config.settings import ElxSettings
    from elxctl.infrastructure.mail import Mailer
    from elxctl.infrastructure.repository import ShipmentRepository
    from elxctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``. The repository is lazily
    initialized on first use so ``--help`` and ``--version`` never
    trigger database access.
    """

    def __init__(self, settings: ElxSettings) -> None:
        self.settings = settings
        self._repository: ShipmentRepository | None = None
        self._mailer: Mailer | None = None

        from elxctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def repository(self) -> ShipmentRepository:
        """The shipment repository (database opened on first access)."""
        if self._repository is None:
            from elxctl.infrastructure.repository import ShipmentRepository

            self._repository = ShipmentRepository.open(self.settings.db_path)
        return self._repository

    @property
    def mailer(self) -> Mailer:
        """The configured mail transport."""
        if self._mailer is None:
            from elxctl.infrastructure.mail import build_mailer

            try:
                self._mailer = build_mailer(self.settings.mail)
            except ValueError as exc:
                raise click.ClickException(str(exc)) from exc
        return self._mailer

    def resolve_id(self, value: str) -> str:
        """Accept a shipment ID or a booking reference; return the ID.

        Unknown references are returned unchanged so the service reports
        ``NOT_FOUND`` in the usual way.
        """
        from elxctl.domain.references import validate_reference

        if not validate_reference(value, self.settings.references.prefix):
            return value
        with self.repository.transaction() as txn:
            record = txn.find_by_reference(value)
        return record.id if record is not None and record.id else value

    def close(self) -> None:
        """Release the database engine and any HTTP client."""
        if self._repository is not None:
            self._repository.close()
            self._repository = None
        close = getattr(self._mailer, "close", None)
        if close is not None:
            close()
        self._mailer = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
