"""Subcommand modules for elxctl.

Provides register_commands() which uses deferred imports to keep
``elxctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from elxctl.commands.create import create
    from elxctl.commands.notify import notify
    from elxctl.commands.query import query

    cli.add_command(create)
    cli.add_command(query)
    cli.add_command(notify)

    # --- Standalone commands ---
    from elxctl.commands.update import (
        delete,
        document,
        payment,
        status,
        surcharge,
        track,
        update,
    )

    cli.add_command(update)
    cli.add_command(status)
    cli.add_command(track)
    cli.add_command(document)
    cli.add_command(surcharge)
    cli.add_command(payment)
    cli.add_command(delete)
