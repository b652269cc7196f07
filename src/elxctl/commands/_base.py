"""Click command classes carrying on-demand usage examples.

``--help`` stays short; ``--examples`` prints worked invocations and
exits. Example text refers to a booking as ``{ref}``. When shown, the
placeholder becomes a sample reference in the project's configured
format, so an ``ACME`` project with six-digit padding sees
``ACME-2026-000042`` rather than the default ``ELX-2026-0042``.
"""

from __future__ import annotations

from typing import Any

import click

REFERENCE_PLACEHOLDER = "{ref}"
SAMPLE_SEQUENCE = 42


def check_examples(text: str) -> str:
    """Return *text* without surrounding blank lines.

    Raises:
        ValueError: An example invocation does not run ``elxctl``.
    """
    text = text.strip("\n")
    invocation = ""
    for line in text.splitlines():
        invocation += line.rstrip("\\").strip() + " "
        if line.endswith("\\"):
            continue
        if invocation.strip() and "elxctl " not in invocation:
            raise ValueError(f"Example does not invoke elxctl: {invocation.strip()!r}")
        invocation = ""
    return text


def sample_reference(ctx: click.Context) -> str:
    """A reference shaped like the ones this project issues."""
    from elxctl.commands._context import AppContext
    from elxctl.config.models import ReferencesConfig
    from elxctl.domain.references import format_reference
    from elxctl.services._helpers import current_year

    app = ctx.find_object(AppContext)
    refs = app.settings.references if app is not None else ReferencesConfig()
    return format_reference(
        refs.prefix, current_year(), SAMPLE_SEQUENCE, min_digits=refs.min_digits
    )


class _ExamplesMixin:
    """Adds an eager ``--examples`` flag to a Click command or group."""

    examples: str | None
    params: list[click.Parameter]

    def _attach_examples(self, examples: str | None) -> None:
        self.examples = check_examples(examples) if examples else None
        if self.examples is None:
            return
        self.params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=self._show_examples,
                help="Show usage examples.",
            )
        )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing or self.examples is None:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples.replace(REFERENCE_PLACEHOLDER, sample_reference(ctx)))
        ctx.exit(0)


class ElxCommand(_ExamplesMixin, click.Command):
    """Command with an optional ``examples`` block."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._attach_examples(examples)


class ElxGroup(_ExamplesMixin, click.Group):
    """Group with an optional ``examples`` block.

    Subcommands registered through the group default to :class:`ElxCommand`.
    """

    command_class = ElxCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._attach_examples(examples)
