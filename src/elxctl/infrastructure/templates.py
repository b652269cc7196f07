"""Jinja2 template loading with per-project override support."""

from __future__ import annotations

from pathlib import Path

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader, StrictUndefined


def build_template_environment(group: str, *, project_root: Path | None = None) -> Environment:
    """Build a Jinja2 environment with project overrides before packaged defaults.

    Overrides are loaded from ``.elxctl/templates/<group>/`` (or the
    shared ``.elxctl/templates/`` root) inside the project, so operators
    can reword an email without touching the package.
    """
    loaders: list[BaseLoader] = []
    if project_root is not None:
        template_root = project_root / ".elxctl" / "templates"
        loaders.append(FileSystemLoader([str(template_root / group), str(template_root)]))

    loaders.append(PackageLoader("elxctl", f"templates/{group}"))
    return Environment(
        loader=ChoiceLoader(loaders),
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
