"""Autorelease command - request a release on merge."""

from __future__ import annotations

import typer

from kaeter.cli.commands._helpers import exit_on_error, single_path
from kaeter.cli.context import build_context
from kaeter.services.autorelease import AutoreleaseConfig, AutoreleaseService


def _split_tags(raw: list[str] | None) -> list[str] | None:
    if raw is None:
        return None
    return [tag.strip() for value in raw for tag in value.split(",")]


def autorelease(
    ctx: typer.Context,
    version: str | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Version to release once merged. Computed by the autorelease-version hook when omitted.",
        show_default=False,
    ),
    tags: list[str] | None = typer.Option(
        None,
        "--tags",
        help="Comma-separated custom tags for this release (e.g. production,stable). Empty clears them.",
        show_default=False,
    ),
    skip_lint: bool = typer.Option(False, "--skip-lint", help="Skip validation of the module."),
) -> None:
    """Configure a module to be released by CI when the branch is merged."""
    cli = build_context(ctx, require_paths=True)
    module_path = single_path(cli, "autorelease")

    service = AutoreleaseService(
        repo=cli.repo,
        repo_root=cli.repo_root,
        runner=cli.runner,
        console=cli.console,
    )
    exit_on_error(
        service.autorelease(
            AutoreleaseConfig(
                module_path=module_path,
                version=version or None,
                tags=_split_tags(tags),
                skip_lint=skip_lint,
            )
        ),
        cli,
    )
