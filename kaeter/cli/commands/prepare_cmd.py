"""Prepare command - bump ledgers and commit a release plan."""

from __future__ import annotations

import typer

from kaeter.cli.commands._helpers import exit_on_error
from kaeter.cli.context import build_context
from kaeter.core.errors import ErrorCode
from kaeter.modules.version import Bump
from kaeter.services.prepare import PrepareConfig, PrepareService


def prepare(
    ctx: typer.Context,
    minor: bool = typer.Option(False, "--minor", help="Bump the minor version (SemVer modules)."),
    major: bool = typer.Option(False, "--major", help="Bump the major version (SemVer modules)."),
    version: str | None = typer.Option(
        None,
        "--version",
        help="Use this version for the prepared release instead of deriving one.",
        show_default=False,
    ),
    release_from: str | None = typer.Option(
        None,
        "--release-from",
        "--releaseFrom",
        help="Git ref (branch, tag or hash) to release from. Defaults to the git main branch.",
        show_default=False,
    ),
    skip_lint: bool = typer.Option(False, "--skip-lint", help="Skip validation of the prepared modules."),
) -> None:
    """Prepare the release of the modules given with --path.

    Determines the next version, updates each versions.yaml and commits the
    release plan.
    """
    cli = build_context(ctx, require_paths=True)
    if sum((minor, major, version is not None)) > 1:
        cli.console.error("--minor, --major and --version are mutually exclusive")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    bump: Bump = "major" if major else "minor" if minor else "patch"
    service = PrepareService(repo=cli.repo, console=cli.console)
    plan = exit_on_error(
        service.prepare(
            PrepareConfig(
                module_paths=tuple(p.absolute() for p in cli.paths),
                repository_ref=release_from or cli.trunk,
                bump=bump,
                user_version=version,
                skip_lint=skip_lint,
            )
        ),
        cli,
    )
    cli.console.success(f"prepared {len(plan.releases)} release(s)")
