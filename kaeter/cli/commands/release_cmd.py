"""Release command - execute the release plan of the HEAD commit."""

from __future__ import annotations

import typer

from kaeter.cli.commands._helpers import exit_on_error
from kaeter.cli.context import build_context
from kaeter.core.errors import ErrorCode
from kaeter.services.release import ReleaseConfig, ReleaseService


def release(
    ctx: typer.Context,
    really: bool = typer.Option(False, "--really", help="Run the release target; without it only build and test run."),
    nocheckout: bool = typer.Option(
        False,
        "--nocheckout",
        help="Release from the current working tree instead of checking out each release commit.",
    ),
    skip_module: list[str] | None = typer.Option(
        None,
        "--skip-module",
        help="Module ID to skip even if present in the release plan (repeatable).",
        show_default=False,
    ),
    commit_message: str | None = typer.Option(
        None,
        "--commit-message",
        help="Read the release plan from this message instead of the HEAD commit.",
        show_default=False,
    ),
) -> None:
    """Execute the release plan found in the last commit."""
    cli = build_context(ctx)
    if really and commit_message:
        cli.console.error("--really and --commit-message are mutually exclusive")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    if not really:
        cli.console.warning("'really' is not set: will run build and tests but no release")
    if not nocheckout:
        cli.console.warning("'nocheckout' is not set: will check out the commit of each released version")

    service = ReleaseService(repo=cli.repo, runner=cli.runner, console=cli.console)
    result = service.run_plan(
        ReleaseConfig(
            trunk=cli.trunk,
            commit_message=commit_message,
            dry_run=not really,
            skip_checkout=nocheckout,
            skip_modules=frozenset(skip_module or ()),
        )
    )
    report = exit_on_error(result.map_err(lambda e: e.with_context("release failed")), cli)
    for target in report.skipped():
        cli.console.info(f"skipped {target.marshal()}")
    if report.dry_run:
        cli.console.success(f"built and tested {len(report.processed())} module(s), nothing released")
    else:
        cli.console.success(f"released {len(report.released())} module(s)")
