"""CI commands - pipeline oriented release helpers."""

from __future__ import annotations

from pathlib import Path

import typer

from kaeter.cli.commands._helpers import exit_on_error, single_path
from kaeter.cli.context import build_context, global_options
from kaeter.core.errors import ErrorCode
from kaeter.core.result import Err, Ok
from kaeter.output.console import RichConsole, Style
from kaeter.services.ci import update_pull_request_body
from kaeter.services.release import ReleaseService

ci_app = typer.Typer(
    no_args_is_help=True,
    help="Commands meant to run in CI pipelines.",
    add_completion=False,
)


@ci_app.command("autoreleaseplan")
def autoreleaseplan(
    ctx: typer.Context,
    changeset: Path = typer.Option(Path("./changeset.json"), "--changeset", help="Change information file."),
    output: Path = typer.Option(Path("./prbody.md"), "--output", help="Updated pull request body output file."),
) -> None:
    """Generate an updated pull request body with an autorelease plan.

    Previous plan lines are stripped from the body found in the changeset and
    one ``Autorelease-Plan:`` line is added per module with an autorelease.
    """
    console = RichConsole(verbose=global_options(ctx).verbose)
    match update_pull_request_body(changeset, output, console=console):
        case Err(e):
            console.error(e.message)
            if e.hint:
                console.print(f"hint: {e.hint}", Style.DIM)
            raise typer.Exit(code=int(ErrorCode.for_error(e)))
        case Ok(_):
            pass


@ci_app.command("release")
def ci_release(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Build and test but don't push the release."),
) -> None:
    """Release the latest version of a single module from the current tree."""
    cli = build_context(ctx)
    module_path = single_path(cli, "ci release")
    service = ReleaseService(repo=cli.repo, runner=cli.runner, console=cli.console)
    target = exit_on_error(service.release_latest(module_path, dry_run=dry_run), cli)
    cli.console.success(f"released {target.marshal()}")
