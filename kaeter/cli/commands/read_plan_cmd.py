"""Read-plan command - detect a release plan in the last commit."""

from __future__ import annotations

from pathlib import Path

import typer

from kaeter.cli.context import CLIContext, build_context
from kaeter.core.errors import ErrorCode
from kaeter.core.result import Err
from kaeter.platform.files import atomic_write_text
from kaeter.services.release_plan import has_release_plan, plan_from_commit_message


def read_plan(
    ctx: typer.Context,
    json_output: Path | None = typer.Option(
        None,
        "--json-output",
        help="Also write the plan as JSON to this path.",
        show_default=False,
    ),
    commit_message: str | None = typer.Option(
        None,
        "--commit-message",
        help="Read the release plan from this message instead of the HEAD commit.",
        show_default=False,
    ),
) -> None:
    """Print the release plan of the last commit.

    Exit status: 0 when a plan was found, 2 on repository errors and 4 when
    the commit holds no release plan. Handy as a pipeline condition.
    """
    cli = build_context(ctx)
    raise typer.Exit(code=int(_read_plan(cli, json_output, commit_message)))


def _read_plan(cli: CLIContext, json_output: Path | None, commit_message: str | None) -> ErrorCode:
    message = commit_message
    if not message:
        cli.console.debug("no commit message passed in, reading it from HEAD")
        read = cli.repo.commit_message("HEAD")
        if isinstance(read, Err):
            cli.console.error(f"failed to get commit message for HEAD: {read.error.pretty()}")
            return ErrorCode.ENV_ERROR
        message = read.value

    if not has_release_plan(message):
        cli.console.info("the current HEAD commit does not seem to contain a release plan")
        return ErrorCode.NO_PLAN

    parsed = plan_from_commit_message(message)
    if isinstance(parsed, Err):
        cli.console.error(f"failed to read release plan from commit message: {parsed.error.pretty()}")
        return ErrorCode.ENV_ERROR
    plan = parsed.value

    cli.console.info("found release plan with release targets:")
    for target in plan.releases:
        cli.console.print(target.marshal())

    if json_output is not None:
        try:
            atomic_write_text(json_output, plan.to_json(), mode=0o600)
        except OSError as e:
            cli.console.error(f"unable to write release plan to {json_output}: {e}")
            return ErrorCode.ENV_ERROR
        cli.console.debug(f"release plan written to {json_output}")
    return ErrorCode.OK
