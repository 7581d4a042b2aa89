"""Info and needsrelease commands - release status of modules."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import typer

from kaeter.cli.commands._helpers import exit_on_error
from kaeter.cli.context import build_context
from kaeter.core.errors import ErrorCode
from kaeter.core.result import Err, Ok
from kaeter.modules.info import module_info, needs_release_info


def info(ctx: typer.Context) -> None:
    """Print information about the modules given with --path."""
    cli = build_context(ctx, require_paths=True)
    now = datetime.now(UTC)
    failures = 0
    for path in cli.paths:
        match module_info(path.absolute(), cli.repo):
            case Ok(details):
                cli.console.header(details.module_id)
                for line in details.lines(now):
                    cli.console.print(line)
            case Err(e):
                failures += 1
                cli.console.error(f"{path}: {e.pretty()}")
    if failures:
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def needsrelease(ctx: typer.Context) -> None:
    """Print one JSON object per module found below the given paths.

    Each object tells how many commits touched the module since its last
    release, when that release happened and whether an autorelease is pending.
    """
    cli = build_context(ctx, require_paths=True)
    module_errors = 0
    for path in cli.paths:
        cli.console.info(f"checking for modules in path {path}")
        infos = exit_on_error(needs_release_info(path.absolute(), cli.repo, cli.repo_root), cli)
        for item in infos:
            if item.error is not None:
                module_errors += 1
                cli.console.error(f"module with error {item.module_path}: {item.error.pretty()}")
            typer.echo(json.dumps(item.to_dict()))

    if module_errors:
        cli.console.error(f"several ({module_errors}) module(s) have parsing errors")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
