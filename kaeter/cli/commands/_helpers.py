"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import typer

from kaeter.core.errors import ErrorCode, KaeterError
from kaeter.core.result import Err, Result
from kaeter.output.console import Style

if TYPE_CHECKING:
    from kaeter.cli.context import CLIContext


def exit_on_error[T](
    result: Result[T, KaeterError],
    ctx: CLIContext,
    error_code: ErrorCode | None = None,
) -> T:
    """Return the value of an Ok result, or report the error and exit.

    Without ``error_code`` the exit code is derived from the error kind.
    """
    if isinstance(result, Err):
        error = result.error
        ctx.console.error(error.message)
        if error.hint:
            ctx.console.print(f"hint: {error.hint}", Style.DIM)
        code = error_code if error_code is not None else ErrorCode.for_error(error)
        raise typer.Exit(code=int(code))
    return result.value


def single_path(ctx: CLIContext, command: str) -> Path:
    """The only ``--path`` given, as an absolute path."""
    if len(ctx.paths) != 1:
        ctx.console.error(f"{command} supports exactly one path, got: {len(ctx.paths)}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return ctx.paths[0].absolute()


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
