"""Lint command - basic quality checks of modules."""

from __future__ import annotations

import typer

from kaeter.cli.commands._helpers import exit_on_error
from kaeter.cli.context import build_context
from kaeter.services.lint import check_modules_under


def lint(
    ctx: typer.Context,
    strict: bool = typer.Option(False, "--strict", help="Also fail on pending autoreleases."),
) -> None:
    """Check every module found below the given paths.

    Checked: README.md exists, CHANGELOG.md exists and documents every
    released version. Issues of all scanned modules are reported together.
    """
    cli = build_context(ctx, require_paths=True)
    if strict:
        cli.console.info("linting in strict mode")

    checked = 0
    for path in cli.paths:
        result = check_modules_under(path.absolute(), strict=strict)
        checked += exit_on_error(result.map_err(lambda e: e.with_context("lint failed")), cli)
    cli.console.success(f"no issues detected in {checked} module(s)")
