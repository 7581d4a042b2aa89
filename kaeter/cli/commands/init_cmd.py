"""Init command - create a new kaeter module."""

from __future__ import annotations

import typer

from kaeter.cli.commands._helpers import exit_with_code
from kaeter.cli.context import global_options
from kaeter.core.errors import ErrorCode
from kaeter.core.result import Err, Ok
from kaeter.modules.init import InitOptions, initialize_module
from kaeter.output.console import RichConsole, Style


def init(
    ctx: typer.Context,
    module_id: str = typer.Option(..., "--id", help="Identifier of the module, maven like coordinates preferred."),
    scheme: str = typer.Option("SemVer", "--scheme", help="Versioning scheme: SemVer, CalVer or AnyStringVer."),
    no_readme: bool = typer.Option(False, "--no-readme", help="Skip README.md creation even if none exists."),
    no_changelog: bool = typer.Option(False, "--no-changelog", help="Skip CHANGELOG.md creation even if none exists."),
) -> None:
    """Initialize a module's versions.yaml file.

    Fails when the module already has a ledger. A basic README.md and
    CHANGELOG.md are created when missing; when both are created the README
    links to the changelog.
    """
    options = global_options(ctx)
    console = RichConsole(verbose=options.verbose)
    if len(options.paths) != 1:
        console.error("init supports exactly one path value")
        exit_with_code(int(ErrorCode.USER_ERROR))

    module_path = options.paths[0]
    console.info(f"initializing new kaeter module {module_id} in {module_path}")
    result = initialize_module(
        InitOptions(
            module_id=module_id,
            module_path=module_path,
            versioning=scheme,
            init_readme=not no_readme,
            init_changelog=not no_changelog,
        )
    )
    match result:
        case Err(e):
            console.error(e.message)
            if e.hint:
                console.print(f"hint: {e.hint}", Style.DIM)
            exit_with_code(int(ErrorCode.for_error(e)))
        case Ok(versions):
            console.success(f"module {versions.id} initialized with {versions.versioning}")
