from __future__ import annotations

from pathlib import Path

import typer

from kaeter import __version__
from kaeter.cli.commands.autorelease_cmd import autorelease
from kaeter.cli.commands.ci_cmd import ci_app
from kaeter.cli.commands.info_cmd import info, needsrelease
from kaeter.cli.commands.init_cmd import init
from kaeter.cli.commands.inventory_cmd import inventorize, module
from kaeter.cli.commands.lint_cmd import lint
from kaeter.cli.commands.prepare_cmd import prepare
from kaeter.cli.commands.read_plan_cmd import read_plan
from kaeter.cli.commands.release_cmd import release
from kaeter.cli.context import GlobalOptions


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help=(
        "kaeter handles the releasing and versioning of modules within a monorepo. "
        "Developers request the release of modules, a separate build infrastructure carries it out."
    ),
)


# Commands
app.command()(prepare)
app.command()(autorelease)
app.command("ar", hidden=True)(autorelease)
app.command()(release)
app.command()(init)
app.command()(lint)
app.command()(info)
app.command()(inventorize)
app.command()(module)
app.command("read-plan")(read_plan)
app.command()(needsrelease)
app.command("nr", hidden=True)(needsrelease)

# Sub-apps
app.add_typer(ci_app, name="ci")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        is_eager=True,
        callback=_show_version,
    ),
    path: list[Path] | None = typer.Option(
        None,
        "--path",
        "-p",
        help="Module to release, or repository to run a release plan in. Repeatable where supported.",
        show_default=False,
    ),
    git_main_branch: str | None = typer.Option(
        None,
        "--git-main-branch",
        help='Main branch of the repository, also configurable as git.main.branch in ".kaeter.toml".',
        show_default=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "--debug", "-d", help="More verbose output."),
) -> None:
    ctx.obj = GlobalOptions(
        paths=tuple(path or ()),
        git_main_branch=git_main_branch,
        verbose=verbose,
    )


def main() -> None:
    app()
