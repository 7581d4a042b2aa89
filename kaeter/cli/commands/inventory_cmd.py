"""Inventorize and module commands - module inventory as JSON."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from kaeter.cli.commands._helpers import exit_on_error
from kaeter.cli.context import CLIContext, build_context
from kaeter.core.errors import ErrorCode, KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.modules.inventory import Inventory, inventorize_repo, read_inventory


def _repo_inventory(cli: CLIContext) -> Result[Inventory, KaeterError]:
    inventory = inventorize_repo(cli.repo_root, console=cli.console)
    error = inventory.error()
    if error is not None:
        return Err(error.with_context("failed to detect kaeter modules"))
    return Ok(inventory)


def _file_inventory(path: Path) -> Result[Inventory, KaeterError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(KaeterError(kind="io", message=f"unable to read inventory {path}: {e}"))
    return read_inventory(text)


def inventorize(ctx: typer.Context) -> None:
    """Print the inventory of all kaeter modules of the repository."""
    cli = build_context(ctx)
    inventory = exit_on_error(_repo_inventory(cli), cli)
    typer.echo(inventory.to_json())


def module(
    ctx: typer.Context,
    module_id: str = typer.Argument(..., help="ID of the module to describe."),
    inventory_path: Path | None = typer.Option(
        None,
        "--inventory",
        help="Read modules from this inventory file instead of scanning the repository.",
        show_default=False,
    ),
    annotations: bool = typer.Option(False, "--annotations", help="Print the module annotations only (JSON)."),
    get_path: bool = typer.Option(False, "--get-path", help="Print the module path only."),
) -> None:
    """Print a module of the inventory as JSON."""
    cli = build_context(ctx)
    if annotations and get_path:
        cli.console.error("--annotations and --get-path are mutually exclusive")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    loaded = _file_inventory(inventory_path) if inventory_path is not None else _repo_inventory(cli)
    inventory = exit_on_error(loaded.map_err(lambda e: e.with_context("failed to get module inventory")), cli)
    found = exit_on_error(inventory.get_module(module_id), cli)

    if annotations:
        typer.echo(json.dumps(found.annotations, indent=4))
    elif get_path:
        typer.echo(found.module_path)
    else:
        typer.echo(json.dumps(found.to_dict(), indent=4))
