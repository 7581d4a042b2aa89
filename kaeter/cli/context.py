from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import typer

from kaeter.core.config import CONFIG_FILE_NAME, KaeterConfig, load_config
from kaeter.core.errors import ErrorCode
from kaeter.core.result import Err, Ok
from kaeter.git.repository import Repository
from kaeter.output.console import ConsoleProtocol, RichConsole
from kaeter.platform.process import ProcessRunner, SubprocessRunner


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Options of the root command, shared by every subcommand."""

    paths: tuple[Path, ...] = ()
    git_main_branch: str | None = None
    verbose: bool = False


@dataclass(frozen=True, slots=True)
class CLIContext:
    options: GlobalOptions
    repo_root: Path
    config: KaeterConfig
    console: ConsoleProtocol
    runner: ProcessRunner
    repo: Repository = field(repr=False)

    @property
    def paths(self) -> tuple[Path, ...]:
        return self.options.paths

    @property
    def trunk(self) -> str:
        return self.config.git.main_branch


def global_options(ctx: typer.Context) -> GlobalOptions:
    obj = ctx.find_root().obj
    if isinstance(obj, GlobalOptions):
        return obj
    return GlobalOptions()


def _toplevel(path: Path, runner: ProcessRunner) -> Path | None:
    match Repository(path, runner).show_toplevel():
        case Ok(root):
            return root
        case Err(_):
            return None


def resolve_repo_root(paths: tuple[Path, ...], runner: ProcessRunner, console: ConsoleProtocol) -> Path | None:
    """Repository of the working directory, else the one of the first usable path."""
    root = _toplevel(Path(os.getcwd()), runner)
    if root is not None:
        return root
    console.warning("unable to resolve repository from working directory, falling back to --path")
    for path in paths:
        directory = path if path.is_dir() else path.parent
        root = _toplevel(directory, runner)
        if root is not None:
            return root
    return None


def build_context(
    ctx: typer.Context,
    *,
    require_paths: bool = False,
    runner: ProcessRunner | None = None,
) -> CLIContext:
    """Resolve repository root and configuration for a command.

    With ``require_paths`` at least one ``--path`` is needed and all of them
    must belong to the repository kaeter works in.
    """
    options = global_options(ctx)
    console = RichConsole(verbose=options.verbose)
    runner = runner or SubprocessRunner()

    repo_root = resolve_repo_root(options.paths, runner, console)
    if repo_root is None:
        console.error("unable to determine repository root based on working directory and path(s)")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    if require_paths:
        _validate_paths(options.paths, repo_root, runner, console)

    config = KaeterConfig()
    config_path = repo_root / CONFIG_FILE_NAME
    if config_path.exists():
        match load_config(config_path):
            case Ok(loaded):
                config = loaded
            case Err(e):
                console.warning(f"failed to parse config at {config_path}: {e.message}")
    config = config.with_main_branch(options.git_main_branch)

    return CLIContext(
        options=options,
        repo_root=repo_root,
        config=config,
        console=console,
        runner=runner,
        repo=Repository(repo_root, runner),
    )


def _validate_paths(
    paths: tuple[Path, ...],
    repo_root: Path,
    runner: ProcessRunner,
    console: ConsoleProtocol,
) -> None:
    if not paths:
        console.error("at least one --path/-p option is required")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    for path in paths:
        if not path.exists():
            console.error(f"no such file or directory: {path}")
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        root = _toplevel(path if path.is_dir() else path.parent, runner)
        if root is None:
            console.error(f"unable to determine repository root from path: {path}")
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        if root != repo_root:
            console.error("all paths have to be in the same repository")
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
