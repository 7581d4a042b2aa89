"""Git repository adapter.

This module provides the Repository class used by every kaeter operation that
touches version control. All operations return Result types; failures carry a
``KaeterError`` of kind ``external_tool`` whose hint is git's combined output.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.resolve_revision("HEAD"):
        case Ok(sha):
            print(f"HEAD is {sha}")
        case Err(e):
            print(f"Error: {e.pretty()}")
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.platform.process import ProcessRunner, SubprocessRunner

__all__ = ["FileChangeStatus", "Repository"]

_NEEDED_SINGLE_REVISION = "fatal: Needed a single revision"
_SPACES = re.compile(r"\s+")


class FileChangeStatus(Enum):
    """Status letter reported by ``git diff --name-status``."""

    MODIFIED = "M"
    ADDED = "A"
    DELETED = "D"


class Repository:
    """A git working tree driven through the ``git`` executable.

    Attributes:
        path: Directory the git commands run in (usually the repository root)
    """

    def __init__(self, path: Path, runner: ProcessRunner | None = None) -> None:
        self.path = path
        self._runner: ProcessRunner = runner or SubprocessRunner()

    def resolve_revision(self, rev: str) -> Result[str, KaeterError]:
        """Resolve a revision specifier (``HEAD``, a branch, a short hash) to a full hash."""
        result = self._run(["rev-parse", "--verify", rev])
        match result:
            case Err(e) if _NEEDED_SINGLE_REVISION in (e.hint or ""):
                return Err(
                    KaeterError(
                        kind="not_found",
                        message=f"cannot resolve commit identifier: {rev}",
                        hint=e.hint,
                    )
                )
            case Err(_):
                return result
            case Ok(stdout):
                return Ok(stdout.strip())

    def show_toplevel(self) -> Result[Path, KaeterError]:
        """Find the root of the repository containing ``path``."""
        result = self._run(["rev-parse", "--show-toplevel"])
        match result:
            case Err(e):
                return Err(e)
            case Ok(stdout):
                return Ok(Path(stdout.rstrip("\n")))

    def add(self, path: Path | str) -> Result[str, KaeterError]:
        return self._run(["add", str(path)])

    def commit(self, message: str) -> Result[str, KaeterError]:
        return self._run(["commit", "-m", message])

    def checkout(self, ref: str) -> Result[str, KaeterError]:
        return self._run(["checkout", ref])

    def reset_hard(self, ref: str) -> Result[str, KaeterError]:
        return self._run(["reset", "--hard", ref])

    def restore(self, *args: str) -> Result[str, KaeterError]:
        """Run ``git restore`` with arbitrary arguments."""
        return self._run(["restore", *args])

    def restore_file(self, path: Path | str) -> Result[str, KaeterError]:
        """Drop staged and unstaged changes to ``path``."""
        return self.restore("--staged", "--worktree", str(path))

    def branch_contains(self, commit_hash: str, pattern: str) -> Result[str, KaeterError]:
        """List branches (local and remote) matching ``pattern`` that contain a commit."""
        return self._run(["branch", "--all", "--contains", commit_hash, "--list", pattern])

    def commit_message(self, rev: str) -> Result[str, KaeterError]:
        """Raw body of the commit at ``rev``."""
        return self._run(["log", "-n", "1", "--pretty=format:%B", rev])

    def log_oneline(self, rev_range: str, path: Path | str | None = None) -> Result[list[str], KaeterError]:
        """One line per commit in ``rev_range``, optionally limited to ``path``."""
        args = ["log", "--oneline", rev_range]
        if path is not None:
            args += ["--", str(path)]
        match self._run(args):
            case Err(e):
                return Err(e)
            case Ok(stdout):
                return Ok([line for line in stdout.splitlines() if line.strip()])

    def diff_name_status(self, previous: str, current: str) -> Result[dict[str, FileChangeStatus], KaeterError]:
        """Files changed between two commits, with their change status.

        Renames are reported as a deletion plus an addition. Lines whose status
        is not M, A or D are ignored.
        """
        result = self._run(["diff", "--no-renames", "--name-status", previous, current])
        match result:
            case Err(e):
                return Err(e)
            case Ok(stdout):
                changes: dict[str, FileChangeStatus] = {}
                for line in stdout.splitlines():
                    words = _SPACES.split(line, maxsplit=1)
                    if len(words) != 2:
                        continue
                    try:
                        changes[words[1]] = FileChangeStatus(words[0])
                    except ValueError:
                        continue
                return Ok(changes)

    def _run(self, args: list[str]) -> Result[str, KaeterError]:
        """Run a git command in this repository."""
        result = self._runner.run(["git", *args], cwd=self.path)
        match result:
            case Ok(stdout):
                return Ok(stdout)
            case Err(e):
                return Err(
                    KaeterError(
                        kind="external_tool",
                        message=f"git {args[0]} failed (exit {e.returncode})",
                        hint=e.output or None,
                    )
                )
