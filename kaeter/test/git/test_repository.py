"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path

from kaeter.core.result import Err, Ok
from kaeter.git.repository import FileChangeStatus, Repository
from kaeter.test._support import FakeRunner

HASH = "6d8f1cba2ea5e5f3ae1ec28ca4da8f3c5a23a8c1"


# =============================================================================
# Revisions
# =============================================================================


class TestResolveRevision:
    def test_returns_stripped_hash(self, tmp_path: Path) -> None:
        runner = FakeRunner().on("git", "rev-parse", output=f"{HASH}\n")
        repo = Repository(tmp_path, runner)

        assert repo.resolve_revision("HEAD") == Ok(HASH)
        assert runner.commands() == [("git", "rev-parse", "--verify", "HEAD")]
        assert runner.calls[0].cwd == tmp_path

    def test_unknown_revision_is_not_found(self, tmp_path: Path) -> None:
        runner = FakeRunner().on("git", "rev-parse", returncode=128, output="fatal: Needed a single revision\n")

        result = Repository(tmp_path, runner).resolve_revision("nope")

        assert isinstance(result, Err)
        assert result.error.kind == "not_found"
        assert result.error.message == "cannot resolve commit identifier: nope"

    def test_other_failures_are_tool_errors(self, tmp_path: Path) -> None:
        runner = FakeRunner().on("git", "rev-parse", returncode=128, output="fatal: not a git repository")

        result = Repository(tmp_path, runner).resolve_revision("HEAD")

        assert isinstance(result, Err)
        assert result.error.kind == "external_tool"
        assert result.error.message == "git rev-parse failed (exit 128)"
        assert result.error.hint == "fatal: not a git repository"


def test_show_toplevel(tmp_path: Path) -> None:
    runner = FakeRunner().on("git", "rev-parse", "--show-toplevel", output=f"{tmp_path}\n")
    assert Repository(tmp_path / "sub", runner).show_toplevel() == Ok(tmp_path)


# =============================================================================
# Working tree commands
# =============================================================================


class TestCommands:
    def test_command_lines(self, tmp_path: Path) -> None:
        runner = FakeRunner()
        repo = Repository(tmp_path, runner)

        repo.add(tmp_path / "mod" / "versions.yaml")
        repo.commit("[release] x")
        repo.checkout(HASH)
        repo.reset_hard(HASH)
        repo.restore_file("mod/versions.yaml")
        repo.branch_contains(HASH, "*master*")
        repo.commit_message("HEAD")

        assert runner.commands() == [
            ("git", "add", str(tmp_path / "mod" / "versions.yaml")),
            ("git", "commit", "-m", "[release] x"),
            ("git", "checkout", HASH),
            ("git", "reset", "--hard", HASH),
            ("git", "restore", "--staged", "--worktree", "mod/versions.yaml"),
            ("git", "branch", "--all", "--contains", HASH, "--list", "*master*"),
            ("git", "log", "-n", "1", "--pretty=format:%B", "HEAD"),
        ]

    def test_failure_carries_output_as_hint(self, tmp_path: Path) -> None:
        runner = FakeRunner().on("git", "commit", returncode=1, output="nothing to commit")

        result = Repository(tmp_path, runner).commit("msg")

        assert isinstance(result, Err)
        assert result.error.hint == "nothing to commit"


# =============================================================================
# History
# =============================================================================


class TestLogOneline:
    def test_filters_blank_lines(self, tmp_path: Path) -> None:
        runner = FakeRunner().on("git", "log", output="abc123 first\n\ndef456 second\n")

        result = Repository(tmp_path, runner).log_oneline(f"{HASH}..HEAD", "mod")

        assert result == Ok(["abc123 first", "def456 second"])
        assert runner.commands() == [("git", "log", "--oneline", f"{HASH}..HEAD", "--", "mod")]

    def test_without_path(self, tmp_path: Path) -> None:
        runner = FakeRunner()
        assert Repository(tmp_path, runner).log_oneline("HEAD~1..HEAD") == Ok([])
        assert runner.commands() == [("git", "log", "--oneline", "HEAD~1..HEAD")]


def test_diff_name_status(tmp_path: Path) -> None:
    output = "M\tmod/versions.yaml\nA\tmod/new file.txt\nD\told.txt\nT\tlink\n\n"
    runner = FakeRunner().on("git", "diff", output=output)

    result = Repository(tmp_path, runner).diff_name_status("a", "b")

    assert result == Ok(
        {
            "mod/versions.yaml": FileChangeStatus.MODIFIED,
            "mod/new file.txt": FileChangeStatus.ADDED,
            "old.txt": FileChangeStatus.DELETED,
        }
    )
    assert runner.commands() == [("git", "diff", "--no-renames", "--name-status", "a", "b")]
