"""Tests for release preparation."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from kaeter.core.result import Err, Ok
from kaeter.git.repository import Repository
from kaeter.output.console import MockConsole
from kaeter.services.prepare import PrepareConfig, PrepareService
from kaeter.services.release_plan import ReleasePlan, ReleaseTarget, plan_from_commit_message
from kaeter.test._support import FakeRunner, ledger_text, write_module

HASH = "6d8f1cba2ea5e5f3ae1ec28ca4da8f3c5a23a8c1"
NOW = datetime(2020, 2, 2, tzinfo=UTC)


def _service(root: Path, runner: FakeRunner, console: MockConsole | None = None) -> PrepareService:
    return PrepareService(repo=Repository(root, runner), console=console or MockConsole(), clock=lambda: NOW)


def _runner() -> FakeRunner:
    return FakeRunner().on("git", "rev-parse", output=f"{HASH}\n")


def _commit_message(runner: FakeRunner) -> str:
    commits = runner.calls_starting_with("git", "commit")
    assert len(commits) == 1
    return commits[0].cmd[3]


def test_prepares_and_commits(tmp_path: Path) -> None:
    module_dir = write_module(
        tmp_path,
        "mod",
        ledger_text("ch.open:mod"),
        changelog="# CHANGELOG\n\n## 0.0.1 - 02.02.20 Jane Doe\n- first release\n",
    )
    runner = _runner()

    result = _service(tmp_path, runner).prepare(PrepareConfig(module_paths=(module_dir,), repository_ref="origin/master"))

    assert result == Ok(ReleasePlan.single("ch.open:mod", "0.0.1"))
    assert (module_dir / "versions.yaml").read_text(encoding="utf-8") == ledger_text(
        "ch.open:mod", f"0.0.1: 2020-02-02T00:00:00Z|{HASH}"
    )
    assert runner.commands()[:2] == [
        ("git", "rev-parse", "--verify", "origin/master"),
        ("git", "add", str(module_dir / "versions.yaml")),
    ]
    message = _commit_message(runner)
    assert message.startswith("[release] ch.open:mod version 0.0.1\n")
    assert plan_from_commit_message(message) == Ok(ReleasePlan.single("ch.open:mod", "0.0.1"))


def test_several_modules_in_one_commit(tmp_path: Path) -> None:
    a = write_module(tmp_path, "a", ledger_text("ch.open:a", "1.2.3: 2020-01-01T10:00:00Z|abc"))
    b = write_module(tmp_path, "b", ledger_text("ch.open:b", "0.1.0: 2020-01-01T10:00:00Z|abc"))
    runner = _runner()

    result = _service(tmp_path, runner).prepare(
        PrepareConfig(module_paths=(a, b), repository_ref="HEAD", bump="minor", skip_lint=True)
    )

    assert result == Ok(
        ReleasePlan((ReleaseTarget("ch.open:a", "1.3.0"), ReleaseTarget("ch.open:b", "0.2.0")))
    )
    assert len(runner.calls_starting_with("git", "add")) == 2
    assert _commit_message(runner).startswith("[release] ch.open:a version 1.3.0 (+1 other modules)")


def test_user_version(tmp_path: Path) -> None:
    module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"))

    result = _service(tmp_path, _runner()).prepare(
        PrepareConfig(module_paths=(module_dir,), repository_ref="HEAD", user_version="3.0.0-rc1", skip_lint=True)
    )

    assert result == Ok(ReleasePlan.single("ch.open:mod", "3.0.0-rc1"))


def test_lint_failure_restores_ledger_without_committing(tmp_path: Path) -> None:
    module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"), changelog="# CHANGELOG\n")
    runner = _runner()
    console = MockConsole()

    result = _service(tmp_path, runner, console).prepare(
        PrepareConfig(module_paths=(module_dir,), repository_ref="HEAD")
    )

    assert isinstance(result, Err)
    assert "version '0.0.1' does not exist" in result.error.message
    assert runner.ran("git", "restore", "--staged", "--worktree", str(module_dir / "versions.yaml"))
    assert not runner.ran("git", "commit")
    assert console.find("reverting changes")


def test_failed_restore_reports_both_errors(tmp_path: Path) -> None:
    module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"), readme=False)
    runner = _runner().on("git", "restore", returncode=1, output="error: pathspec")

    result = _service(tmp_path, runner).prepare(PrepareConfig(module_paths=(module_dir,), repository_ref="HEAD"))

    assert isinstance(result, Err)
    assert "restoring the ledger failed as well" in result.error.message


def test_unresolvable_ref(tmp_path: Path) -> None:
    module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"))
    runner = FakeRunner().on("git", "rev-parse", returncode=128, output="fatal: Needed a single revision")

    result = _service(tmp_path, runner).prepare(PrepareConfig(module_paths=(module_dir,), repository_ref="nope"))

    assert isinstance(result, Err)
    assert result.error.kind == "not_found"
    assert (module_dir / "versions.yaml").read_text(encoding="utf-8") == ledger_text("ch.open:mod")


def test_invalid_bump_names_module(tmp_path: Path) -> None:
    module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod", versioning="CalVer"))

    result = _service(tmp_path, _runner()).prepare(
        PrepareConfig(module_paths=(module_dir,), repository_ref="HEAD", user_version="1.0.0")
    )

    assert isinstance(result, Err)
    assert result.error.message == "ch.open:mod: cannot manually specify a version with CalVer"


def test_commit_failure(tmp_path: Path) -> None:
    module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"))
    runner = _runner().on("git", "commit", returncode=1, output="nothing added")

    result = _service(tmp_path, runner).prepare(
        PrepareConfig(module_paths=(module_dir,), repository_ref="HEAD", skip_lint=True)
    )

    assert isinstance(result, Err)
    assert result.error.message.startswith("failed to commit changes")
