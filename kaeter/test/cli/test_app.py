"""CLI tests driving the kaeter Typer app."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from kaeter import __version__
from kaeter.cli.app import app
from kaeter.core.errors import ErrorCode
from kaeter.services.release_plan import ReleasePlan
from kaeter.test._support import FakeRunner, ledger_text, write_module

cli_runner = CliRunner()


@pytest.fixture
def fake_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    """Route every subprocess of the CLI to a fake rooted at ``tmp_path``."""
    import kaeter.cli.context as context

    runner = FakeRunner().on("git", "rev-parse", "--show-toplevel", output=f"{tmp_path}\n")
    monkeypatch.setattr(context, "SubprocessRunner", lambda: runner)
    return runner


def _json_lines(output: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def test_version() -> None:
    result = cli_runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_no_args_shows_help() -> None:
    result = cli_runner.invoke(app, [])

    assert "prepare" in result.output
    assert "autorelease" in result.output


# =============================================================================
# init
# =============================================================================


class TestInit:
    def test_initializes_module(self, tmp_path: Path) -> None:
        result = cli_runner.invoke(app, ["-p", str(tmp_path), "init", "--id", "ch.open:new", "--scheme", "CalVer"])

        assert result.exit_code == 0
        ledger = (tmp_path / "versions.yaml").read_text(encoding="utf-8")
        assert "id: ch.open:new" in ledger
        assert "versioning: CalVer" in ledger

    def test_requires_one_path(self, tmp_path: Path) -> None:
        result = cli_runner.invoke(app, ["init", "--id", "ch.open:new"])
        assert result.exit_code == ErrorCode.USER_ERROR

    def test_existing_ledger(self, tmp_path: Path) -> None:
        write_module(tmp_path, ".", ledger_text("old"))

        result = cli_runner.invoke(app, ["-p", str(tmp_path), "init", "--id", "ch.open:new"])

        assert result.exit_code == ErrorCode.USER_ERROR


# =============================================================================
# read-plan
# =============================================================================


class TestReadPlan:
    def _message(self) -> str:
        message = ReleasePlan.single("ch.open:mod", "1.0.0").to_commit_message()
        assert message.is_ok()
        return message.unwrap()

    def test_plan_found(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        output = tmp_path / "plan.json"

        result = cli_runner.invoke(
            app, ["read-plan", "--commit-message", self._message(), "--json-output", str(output)]
        )

        assert result.exit_code == 0
        assert "ch.open:mod:1.0.0" in result.output
        assert json.loads(output.read_text(encoding="utf-8")) == [{"ModuleID": "ch.open:mod", "Version": "1.0.0"}]

    def test_no_plan(self, fake_git: FakeRunner) -> None:
        result = cli_runner.invoke(app, ["read-plan", "--commit-message", "fix: typo"])
        assert result.exit_code == ErrorCode.NO_PLAN

    def test_plan_from_head(self, fake_git: FakeRunner) -> None:
        fake_git.on("git", "log", output=self._message())

        result = cli_runner.invoke(app, ["read-plan"])

        assert result.exit_code == 0
        assert fake_git.ran("git", "log", "-n", "1", "--pretty=format:%B", "HEAD")

    def test_head_unreadable(self, fake_git: FakeRunner) -> None:
        fake_git.on("git", "log", returncode=128, output="fatal: bad default revision 'HEAD'")

        result = cli_runner.invoke(app, ["read-plan"])

        assert result.exit_code == ErrorCode.ENV_ERROR

    def test_outside_repository(self, fake_git: FakeRunner) -> None:
        fake_git.on("git", "rev-parse", "--show-toplevel", returncode=128, output="fatal: not a git repository")

        result = cli_runner.invoke(app, ["read-plan", "--commit-message", "x"])

        assert result.exit_code == ErrorCode.ENV_ERROR


# =============================================================================
# Inventory
# =============================================================================


class TestInventory:
    def test_inventorize(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "b", ledger_text("ch.open:b"))
        write_module(tmp_path, "a", ledger_text("ch.open:a", extra="metadata:\n  annotations:\n    team: tools\n"))

        result = cli_runner.invoke(app, ["inventorize"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [m["id"] for m in data["Modules"]] == ["ch.open:a", "ch.open:b"]
        assert data["RepoRoot"] == str(tmp_path)

    def test_inventorize_fails_on_duplicates(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "a", ledger_text("ch.open:dup"))
        write_module(tmp_path, "b", ledger_text("ch.open:dup"))

        result = cli_runner.invoke(app, ["inventorize"])

        assert result.exit_code == ErrorCode.USER_ERROR

    def test_module_views(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "tools/a", ledger_text("ch.open:a", extra="metadata:\n  annotations:\n    team: tools\n"))

        full = cli_runner.invoke(app, ["module", "ch.open:a"])
        annotations = cli_runner.invoke(app, ["module", "ch.open:a", "--annotations"])
        path = cli_runner.invoke(app, ["module", "ch.open:a", "--get-path"])

        assert json.loads(full.stdout)["path"] == "tools/a"
        assert json.loads(annotations.stdout) == {"team": "tools"}
        assert path.stdout.strip() == "tools/a"

    def test_module_from_inventory_file(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        inventory = tmp_path / "inventory.json"
        inventory.write_text(
            json.dumps({"Modules": [{"id": "ch.open:x", "path": "x"}], "RepoRoot": "/elsewhere"}),
            encoding="utf-8",
        )

        result = cli_runner.invoke(app, ["module", "ch.open:x", "--inventory", str(inventory), "--get-path"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "x"

    def test_module_unknown(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(app, ["module", "ch.open:none"])
        assert result.exit_code == ErrorCode.USER_ERROR

    def test_module_exclusive_flags(self, fake_git: FakeRunner) -> None:
        result = cli_runner.invoke(app, ["module", "ch.open:a", "--annotations", "--get-path"])
        assert result.exit_code == ErrorCode.USER_ERROR


# =============================================================================
# Status commands
# =============================================================================


class TestStatus:
    def test_lint(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "ok", ledger_text("ch.open:ok"))

        assert cli_runner.invoke(app, ["-p", str(tmp_path), "lint"]).exit_code == 0

        write_module(tmp_path, "bad", ledger_text("ch.open:bad"), readme=False)
        assert cli_runner.invoke(app, ["-p", str(tmp_path), "lint"]).exit_code == ErrorCode.USER_ERROR

    def test_lint_requires_path(self, fake_git: FakeRunner) -> None:
        assert cli_runner.invoke(app, ["lint"]).exit_code == ErrorCode.USER_ERROR

    def test_needsrelease(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "mod", ledger_text("ch.open:mod"))

        result = cli_runner.invoke(app, ["-p", str(tmp_path), "needsrelease"])

        assert result.exit_code == 0
        assert _json_lines(result.stdout) == [
            {
                "moduleId": "ch.open:mod",
                "modulePath": "mod",
                "latestReleaseTimestamp": None,
                "unreleasedCommitsCount": 0,
                "autoreleasePending": False,
            }
        ]

    def test_needsrelease_reports_broken_modules(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "mod", "id: [\n")

        result = cli_runner.invoke(app, ["-p", str(tmp_path), "nr"])

        assert result.exit_code == ErrorCode.USER_ERROR
        assert "moduleParsingErrors" in _json_lines(result.stdout)[0]


# =============================================================================
# Release workflows
# =============================================================================


class TestWorkflows:
    def test_prepare_exclusive_bumps(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "mod", ledger_text("ch.open:mod"))

        result = cli_runner.invoke(app, ["-p", str(tmp_path / "mod"), "prepare", "--minor", "--major"])

        assert result.exit_code == ErrorCode.USER_ERROR
        assert not fake_git.ran("git", "commit")

    def test_prepare_commits(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"))
        fake_git.on("git", "rev-parse", "--verify", output="c" * 40 + "\n")

        result = cli_runner.invoke(
            app, ["-p", str(module_dir), "prepare", "--version", "1.0.0", "--releaseFrom", "HEAD", "--skip-lint"]
        )

        assert result.exit_code == 0
        assert fake_git.ran("git", "rev-parse", "--verify", "HEAD")
        assert fake_git.ran("git", "commit", "-m")
        assert "1.0.0: " in (module_dir / "versions.yaml").read_text(encoding="utf-8")

    def test_autorelease_with_tags(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"))

        result = cli_runner.invoke(
            app, ["-p", str(module_dir), "autorelease", "-v", "1.0.0", "--tags", "production, stable", "--skip-lint"]
        )

        assert result.exit_code == 0
        text = (module_dir / "versions.yaml").read_text(encoding="utf-8")
        assert "|AUTORELEASE|production,stable" in text

    def test_release_exclusive_flags(self, fake_git: FakeRunner) -> None:
        result = cli_runner.invoke(app, ["release", "--really", "--commit-message", "x"])
        assert result.exit_code == ErrorCode.USER_ERROR

    def test_release_dry_run(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "mod", ledger_text("ch.open:mod", "1.0.0: 2020-01-01T10:00:00Z|" + "a" * 40), makefile=True)
        fake_git.on("git", "rev-parse", "--verify", output="f" * 40 + "\n")
        fake_git.on("git", "branch", output="  remotes/origin/master\n")
        message = ReleasePlan.single("ch.open:mod", "1.0.0").to_commit_message().unwrap()
        fake_git.on("git", "log", output=message)

        result = cli_runner.invoke(app, ["release", "--skip-module", "ch.open:other"])

        assert result.exit_code == 0
        targets = [call.cmd[-1] for call in fake_git.calls_starting_with("make")]
        assert targets == ["build", "test"]

    def test_release_failure_exit_code(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        write_module(tmp_path, "mod", ledger_text("ch.open:mod", "1.0.0: 2020-01-01T10:00:00Z|" + "a" * 40), makefile=True)
        fake_git.on("git", "rev-parse", "--verify", output="f" * 40 + "\n")
        fake_git.on("git", "branch", output="* master\n")
        fake_git.on("make", returncode=2)
        message = ReleasePlan.single("ch.open:mod", "1.0.0").to_commit_message().unwrap()

        result = cli_runner.invoke(app, ["--git-main-branch", "master", "release", "--commit-message", message])

        assert result.exit_code == ErrorCode.RELEASE_ERROR

    def test_ci_release(self, fake_git: FakeRunner, tmp_path: Path) -> None:
        module_dir = write_module(tmp_path, "mod", ledger_text("ch.open:mod"), makefile=True)

        result = cli_runner.invoke(app, ["-p", str(module_dir), "ci", "release", "--dry-run"])

        assert result.exit_code == 0
        assert [call.cmd[-1] for call in fake_git.calls_starting_with("make")] == ["build", "test"]

    def test_ci_autoreleaseplan(self, tmp_path: Path) -> None:
        changeset = tmp_path / "changeset.json"
        changeset.write_text(
            json.dumps(
                {
                    "Kaeter": {"Modules": {"ch.open:a": {"autoRelease": "1.0.0"}}},
                    "PullRequest": {"body": "Text"},
                }
            ),
            encoding="utf-8",
        )
        output = tmp_path / "prbody.md"

        result = cli_runner.invoke(
            app, ["ci", "autoreleaseplan", "--changeset", str(changeset), "--output", str(output)]
        )

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8") == "Text\n\nAutorelease-Plan: ch.open:a:1.0.0\n"
