"""Tests for module hooks."""

from __future__ import annotations

from pathlib import Path

from kaeter.core.result import Err, Ok
from kaeter.modules.versions import Versions
from kaeter.services.hooks import AUTORELEASE_VERSION_HOOK, has_hook, run_hook
from kaeter.test._support import FakeRunner


def _versions(hook: str | None) -> Versions:
    annotations = {"open.ch/kaeter-hook/autorelease-version": hook} if hook is not None else {}
    return Versions(
        id="ch.open:mod",
        module_type="Makefile",
        versioning="SemVer",
        released_versions=[],
        annotations=annotations,
    )


def test_has_hook() -> None:
    assert has_hook(AUTORELEASE_VERSION_HOOK, _versions("tools/v.sh"))
    assert not has_hook(AUTORELEASE_VERSION_HOOK, _versions(None))


def test_relative_path_resolved_against_repo_root(tmp_path: Path) -> None:
    runner = FakeRunner().on(str(tmp_path / "tools/v.sh"), output="  2.0.0\n")

    result = run_hook(AUTORELEASE_VERSION_HOOK, _versions("tools/v.sh"), tmp_path, ["mod", "1.0.0", "abc"], runner)

    assert result == Ok("2.0.0")
    assert runner.commands() == [(str(tmp_path / "tools/v.sh"), "mod", "1.0.0", "abc")]
    assert runner.calls[0].cwd == tmp_path


def test_bare_name_runs_from_path(tmp_path: Path) -> None:
    runner = FakeRunner()

    run_hook(AUTORELEASE_VERSION_HOOK, _versions("next-version"), tmp_path, [], runner)

    assert runner.commands() == [("next-version",)]


def test_path_traversal_rejected(tmp_path: Path) -> None:
    runner = FakeRunner()

    result = run_hook(AUTORELEASE_VERSION_HOOK, _versions("../outside.sh"), tmp_path, [], runner)

    assert isinstance(result, Err)
    assert result.error.kind == "validation"
    assert runner.calls == []


def test_missing_hook(tmp_path: Path) -> None:
    result = run_hook(AUTORELEASE_VERSION_HOOK, _versions(None), tmp_path, [], FakeRunner())

    assert isinstance(result, Err)
    assert result.error.kind == "not_found"


def test_failing_hook(tmp_path: Path) -> None:
    runner = FakeRunner().on("next-version", returncode=3, output="boom")

    result = run_hook(AUTORELEASE_VERSION_HOOK, _versions("next-version"), tmp_path, [], runner)

    assert isinstance(result, Err)
    assert result.error.message == "execution of autorelease-version hook failed (exit 3)"
    assert result.error.hint == "boom"
