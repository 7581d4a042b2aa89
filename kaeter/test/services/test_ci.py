"""Tests for the CI autorelease plan in pull request bodies."""

from __future__ import annotations

import json
import stat
from pathlib import Path

import pytest

from kaeter.core.result import Err, Ok
from kaeter.output.console import MockConsole
from kaeter.services.ci import (
    autorelease_plan_lines,
    insert_plan,
    parse_changeset,
    strip_autorelease_plan,
    update_pull_request_body,
)
from kaeter.services.release_plan import ReleasePlan


def _changeset(body: str, autoreleases: dict[str, str], *, commit_plan: bool = False) -> str:
    data: dict[str, object] = {
        "Kaeter": {"Modules": {k: {"id": k, "autoRelease": v} for k, v in autoreleases.items()}},
        "PullRequest": {"title": "My change", "body": body},
    }
    if commit_plan:
        data["Commit"] = {"ReleasePlan": {"Releases": [{"ModuleID": "ch.open:x", "Version": "1.0.0"}]}}
    return json.dumps(data)


class TestParseChangeset:
    def test_fields(self) -> None:
        text = json.dumps(
            {
                "commit": {"releasePlan": {"releases": [{"moduleId": "ch.open:x", "version": "1.0.0"}]}},
                "kaeter": {"modules": {"ch.open:a": {"autoRelease": "2.0.0"}, "ch.open:b": {"id": "ch.open:b"}}},
                "pullRequest": {"Body": "Some text"},
            }
        )

        result = parse_changeset(text)

        assert isinstance(result, Ok)
        assert result.value.commit_plan == ReleasePlan.single("ch.open:x", "1.0.0")
        assert result.value.autoreleases == {"ch.open:a": "2.0.0"}
        assert result.value.pull_request_body == "Some text"

    def test_empty_object(self) -> None:
        result = parse_changeset("{}")
        assert isinstance(result, Ok)
        assert result.value.commit_plan is None
        assert result.value.autoreleases == {}
        assert result.value.pull_request_body == ""

    @pytest.mark.parametrize("text", ["{", "[]"])
    def test_invalid(self, text: str) -> None:
        assert isinstance(parse_changeset(text), Err)


class TestPlanText:
    def test_lines_sorted_by_module_id(self) -> None:
        assert autorelease_plan_lines({"ch.open:b": "2.0.0", "ch.open:a": "1.0.0"}) == (
            "\nAutorelease-Plan: ch.open:a:1.0.0\nAutorelease-Plan: ch.open:b:2.0.0\n"
        )

    def test_no_autoreleases(self) -> None:
        assert autorelease_plan_lines({}) == ""
        assert insert_plan("body", "") == "body"

    def test_strip(self) -> None:
        body = "Intro\n\nAutorelease-Plan: a:1.0.0\r\nAutorelease-Plan: b:2.0.0\n"
        assert strip_autorelease_plan(body) == "Intro"

    def test_strip_keeps_body_without_plan(self) -> None:
        assert strip_autorelease_plan("  Intro\n") == "  Intro\n"

    def test_prefix_must_start_the_line(self) -> None:
        body = "see Autorelease-Plan: a:1.0.0 for details"
        assert strip_autorelease_plan(body) == body


class TestUpdatePullRequestBody:
    def test_writes_body_with_plan(self, tmp_path: Path) -> None:
        changeset = tmp_path / "changeset.json"
        changeset.write_text(_changeset("Fixes the thing.", {"ch.open:a": "1.0.0"}), encoding="utf-8")
        output = tmp_path / "prbody.md"

        result = update_pull_request_body(changeset, output, console=MockConsole())

        expected = "Fixes the thing.\n\nAutorelease-Plan: ch.open:a:1.0.0\n"
        assert result == Ok(expected)
        assert output.read_text(encoding="utf-8") == expected
        assert stat.S_IMODE(output.stat().st_mode) == 0o600

    def test_idempotent(self, tmp_path: Path) -> None:
        changeset = tmp_path / "changeset.json"
        output = tmp_path / "prbody.md"
        changeset.write_text(_changeset("Fixes the thing.", {"ch.open:a": "1.0.0"}), encoding="utf-8")
        first = update_pull_request_body(changeset, output, console=MockConsole())
        assert isinstance(first, Ok)

        changeset.write_text(_changeset(first.value, {"ch.open:a": "1.0.0"}), encoding="utf-8")
        second = update_pull_request_body(changeset, output, console=MockConsole())

        assert second == first

    def test_replaces_outdated_plan(self, tmp_path: Path) -> None:
        changeset = tmp_path / "changeset.json"
        body = "Fixes the thing.\n\nAutorelease-Plan: ch.open:a:0.9.0\n"
        changeset.write_text(_changeset(body, {"ch.open:a": "1.0.0", "ch.open:b": "3.0.0"}), encoding="utf-8")

        result = update_pull_request_body(changeset, tmp_path / "prbody.md", console=MockConsole())

        assert result == Ok(
            "Fixes the thing.\n\nAutorelease-Plan: ch.open:a:1.0.0\nAutorelease-Plan: ch.open:b:3.0.0\n"
        )

    def test_plan_removed_when_no_autorelease_left(self, tmp_path: Path) -> None:
        changeset = tmp_path / "changeset.json"
        changeset.write_text(_changeset("Text\n\nAutorelease-Plan: ch.open:a:1.0.0\n", {}), encoding="utf-8")

        assert update_pull_request_body(changeset, tmp_path / "prbody.md", console=MockConsole()) == Ok("Text")

    def test_prepared_release_is_incompatible(self, tmp_path: Path) -> None:
        changeset = tmp_path / "changeset.json"
        changeset.write_text(_changeset("Text", {"ch.open:a": "1.0.0"}, commit_plan=True), encoding="utf-8")
        output = tmp_path / "prbody.md"

        result = update_pull_request_body(changeset, output, console=MockConsole())

        assert isinstance(result, Err)
        assert result.error.message == "prepare release detected: incompatible release(s)"
        assert not output.exists()

    def test_missing_changeset(self, tmp_path: Path) -> None:
        result = update_pull_request_body(tmp_path / "nope.json", tmp_path / "prbody.md", console=MockConsole())
        assert isinstance(result, Err)
        assert result.error.kind == "io"
