"""Tests for kaeter.core.errors module."""

from __future__ import annotations

import pytest

from kaeter.core.errors import ErrorCode, KaeterError, join_errors


class TestKaeterError:
    def test_pretty_without_hint(self) -> None:
        assert KaeterError(kind="validation", message="bad").pretty() == "bad"

    def test_pretty_with_hint(self) -> None:
        error = KaeterError(kind="external_tool", message="git failed", hint="fatal: nope")
        assert error.pretty() == "git failed (hint: fatal: nope)"

    def test_with_context_keeps_kind_and_hint(self) -> None:
        error = KaeterError(kind="io", message="denied", hint="h").with_context("writing ledger")
        assert error.kind == "io"
        assert error.message == "writing ledger: denied"
        assert error.hint == "h"

    def test_frozen(self) -> None:
        error = KaeterError(kind="io", message="x")
        with pytest.raises(AttributeError):
            error.message = "y"  # type: ignore[misc]


class TestJoinErrors:
    def test_empty(self) -> None:
        assert join_errors([]) is None

    def test_single_error_is_returned_as_is(self) -> None:
        error = KaeterError(kind="io", message="x")
        assert join_errors([error]) is error

    def test_several_errors(self) -> None:
        joined = join_errors(
            [
                KaeterError(kind="validation", message="first", hint="a"),
                KaeterError(kind="io", message="second"),
                KaeterError(kind="io", message="third", hint="c"),
            ]
        )
        assert joined is not None
        assert joined.kind == "validation"
        assert joined.message == "3 errors: first; second; third"
        assert joined.hint == "a\nc"


class TestErrorCode:
    def test_values_are_stable(self) -> None:
        assert ErrorCode.OK == 0
        assert ErrorCode.USER_ERROR == 1
        assert ErrorCode.ENV_ERROR == 2
        assert ErrorCode.RELEASE_ERROR == 3
        assert ErrorCode.NO_PLAN == 4
        assert ErrorCode.IO_ERROR == 5

    def test_str(self) -> None:
        assert str(ErrorCode.NO_PLAN) == "no plan"

    def test_success_flags(self) -> None:
        assert ErrorCode.OK.is_success
        assert ErrorCode.USER_ERROR.is_error

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            ("external_tool", ErrorCode.RELEASE_ERROR),
            ("io", ErrorCode.IO_ERROR),
            ("validation", ErrorCode.USER_ERROR),
            ("protocol", ErrorCode.USER_ERROR),
            ("not_found", ErrorCode.USER_ERROR),
            ("consistency", ErrorCode.USER_ERROR),
        ],
    )
    def test_for_error(self, kind: str, expected: ErrorCode) -> None:
        assert ErrorCode.for_error(KaeterError(kind=kind, message="x")) == expected  # type: ignore[arg-type]
