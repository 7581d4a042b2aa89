"""Error taxonomy and CLI exit codes.

``KaeterError`` is the single error payload carried by ``Err`` results across
the ledger, codec, discovery and orchestration layers. ``ErrorCode`` maps
outcomes to process exit codes for the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

__all__ = ["ErrorCode", "ErrorKind", "KaeterError", "join_errors"]


ErrorKind = Literal[
    "validation",  # malformed version, bad scheme/override combination, duplicates
    "protocol",  # release plan block missing or malformed
    "not_found",  # unknown module id, missing build file, missing ledger
    "external_tool",  # git/make/hook exited non-zero
    "consistency",  # duplicate module id, stale release target, commit off trunk
    "io",  # filesystem read/write failures
]


@dataclass(frozen=True, slots=True)
class KaeterError:
    """Canonical error payload.

    Attributes:
        kind: Category from the kaeter error taxonomy.
        message: One-line human readable description.
        hint: Extra detail, e.g. captured output of a failed tool.
    """

    kind: ErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message

    def with_context(self, context: str) -> KaeterError:
        """Return a copy with ``context`` prefixed to the message."""
        return KaeterError(kind=self.kind, message=f"{context}: {self.message}", hint=self.hint)


def join_errors(errors: list[KaeterError] | tuple[KaeterError, ...]) -> KaeterError | None:
    """Fold several errors into one, keeping the first error's kind."""
    if not errors:
        return None
    if len(errors) == 1:
        return errors[0]
    return KaeterError(
        kind=errors[0].kind,
        message=f"{len(errors)} errors: " + "; ".join(e.message for e in errors),
        hint="\n".join(e.hint for e in errors if e.hint) or None,
    )


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad input, invalid arguments, invalid ledger)
    - 2: Environment error (not a git repository, git unavailable)
    - 3: Release error (build, test or release target failed)
    - 4: No release plan in the inspected commit
    - 5: I/O error (file not found, permission denied)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    NO_PLAN = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK

    @classmethod
    def for_error(cls, error: KaeterError) -> ErrorCode:
        """Pick the exit code matching an error kind."""
        match error.kind:
            case "external_tool":
                return cls.RELEASE_ERROR
            case "io":
                return cls.IO_ERROR
            case _:
                return cls.USER_ERROR
