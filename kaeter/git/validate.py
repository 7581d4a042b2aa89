"""Trunk reachability check for release commits."""

from __future__ import annotations

import re

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result

from .repository import Repository

__all__ = ["normalize_trunk", "validate_commit_on_trunk"]


def normalize_trunk(trunk: str) -> str:
    """``origin/master`` -> ``master``; branch listings carry their own remote prefix."""
    return trunk.removeprefix("origin/")


def validate_commit_on_trunk(repo: Repository, trunk: str, commit_hash: str) -> Result[None, KaeterError]:
    """Check that ``commit_hash`` is contained in the trunk branch.

    Only branches matching ``*<trunk>*`` are listed so CI can fetch just the
    trunk. The listing must contain ``<trunk>`` or ``remotes/origin/<trunk>``
    as a whole line, optionally marked as current with ``*``.
    """
    branch = normalize_trunk(trunk)
    listing = repo.branch_contains(commit_hash, f"*{branch}*")
    if isinstance(listing, Err):
        return Err(listing.error.with_context(f"unable to list branches containing {commit_hash}"))

    expected = re.compile(rf"^[* ] (?:remotes/origin/)?{re.escape(branch)}$", re.MULTILINE)
    if not expected.search(listing.value):
        return Err(
            KaeterError(
                kind="consistency",
                message=f"commit ({commit_hash}) not on trunk branch ({branch})",
                hint=listing.value.strip() or None,
            )
        )
    return Ok(None)
