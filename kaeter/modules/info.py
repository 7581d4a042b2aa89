"""Release status of modules: latest release and unreleased commits."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.core.structured import StrDict
from kaeter.git.repository import Repository

from .find import find_versions_files
from .versions import AUTORELEASE_REF, INIT_REF, Versions, format_timestamp, get_versions_file_path, read_versions_file

__all__ = [
    "ModuleInfo",
    "NeedsReleaseInfo",
    "module_info",
    "needs_release_info",
    "unreleased_commits",
]

_HASH_LENGTH = 40


def unreleased_commits(repo: Repository, path: Path, release_ref: str) -> Result[list[str], KaeterError]:
    """``git log --oneline <ref>..HEAD -- <path>`` for a released commit.

    INIT has no commit to compare to and yields an empty list; a pending
    AUTORELEASE or a ref that is not a full hash is an error.
    """
    if release_ref == AUTORELEASE_REF:
        return Err(KaeterError(kind="consistency", message="autorelease pending"))
    if release_ref == INIT_REF:
        return Ok([])
    if len(release_ref) != _HASH_LENGTH:
        return Err(KaeterError(kind="validation", message=f"invalid previous release ref {release_ref}"))
    return repo.log_oneline(f"{release_ref}..HEAD", path).map_err(
        lambda e: e.with_context(f"failed to compute git log on {path} since {release_ref}")
    )


@dataclass(frozen=True, slots=True)
class ModuleInfo:
    """Human oriented summary printed by ``kaeter info``."""

    module_id: str
    path: str
    releases: int
    current_release: str
    released_at: datetime | None
    unreleased: str

    def lines(self, now: datetime) -> list[str]:
        released = "never ~inf days ago"
        if self.released_at is not None:
            age = (now - self.released_at).total_seconds() / 86400
            released = f"{self.released_at:%Y-%m-%d %H:%M:%S} ~{age:.0f} days ago"
        return [
            f"Module ID: {self.module_id}",
            f"Path: {self.path}",
            f"Releases: {self.releases}",
            f"Current release: {self.current_release}",
            f"Released: {released}",
            f"Unreleased changes:\n{self.unreleased}",
        ]


def module_info(module_path: Path, repo: Repository) -> Result[ModuleInfo, KaeterError]:
    ledger_path = get_versions_file_path(module_path)
    if isinstance(ledger_path, Err):
        return ledger_path
    loaded = read_versions_file(ledger_path.value)
    if isinstance(loaded, Err):
        return loaded
    versions = loaded.value

    latest = versions.latest_published_release() or versions.latest_release()
    if latest is None:
        return Err(KaeterError(kind="validation", message=f"module {versions.id} has no releases"))

    if versions.has_pending_autorelease():
        summary = "yes, AUTORELEASE pending."
    elif latest.is_init:
        summary = "Module never had a release. Everything is a change!"
    else:
        match unreleased_commits(repo, module_path, latest.commit_id):
            case Ok(commits):
                summary = "\n".join(commits)
            case Err(e):
                summary = f"error: unable to fetch changes since last release ({e.pretty()})"

    return Ok(
        ModuleInfo(
            module_id=versions.id,
            path=str(module_path),
            releases=len(versions.released_versions) - 1,
            current_release=str(latest.number),
            released_at=None if latest.is_init else latest.timestamp,
            unreleased=summary,
        )
    )


@dataclass(frozen=True, slots=True)
class NeedsReleaseInfo:
    """One JSON line of ``kaeter needsrelease``."""

    module_id: str
    module_path: str
    latest_release_timestamp: datetime | None
    unreleased_commits_count: int
    autorelease_pending: bool
    error: KaeterError | None = None

    def to_dict(self) -> StrDict:
        data: StrDict = {
            "moduleId": self.module_id,
            "modulePath": self.module_path,
            "latestReleaseTimestamp": (
                format_timestamp(self.latest_release_timestamp) if self.latest_release_timestamp else None
            ),
            "unreleasedCommitsCount": self.unreleased_commits_count,
            "autoreleasePending": self.autorelease_pending,
        }
        if self.error is not None:
            data["moduleParsingErrors"] = self.error.pretty()
        return data


def _needs_release(versions: Versions, module_dir: Path, relative: str, repo: Repository) -> NeedsReleaseInfo:
    latest = versions.latest_published_release() or versions.latest_release()
    timestamp = None if latest is None or latest.is_init else latest.timestamp
    count = -1
    error: KaeterError | None = None
    if latest is not None:
        match unreleased_commits(repo, module_dir, latest.commit_id):
            case Ok(commits):
                count = len(commits)
            case Err(e):
                error = e.with_context(f"unable to count unreleased commits of module {versions.id}")
    return NeedsReleaseInfo(
        module_id=versions.id,
        module_path=relative,
        latest_release_timestamp=timestamp,
        unreleased_commits_count=count,
        autorelease_pending=versions.has_pending_autorelease(),
        error=error,
    )


def needs_release_info(search_path: Path, repo: Repository, repo_root: Path) -> Result[list[NeedsReleaseInfo], KaeterError]:
    """Release status of every module found below ``search_path``.

    Failing to search the path is an error; a module that fails to load is
    reported in its own entry.
    """
    found = find_versions_files(search_path)
    if found.errors:
        return Err(found.errors[0].with_context(f"failed to detect modules in {search_path}"))

    infos: list[NeedsReleaseInfo] = []
    for ledger_path in found.paths:
        relative = os.path.relpath(ledger_path.parent, repo_root)
        match read_versions_file(ledger_path):
            case Ok(versions):
                infos.append(_needs_release(versions, ledger_path.parent, relative, repo))
            case Err(e):
                infos.append(NeedsReleaseInfo("", str(ledger_path), None, -1, False, error=e))
    return Ok(infos)
