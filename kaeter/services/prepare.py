"""Preparation of releases: ledger bump plus release commit."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.git.repository import Repository
from kaeter.modules.version import Bump
from kaeter.modules.versions import get_versions_file_path, read_versions_file
from kaeter.output.console import ConsoleProtocol

from .lint import check_module_or_restore
from .release_plan import ReleasePlan, ReleaseTarget

__all__ = ["PrepareConfig", "PrepareService"]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class PrepareConfig:
    """What to prepare.

    Attributes:
        module_paths: Module directories (or ledger files) to bump
        repository_ref: Git ref whose commit gets released
        bump: SemVer component to bump
        user_version: Explicit version, overrides the bump
        skip_lint: Do not lint modules after bumping them
    """

    module_paths: tuple[Path, ...]
    repository_ref: str
    bump: Bump = "patch"
    user_version: str | None = None
    skip_lint: bool = False


class PrepareService:
    """Bump module ledgers and commit them with an embedded release plan."""

    def __init__(
        self,
        *,
        repo: Repository,
        console: ConsoleProtocol,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._repo = repo
        self._console = console
        self._clock = clock

    def prepare(self, config: PrepareConfig) -> Result[ReleasePlan, KaeterError]:
        """Prepare the release of every module in ``config``.

        Processing stops at the first failing module; ledgers already bumped
        stay staged and nothing is committed.
        """
        ref_time = self._clock()
        resolved = self._repo.resolve_revision(config.repository_ref)
        if isinstance(resolved, Err):
            return resolved
        commit_hash = resolved.value
        self._console.info(f"release(s) based on {config.repository_ref} at ref {commit_hash}")

        targets: list[ReleaseTarget] = []
        for module_path in config.module_paths:
            bumped = self._bump_module(module_path, commit_hash, ref_time, config)
            if isinstance(bumped, Err):
                return bumped
            target, versions_path = bumped.value
            targets.append(target)
            self._console.success(f"prepared release for {target.marshal()}")

            if config.skip_lint:
                continue
            linted = check_module_or_restore(self._repo, versions_path, self._console)
            if isinstance(linted, Err):
                return linted

        plan = ReleasePlan(tuple(targets))
        message = plan.to_commit_message()
        if isinstance(message, Err):
            return message
        self._console.debug(f"writing release plan to commit with message:\n{message.value}")

        committed = self._repo.commit(message.value)
        if isinstance(committed, Err):
            return Err(committed.error.with_context("failed to commit changes"))
        self._console.info("run 'git log' to check the commit message")
        return Ok(plan)

    def _bump_module(
        self,
        module_path: Path,
        commit_hash: str,
        ref_time: datetime,
        config: PrepareConfig,
    ) -> Result[tuple[ReleaseTarget, Path], KaeterError]:
        self._console.info(f"preparing module: {module_path}")
        resolved = get_versions_file_path(module_path)
        if isinstance(resolved, Err):
            return resolved
        versions_path = resolved.value

        loaded = read_versions_file(versions_path)
        if isinstance(loaded, Err):
            return loaded
        versions = loaded.value
        self._console.debug(f"module identifier: {versions.id}")

        added = versions.add_release(ref_time, config.bump, config.user_version, commit_hash)
        if isinstance(added, Err):
            return Err(added.error.with_context(versions.id))
        version = str(added.value.number)
        self._console.debug(f"release version: {version}")

        saved = versions.save_to_file(versions_path)
        if isinstance(saved, Err):
            return saved
        staged = self._repo.add(versions_path)
        if isinstance(staged, Err):
            return Err(staged.error.with_context("failed to stage changes"))

        return Ok((ReleaseTarget(versions.id, version), versions_path))
