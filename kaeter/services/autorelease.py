"""Autorelease: mark a module for release once its branch lands on trunk.

The ledger gets an entry whose commit is the ``AUTORELEASE`` placeholder.
CI later releases it from the merge commit (``kaeter ci release``). Calling
autorelease again while an entry is pending only refreshes its timestamp.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.git.repository import Repository
from kaeter.modules.versions import (
    AUTORELEASE_REF,
    VersionMetadata,
    Versions,
    get_versions_file_path,
    read_versions_file,
)
from kaeter.output.console import ConsoleProtocol
from kaeter.platform.process import ProcessRunner

from .hooks import AUTORELEASE_VERSION_HOOK, has_hook, run_hook
from .lint import check_module_or_restore

__all__ = ["AutoreleaseConfig", "AutoreleaseService", "apply_tags"]


def apply_tags(entry: VersionMetadata, tags: list[str] | None) -> None:
    """Set the tags of ``entry``.

    None keeps the current tags; an empty list (or a single empty string)
    clears them; otherwise empty strings are dropped.
    """
    if tags is None:
        return
    entry.tags = [tag for tag in tags if tag]


@dataclass(frozen=True, slots=True)
class AutoreleaseConfig:
    module_path: Path
    version: str | None = None
    tags: list[str] | None = None
    skip_lint: bool = False


class AutoreleaseService:
    def __init__(
        self,
        *,
        repo: Repository,
        repo_root: Path,
        runner: ProcessRunner,
        console: ConsoleProtocol,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._repo = repo
        self._repo_root = repo_root
        self._runner = runner
        self._console = console
        self._clock = clock

    def autorelease(self, config: AutoreleaseConfig) -> Result[VersionMetadata, KaeterError]:
        """Add (or refresh) the pending autorelease entry of one module."""
        ref_time = self._clock()
        resolved = get_versions_file_path(config.module_path)
        if isinstance(resolved, Err):
            return resolved
        versions_path = resolved.value
        loaded = read_versions_file(versions_path)
        if isinstance(loaded, Err):
            return loaded
        versions = loaded.value

        if versions.has_pending_autorelease():
            updated = self._refresh_pending(versions, ref_time, config)
        else:
            updated = self._add_pending(versions, ref_time, config)
        if isinstance(updated, Err):
            return updated

        saved = versions.save_to_file(versions_path)
        if isinstance(saved, Err):
            return saved
        self._console.success(f"autorelease of {versions.id} set to {updated.value.number}")

        if not config.skip_lint:
            linted = check_module_or_restore(self._repo, versions_path, self._console)
            if isinstance(linted, Err):
                return linted
        return updated

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _refresh_pending(
        self,
        versions: Versions,
        ref_time: datetime,
        config: AutoreleaseConfig,
    ) -> Result[VersionMetadata, KaeterError]:
        pending = versions.released_versions[-1]
        if config.version and config.version != str(pending.number):
            return Err(
                KaeterError(
                    kind="validation",
                    message=f"cannot autorelease {config.version} an autorelease is still pending for {pending.number}",
                )
            )
        self._console.warning(f"latest version {pending.number} is not yet released")
        self._console.info("bumping existing autorelease timestamp")
        pending.timestamp = ref_time.replace(microsecond=0)
        apply_tags(pending, config.tags)
        return Ok(pending)

    def _add_pending(
        self,
        versions: Versions,
        ref_time: datetime,
        config: AutoreleaseConfig,
    ) -> Result[VersionMetadata, KaeterError]:
        version = config.version
        if not version:
            self._console.debug("version not defined, attempting version hook")
            hooked = self._version_from_hook(versions, config.module_path)
            if isinstance(hooked, Err):
                return hooked
            version = hooked.value
            self._console.debug(f"using version from {AUTORELEASE_VERSION_HOOK} hook: {version}")

        added = versions.add_release(ref_time, "patch", version, AUTORELEASE_REF)
        if isinstance(added, Err):
            return added
        apply_tags(added.value, config.tags)
        return added

    def _version_from_hook(self, versions: Versions, module_path: Path) -> Result[str, KaeterError]:
        if not has_hook(AUTORELEASE_VERSION_HOOK, versions):
            return Err(
                KaeterError(
                    kind="validation",
                    message='flag "version" not set: specifying a version to release is required',
                )
            )
        current_version = ""
        current_hash = ""
        latest = versions.latest_release()
        if latest is not None:
            current_version = str(latest.number)
            current_hash = latest.commit_id
        return run_hook(
            AUTORELEASE_VERSION_HOOK,
            versions,
            self._repo_root,
            [str(module_path), current_version, current_hash],
            self._runner,
        )
