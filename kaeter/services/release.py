"""Release orchestration: execute a release plan target by target.

Each target walks through the stages of ``ReleaseStage``. The first failing
target stops the run; releases already done are kept and later targets are
never attempted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.git.repository import Repository
from kaeter.git.validate import normalize_trunk, validate_commit_on_trunk
from kaeter.modules.inventory import Inventory, inventorize_repo
from kaeter.modules.versions import Versions, get_versions_file_path, read_versions_file
from kaeter.output.console import ConsoleProtocol
from kaeter.platform.process import ProcessRunner

from .makefiles import detect_module_makefile, run_make_target
from .release_plan import ReleasePlan, ReleaseTarget, plan_from_commit_message

__all__ = [
    "ModuleRelease",
    "ReleaseConfig",
    "ReleaseOutcome",
    "ReleaseReport",
    "ReleaseService",
    "ReleaseStage",
]


class ReleaseStage(Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    VALIDATED = "validated"
    BUILD_FILE_LOCATED = "build file located"
    CHECKED_OUT = "checked out"
    BUILT = "built"
    TESTED = "tested"
    RELEASED = "released"
    RESTORED = "restored"


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Options of a plan release run.

    Attributes:
        trunk: Branch release commits must be reachable from
        commit_message: Message holding the plan, HEAD's message when None
        dry_run: Build and test only, never run the release target
        skip_checkout: Release from the current working tree
        skip_modules: Module IDs to leave out of the plan
    """

    trunk: str
    commit_message: str | None = None
    dry_run: bool = False
    skip_checkout: bool = False
    skip_modules: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class ModuleRelease:
    """One target bound to its ledger, ready to be executed."""

    target: ReleaseTarget
    versions_path: Path
    versions: Versions
    restore_hash: str = ""
    trunk: str = ""
    dry_run: bool = False
    skip_checkout: bool = False


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    target: ReleaseTarget
    stage: ReleaseStage


@dataclass(frozen=True, slots=True)
class ReleaseReport:
    plan: ReleasePlan
    outcomes: tuple[ReleaseOutcome, ...] = field(default_factory=tuple)
    dry_run: bool = False

    def processed(self) -> list[ReleaseTarget]:
        """Targets that went through build and test."""
        return [o.target for o in self.outcomes if o.stage is not ReleaseStage.SKIPPED]

    def released(self) -> list[ReleaseTarget]:
        """Targets whose release target ran; always empty for a dry run."""
        if self.dry_run:
            return []
        return self.processed()

    def skipped(self) -> list[ReleaseTarget]:
        return [o.target for o in self.outcomes if o.stage is ReleaseStage.SKIPPED]


class ReleaseService:
    """Runs build, test and release make targets of planned modules."""

    def __init__(
        self,
        *,
        repo: Repository,
        runner: ProcessRunner,
        console: ConsoleProtocol,
    ) -> None:
        self._repo = repo
        self._runner = runner
        self._console = console

    # -------------------------------------------------------------------------
    # Plan releases
    # -------------------------------------------------------------------------

    def run_plan(self, config: ReleaseConfig) -> Result[ReleaseReport, KaeterError]:
        """Release every target of the plan found in the release commit."""
        head = self._repo.resolve_revision("HEAD")
        if isinstance(head, Err):
            return head
        head_hash = head.value

        message = config.commit_message
        if not message:
            self._console.debug("no commit message given, reading it from HEAD")
            read = self._repo.commit_message("HEAD")
            if isinstance(read, Err):
                return Err(read.error.with_context("failed to get commit message for HEAD"))
            message = read.value
        self._console.info(f"starting release from plan at {head_hash}")

        parsed = plan_from_commit_message(message)
        if isinstance(parsed, Err):
            return parsed
        plan = parsed.value
        for target in plan.releases:
            self._console.info(f"- {target.marshal()}")

        inventory = inventorize_repo(self._repo.path, console=self._console)
        inventory_error = inventory.error()
        if inventory_error is not None:
            return Err(inventory_error.with_context("failed to detect kaeter modules"))
        outcomes: list[ReleaseOutcome] = []
        for target in plan.releases:
            if target.module_id in config.skip_modules:
                self._console.info(f"skipping module release: {target.module_id}")
                outcomes.append(ReleaseOutcome(target, ReleaseStage.SKIPPED))
                continue

            bound = self._bind(inventory, target, head_hash, config)
            if isinstance(bound, Err):
                return Err(bound.error.with_context(f"release of {target.marshal()} failed"))
            released = self.release_module(bound.value)
            if isinstance(released, Err):
                return Err(released.error.with_context(f"release of {target.marshal()} failed"))
            outcomes.append(ReleaseOutcome(target, released.value))

        return Ok(ReleaseReport(plan=plan, outcomes=tuple(outcomes), dry_run=config.dry_run))

    def _bind(
        self,
        inventory: Inventory,
        target: ReleaseTarget,
        head_hash: str,
        config: ReleaseConfig,
    ) -> Result[ModuleRelease, KaeterError]:
        found = inventory.get_module(target.module_id)
        if isinstance(found, Err):
            return Err(found.error.with_context(f"could not locate module in repository living in {inventory.repo_root}"))
        resolved = get_versions_file_path(Path(inventory.repo_root) / found.value.module_path)
        if isinstance(resolved, Err):
            return resolved
        versions_path = resolved.value
        self._console.info(f"module {target.module_id} found at {versions_path}")

        loaded = read_versions_file(versions_path)
        if isinstance(loaded, Err):
            return loaded
        return Ok(
            ModuleRelease(
                target=target,
                versions_path=versions_path,
                versions=loaded.value,
                restore_hash=head_hash,
                trunk=config.trunk,
                dry_run=config.dry_run,
                skip_checkout=config.skip_checkout,
            )
        )

    # -------------------------------------------------------------------------
    # Single module
    # -------------------------------------------------------------------------

    def release_latest(self, module_path: Path, *, dry_run: bool = False) -> Result[ReleaseTarget, KaeterError]:
        """Release the latest ledger entry of one module from the current tree."""
        self._console.info(f"loading module for release: {module_path}")
        resolved = get_versions_file_path(module_path)
        if isinstance(resolved, Err):
            return resolved
        loaded = read_versions_file(resolved.value)
        if isinstance(loaded, Err):
            return loaded
        versions = loaded.value
        latest = versions.latest_release()
        if latest is None:
            return Err(KaeterError(kind="validation", message=f"module {versions.id} has no releases"))

        target = ReleaseTarget(versions.id, str(latest.number))
        released = self.release_module(
            ModuleRelease(
                target=target,
                versions_path=resolved.value,
                versions=versions,
                dry_run=dry_run,
                skip_checkout=True,
            )
        )
        if isinstance(released, Err):
            return released
        return Ok(target)

    def release_module(self, release: ModuleRelease) -> Result[ReleaseStage, KaeterError]:
        """Validate, check out, build, test, release and restore one target.

        Returns the last stage reached. Only the latest ledger entry can be
        released.
        """
        target = release.target
        versions = release.versions
        if target.module_id != versions.id:
            return Err(
                KaeterError(
                    kind="consistency",
                    message=f"target id {target.module_id} is not the same as the module id {versions.id}",
                )
            )
        latest = versions.latest_release()
        if latest is None or str(latest.number) != target.version:
            found = str(latest.number) if latest is not None else "none"
            return Err(
                KaeterError(
                    kind="consistency",
                    message=(
                        f"release target {target.marshal()} does not correspond to latest version "
                        f"({found}) found in {release.versions_path}"
                    ),
                )
            )
        self._log_stage(target, ReleaseStage.VALIDATED)

        module_dir = release.versions_path.parent
        makefile = detect_module_makefile(module_dir)
        if isinstance(makefile, Err):
            return makefile
        self._log_stage(target, ReleaseStage.BUILD_FILE_LOCATED)

        if release.skip_checkout:
            return self._run_targets(release, module_dir, makefile.value)

        on_trunk = validate_commit_on_trunk(self._repo, normalize_trunk(release.trunk), latest.commit_id)
        if isinstance(on_trunk, Err):
            return Err(on_trunk.error.with_context("invalid release commit"))
        self._console.info(f"checking out commit {latest.commit_id} of version {latest.number}")
        checked_out = self._repo.checkout(latest.commit_id)
        if isinstance(checked_out, Err):
            return Err(checked_out.error.with_context(f"failed to checkout release commit {latest.commit_id}"))
        self._log_stage(target, ReleaseStage.CHECKED_OUT)

        ran = self._run_targets(release, module_dir, makefile.value)
        restored = self._restore(release.restore_hash)
        if isinstance(ran, Err):
            if isinstance(restored, Err):
                return Err(
                    KaeterError(
                        kind=ran.error.kind,
                        message=f"{ran.error.message}; {restored.error.message}",
                        hint=ran.error.hint,
                    )
                )
            return ran
        if isinstance(restored, Err):
            return restored
        self._log_stage(target, ReleaseStage.RESTORED)
        return Ok(ReleaseStage.RESTORED)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_targets(self, release: ModuleRelease, module_dir: Path, makefile: str) -> Result[ReleaseStage, KaeterError]:
        target = release.target
        for make_target, stage in (("build", ReleaseStage.BUILT), ("test", ReleaseStage.TESTED)):
            ran = run_make_target(self._runner, module_dir, makefile, make_target, target.version)
            if isinstance(ran, Err):
                return ran
            self._log_stage(target, stage)

        if release.dry_run:
            self._console.warning("dry run mode is enabled: not releasing anything")
            return Ok(ReleaseStage.TESTED)

        ran = run_make_target(self._runner, module_dir, makefile, "release", target.version)
        if isinstance(ran, Err):
            return ran
        self._log_stage(target, ReleaseStage.RELEASED)
        return Ok(ReleaseStage.RELEASED)

    def _restore(self, restore_hash: str) -> Result[None, KaeterError]:
        reset = self._repo.reset_hard(restore_hash)
        if isinstance(reset, Err):
            return Err(reset.error.with_context(f"failed to reset back to {restore_hash}"))
        self._console.warning(f"repository HEAD reset in detached head state to {restore_hash}")
        return Ok(None)

    def _log_stage(self, target: ReleaseTarget, stage: ReleaseStage) -> None:
        self._console.debug(f"{target.marshal()}: {stage.value}")
