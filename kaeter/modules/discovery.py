"""Discovery of kaeter modules in a repository.

A kaeter module is any directory holding a parseable ledger. Discovery finds
all ledgers concurrently (see ``find``), then loads each one into a
``KaeterModule``. A ledger that fails to load is reported and skipped and
never prevents its siblings from being returned. Only unreadable directories
and missing dependency paths are blocking errors.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from kaeter.core.errors import KaeterError, join_errors
from kaeter.core.result import Err, Ok, Result
from kaeter.core.structured import StrDict, get_str, get_str_list, get_str_map

from .find import find_versions_files
from .versions import Versions, read_versions_file

__all__ = ["DiscoveryResult", "KaeterModule", "discover_modules", "load_module"]


@dataclass(frozen=True, slots=True)
class KaeterModule:
    """Inventory entry for one module.

    Attributes:
        module_id: Identifier declared by the ledger
        module_path: Module directory relative to the repository root
        module_type: Declared build type (e.g. ``Makefile``)
        annotations: ``metadata.annotations`` of the ledger
        dependencies: Extra repository relative paths affecting the module
        auto_release: Version of the pending AUTORELEASE entry, if any
    """

    module_id: str
    module_path: str
    module_type: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    dependencies: tuple[str, ...] = ()
    auto_release: str | None = None

    def to_dict(self) -> StrDict:
        data: StrDict = {"id": self.module_id, "path": self.module_path, "type": self.module_type}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.auto_release:
            data["autoRelease"] = self.auto_release
        if self.dependencies:
            data["dependencies"] = list(self.dependencies)
        return data

    @classmethod
    def from_dict(cls, data: StrDict) -> KaeterModule:
        return cls(
            module_id=get_str(data, "id") or "",
            module_path=get_str(data, "path") or "",
            module_type=get_str(data, "type") or "",
            annotations=get_str_map(data, "annotations"),
            dependencies=tuple(get_str_list(data, "dependencies")),
            auto_release=get_str(data, "autoRelease"),
        )


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Modules found (in ledger path order) and the problems met on the way.

    ``errors`` block any use of the result: unreadable directories and
    dependency paths that do not exist. ``skipped`` lists ledgers that could
    not be turned into a module; they are reported and otherwise ignored.
    """

    modules: tuple[KaeterModule, ...] = ()
    errors: tuple[KaeterError, ...] = ()
    skipped: tuple[KaeterError, ...] = ()

    def error(self) -> KaeterError | None:
        return join_errors(self.errors)


def _dependency_error(ledger: Versions, repo_root: Path) -> KaeterError | None:
    missing = [dep for dep in ledger.dependencies if not (repo_root / dep).exists()]
    if not missing:
        return None
    return KaeterError(
        kind="validation",
        message=f"invalid dependency path in {ledger.id}: {', '.join(missing)}",
    )


def _module_from_ledger(ledger: Versions, module_path: str) -> Result[KaeterModule, KaeterError]:
    if not ledger.id:
        return Err(KaeterError(kind="validation", message=f"module does not have an identifier: {module_path}"))

    autoreleases = ledger.autorelease_entries()
    if len(autoreleases) > 1:
        return Err(KaeterError(kind="consistency", message=f"more than 1 autorelease found in {module_path}"))

    return Ok(
        KaeterModule(
            module_id=ledger.id,
            module_path=module_path,
            module_type=ledger.module_type,
            annotations=dict(ledger.annotations),
            dependencies=tuple(ledger.dependencies),
            auto_release=str(autoreleases[0].number) if autoreleases else None,
        )
    )


def load_module(versions_path: Path, repo_root: Path) -> Result[KaeterModule, KaeterError]:
    """Load the ledger at ``versions_path`` into a ``KaeterModule``."""
    module_path = os.path.relpath(versions_path.parent, repo_root)
    versions = read_versions_file(versions_path)
    if isinstance(versions, Err):
        return Err(versions.error.with_context(f"could not load {module_path}"))

    dependency_error = _dependency_error(versions.value, repo_root)
    if dependency_error is not None:
        return Err(dependency_error)
    return _module_from_ledger(versions.value, module_path)


def discover_modules(repo_root: Path) -> DiscoveryResult:
    """Find and load every module below ``repo_root``.

    A dependency path that does not exist is blocking; any other ledger that
    fails to load is skipped.
    """
    repo_root = repo_root.absolute()
    found = find_versions_files(repo_root)
    modules: list[KaeterModule] = []
    errors = list(found.errors)
    skipped: list[KaeterError] = []

    for versions_path in found.paths:
        module_path = os.path.relpath(versions_path.parent, repo_root)
        versions = read_versions_file(versions_path)
        if isinstance(versions, Err):
            skipped.append(versions.error.with_context(f"could not load {module_path}"))
            continue

        dependency_error = _dependency_error(versions.value, repo_root)
        if dependency_error is not None:
            errors.append(dependency_error.with_context(f"invalid module found at {versions_path}"))
            continue

        match _module_from_ledger(versions.value, module_path):
            case Ok(module):
                modules.append(module)
            case Err(e):
                skipped.append(e)

    return DiscoveryResult(modules=tuple(modules), errors=tuple(errors), skipped=tuple(skipped))
