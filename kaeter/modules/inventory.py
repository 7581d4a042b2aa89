"""Inventory of the kaeter modules of a repository.

The inventory is the deduplicated, ID-sorted module list used to resolve
release targets. It can be exported to JSON (``kaeter inventorize``) and read
back by CI jobs, using the historical key names ``Modules`` and ``RepoRoot``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from kaeter.core.errors import KaeterError, join_errors
from kaeter.core.result import Err, Ok, Result
from kaeter.core.structured import as_obj_list, as_str_dict, get_str
from kaeter.output.console import ConsoleProtocol

from .discovery import KaeterModule, discover_modules

__all__ = ["Inventory", "build_inventory", "inventorize_repo", "read_inventory"]


@dataclass(frozen=True, slots=True)
class Inventory:
    """Modules sorted by ID with a lookup table.

    ``errors`` holds blocking discovery failures and duplicate ID errors.
    ``skipped`` holds ledgers that could not be loaded; they only warrant a
    warning. Modules that were loaded successfully are usable either way.
    """

    repo_root: str
    modules: tuple[KaeterModule, ...] = ()
    errors: tuple[KaeterError, ...] = ()
    skipped: tuple[KaeterError, ...] = ()
    duplicate_ids: frozenset[str] = frozenset()
    lookup: dict[str, KaeterModule] = field(default_factory=dict, compare=False, repr=False)

    def error(self) -> KaeterError | None:
        """All errors joined into one, or None."""
        return join_errors(self.errors)

    def get_module(self, module_id: str) -> Result[KaeterModule, KaeterError]:
        if module_id in self.duplicate_ids:
            return Err(
                KaeterError(
                    kind="consistency",
                    message=f"module id is declared by more than one ledger: {module_id}",
                )
            )
        module = self.lookup.get(module_id)
        if module is None:
            return Err(KaeterError(kind="not_found", message=f"module id does not exist: {module_id}"))
        return Ok(module)

    def to_json(self) -> str:
        payload = {"Modules": [m.to_dict() for m in self.modules], "RepoRoot": self.repo_root}
        return json.dumps(payload, indent=4)


def build_inventory(
    repo_root: str,
    modules: list[KaeterModule] | tuple[KaeterModule, ...],
    *,
    errors: tuple[KaeterError, ...] = (),
    skipped: tuple[KaeterError, ...] = (),
    console: ConsoleProtocol | None = None,
) -> Inventory:
    """Deduplicate ``modules`` by ID (first one wins) and sort them."""
    if console is not None:
        for problem in skipped:
            console.warning(f"ignoring ledger: {problem.pretty()}")

    lookup: dict[str, KaeterModule] = {}
    duplicates: list[str] = []

    for module in modules:
        existing = lookup.get(module.module_id)
        if existing is None:
            lookup[module.module_id] = module
            continue
        duplicates.append(module.module_id)
        if console is not None:
            console.warning(
                f"duplicate module ID {module.module_id}: keeping {existing.module_path}, ignoring {module.module_path}"
            )

    all_errors = list(errors)
    if duplicates:
        all_errors.append(
            KaeterError(kind="consistency", message=f"duplicate module IDs found: {', '.join(duplicates)}")
        )

    return Inventory(
        repo_root=repo_root,
        modules=tuple(sorted(lookup.values(), key=lambda m: m.module_id)),
        errors=tuple(all_errors),
        skipped=tuple(skipped),
        duplicate_ids=frozenset(duplicates),
        lookup=lookup,
    )


def inventorize_repo(repo_root: Path, *, console: ConsoleProtocol | None = None) -> Inventory:
    """Discover all modules below ``repo_root`` and build the inventory.

    Ledgers are visited in sorted path order so the retained module for a
    duplicated ID is deterministic.
    """
    discovered = discover_modules(repo_root)
    if console is not None:
        console.debug(f"found {len(discovered.modules)} module(s) in {repo_root}")
    return build_inventory(
        str(repo_root),
        discovered.modules,
        errors=discovered.errors,
        skipped=discovered.skipped,
        console=console,
    )


def read_inventory(text: str) -> Result[Inventory, KaeterError]:
    """Rebuild an inventory from its JSON export."""
    try:
        raw: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(KaeterError(kind="validation", message=f"invalid inventory JSON: {e}"))

    data = as_str_dict(raw)
    if data is None:
        return Err(KaeterError(kind="validation", message="inventory JSON must be an object"))
    modules: list[KaeterModule] = []
    for item in as_obj_list(data.get("Modules")) or []:
        entry = as_str_dict(item)
        if entry is None:
            return Err(KaeterError(kind="validation", message="inventory modules must be objects"))
        modules.append(KaeterModule.from_dict(entry))

    inventory = build_inventory(get_str(data, "RepoRoot") or "", modules)
    error = inventory.error()
    if error is not None:
        return Err(error)
    return Ok(inventory)
