# SPDX-License-Identifier: MIT
"""Module lint: required files and changelog coverage of released versions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from kaeter.core.errors import KaeterError, join_errors
from kaeter.core.result import Err, Ok, Result
from kaeter.git.repository import Repository
from kaeter.modules.find import find_versions_files
from kaeter.modules.versions import Versions, read_versions_file
from kaeter.output.console import ConsoleProtocol

__all__ = [
    "ChangelogEntry",
    "check_module",
    "check_module_or_restore",
    "check_modules_under",
    "parse_changelog",
]

README_FILE = "README.md"
CHANGELOG_FILE = "CHANGELOG.md"

# "## 1.2.3 - 24.12.20 Jane Doe": version, then a dd.mm.yy release date.
_ENTRY_PATTERN = re.compile(r"## ([^\s]+) - ([0-9][0-9]?\.[0-9][0-9]?\.[0-9][0-9])(?:\s.*)?")
_DATE_FORMAT = "%d.%m.%y"


@dataclass(frozen=True, slots=True)
class ChangelogEntry:
    version: str
    released: date
    content: str


def parse_changelog(text: str) -> Result[list[ChangelogEntry], KaeterError]:
    """Split a markdown changelog into its release entries."""
    headers = list(_ENTRY_PATTERN.finditer(text))
    entries: list[ChangelogEntry] = []
    for index, header in enumerate(headers):
        try:
            released = datetime.strptime(header.group(2), _DATE_FORMAT).date()
        except ValueError:
            return Err(
                KaeterError(
                    kind="validation",
                    message=f"invalid release date in changelog entry: {header.group(0).strip()}",
                )
            )
        end = headers[index + 1].start() if index + 1 < len(headers) else len(text)
        entries.append(ChangelogEntry(header.group(1), released, text[header.end() : end]))
    return Ok(entries)


def _check_changelog(versions: Versions, changelog_path: Path) -> KaeterError | None:
    try:
        text = changelog_path.read_text(encoding="utf-8")
    except OSError as e:
        return KaeterError(kind="io", message=f"unable to read {changelog_path}: {e}")

    parsed = parse_changelog(text)
    if isinstance(parsed, Err):
        return parsed.error.with_context(f"error in parsing {changelog_path}")
    documented = {entry.version for entry in parsed.value}

    for release in versions.released_versions:
        if release.is_init:
            continue
        if str(release.number) not in documented:
            return KaeterError(
                kind="validation",
                message=f"date is invalid or version '{release.number}' does not exist in '{changelog_path}'",
            )
    return None


def check_module(versions_path: Path, *, strict: bool = False) -> Result[None, KaeterError]:
    """Check the module owning ``versions_path``.

    The ledger must parse, a README must exist and every released version
    (except INIT) needs a CHANGELOG entry. In strict mode a pending
    autorelease is an error too. All problems are reported at once.
    """
    module_dir = versions_path.parent
    errors: list[KaeterError] = []

    loaded = read_versions_file(versions_path)
    versions: Versions | None = None
    match loaded:
        case Ok(value):
            versions = value
        case Err(e):
            errors.append(e.with_context("ledger parsing failed"))

    if strict and versions is not None and versions.has_pending_autorelease():
        errors.append(KaeterError(kind="consistency", message=f"module {versions.id} has a pending autorelease"))

    if not (module_dir / README_FILE).is_file():
        errors.append(KaeterError(kind="validation", message=f"existence check failed for README in {module_dir}"))

    changelog = module_dir / CHANGELOG_FILE
    if not changelog.is_file():
        errors.append(
            KaeterError(kind="validation", message=f"existence check failed for CHANGELOG in {module_dir}")
        )
    elif versions is not None:
        changelog_error = _check_changelog(versions, changelog)
        if changelog_error is not None:
            errors.append(changelog_error.with_context("versions check failed for CHANGELOG"))

    error = join_errors(errors)
    if error is not None:
        return Err(error)
    return Ok(None)


def check_modules_under(root: Path, *, strict: bool = False) -> Result[int, KaeterError]:
    """Lint every module below ``root``, reporting the issues of all of them.

    Returns the number of modules checked.
    """
    found = find_versions_files(root)
    errors = list(found.errors)
    for versions_path in found.paths:
        result = check_module(versions_path, strict=strict)
        if isinstance(result, Err):
            errors.append(result.error.with_context(str(versions_path.parent)))

    error = join_errors(errors)
    if error is not None:
        return Err(error)
    return Ok(len(found.paths))


def check_module_or_restore(
    repo: Repository,
    versions_path: Path,
    console: ConsoleProtocol,
) -> Result[None, KaeterError]:
    """Lint a freshly mutated module, restoring its ledger with git on failure.

    If the restore fails too, the returned error carries both failures and the
    ledger has to be repaired by hand.
    """
    result = check_module(versions_path)
    if isinstance(result, Ok):
        return result

    console.error("error detected on module, reverting changes to its ledger")
    restored = repo.restore_file(versions_path)
    if isinstance(restored, Err):
        console.error(f"unexpected error reverting {versions_path}, edit it manually to remove the new version")
        return Err(
            KaeterError(
                kind=result.error.kind,
                message=f"{result.error.message}; restoring the ledger failed as well: {restored.error.message}",
                hint=restored.error.hint,
            )
        )
    return result
