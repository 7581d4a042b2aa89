"""Concurrent search for ledger files.

The tree is walked with a thread pool, one task per directory. Each task lists
its directory and reports ledger files and subdirectories; the submitting
thread schedules subdirectories as new tasks. A directory that cannot be read
becomes an error in the result while the rest of the walk continues.
"""

from __future__ import annotations

import os
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

from kaeter.core.errors import KaeterError

__all__ = ["LEDGER_FILE_NAMES", "FindResult", "find_versions_files"]

LEDGER_FILE_NAMES = frozenset({"versions.yaml", "versions.yml"})
_SKIPPED_DIRS = frozenset({".git"})
_DEFAULT_WORKERS = 16


@dataclass(frozen=True, slots=True)
class FindResult:
    """Ledger files found below a root (sorted), plus per-directory errors."""

    paths: tuple[Path, ...] = ()
    errors: tuple[KaeterError, ...] = ()


@dataclass(frozen=True, slots=True)
class _Listing:
    ledgers: list[Path]
    subdirs: list[Path]
    error: KaeterError | None = None


def _list_dir(directory: Path) -> _Listing:
    ledgers: list[Path] = []
    subdirs: list[Path] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name not in _SKIPPED_DIRS:
                        subdirs.append(Path(entry.path))
                elif entry.name in LEDGER_FILE_NAMES and entry.is_file():
                    ledgers.append(Path(entry.path))
    except OSError as e:
        return _Listing(
            ledgers,
            subdirs,
            KaeterError(kind="io", message=f"unable to search {directory} for modules: {e.strerror or e}"),
        )
    return _Listing(ledgers, subdirs)


def find_versions_files(root: Path, *, max_workers: int = _DEFAULT_WORKERS) -> FindResult:
    """Find every ``versions.yaml``/``versions.yml`` below ``root``.

    Symlinked directories are not followed and ``.git`` is skipped. The walk
    always runs to completion.
    """
    root = root.absolute()
    found: list[Path] = []
    errors: list[KaeterError] = []

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="kaeter-find") as executor:
        pending: set[Future[_Listing]] = {executor.submit(_list_dir, root)}
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                listing = future.result()
                found.extend(listing.ledgers)
                if listing.error is not None:
                    errors.append(listing.error)
                for subdir in listing.subdirs:
                    pending.add(executor.submit(_list_dir, subdir))

    errors.sort(key=lambda e: e.message)
    return FindResult(paths=tuple(sorted(found)), errors=tuple(errors))
