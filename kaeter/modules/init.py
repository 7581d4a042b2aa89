"""Initialization of new kaeter modules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result

from .find import LEDGER_FILE_NAMES
from .version import VersioningScheme
from .versions import DEFAULT_LEDGER_NAME, Versions, read_versions_file

__all__ = ["InitOptions", "initialize_module"]

VERSIONS_TEMPLATE = """\
# Auto-generated file: please edit with care.

# Identifies this module within the fat repo.
id: {module_id}
# The underlying tool to which building and releasing is handed off
type: Makefile
# Should this module be versioned with semantic or calendar versioning?
versioning: {scheme}
# Version identifiers have the following format:
# <version string>: <RFC3339 formatted timestamp>|<commit ID>
versions:
    0.0.0: 1970-01-01T00:00:00Z|INIT
"""
README_PLACEHOLDER = "BLESS-THE-MEANING-UPON-ME\n"
CHANGELOG_HEADER = "# CHANGELOG\n"
CHANGELOG_LINK = "\n## CHANGELOG\n\nSee [CHANGELOG]({target})\n"


@dataclass(frozen=True, slots=True)
class InitOptions:
    module_id: str
    module_path: Path
    versioning: str = "SemVer"
    init_readme: bool = True
    init_changelog: bool = True


def initialize_module(options: InitOptions) -> Result[Versions, KaeterError]:
    """Create the ledger (plus README.md and CHANGELOG.md when absent).

    The module directory must exist and must not hold a ledger yet.
    """
    scheme = VersioningScheme.parse(options.versioning)
    if scheme is None:
        return Err(KaeterError(kind="validation", message=f"unknown versioning scheme: {options.versioning}"))

    module_dir = options.module_path.absolute()
    if not module_dir.is_dir():
        return Err(
            KaeterError(
                kind="validation",
                message=f"requires a path to an existing directory: {options.module_path} resolved to {module_dir}",
            )
        )
    for name in sorted(LEDGER_FILE_NAMES):
        if (module_dir / name).exists():
            return Err(
                KaeterError(
                    kind="validation",
                    message=f"cannot init a module with a pre-existing {name} file: {module_dir / name}",
                )
            )

    versions_path = module_dir / DEFAULT_LEDGER_NAME
    readme = module_dir / "README.md"
    changelog = module_dir / "CHANGELOG.md"
    try:
        versions_path.write_text(
            VERSIONS_TEMPLATE.format(module_id=options.module_id, scheme=scheme.value),
            encoding="utf-8",
        )
        if options.init_readme and not readme.exists():
            readme.write_text(README_PLACEHOLDER, encoding="utf-8")
        if options.init_changelog and not changelog.exists():
            changelog.write_text(CHANGELOG_HEADER, encoding="utf-8")
        if options.init_readme and options.init_changelog:
            with readme.open("a", encoding="utf-8") as handle:
                handle.write(CHANGELOG_LINK.format(target=changelog.name))
    except OSError as e:
        return Err(KaeterError(kind="io", message=f"unable to initialize module in {module_dir}: {e}"))

    return read_versions_file(versions_path)
