"""Module ledgers, version identifiers and module discovery."""

from kaeter.modules.discovery import DiscoveryResult, KaeterModule, discover_modules, load_module
from kaeter.modules.find import find_versions_files
from kaeter.modules.inventory import Inventory, build_inventory, inventorize_repo, read_inventory
from kaeter.modules.version import (
    Bump,
    SemanticVersion,
    VersionIdentifier,
    VersioningScheme,
    VersionString,
    parse_version,
)
from kaeter.modules.versions import (
    AUTORELEASE_REF,
    INIT_REF,
    VersionMetadata,
    Versions,
    get_versions_file_path,
    parse_versions,
    read_versions_file,
)

__all__ = [
    "AUTORELEASE_REF",
    "INIT_REF",
    "Bump",
    "DiscoveryResult",
    "Inventory",
    "KaeterModule",
    "SemanticVersion",
    "VersionIdentifier",
    "VersionMetadata",
    "VersionString",
    "VersioningScheme",
    "Versions",
    "build_inventory",
    "discover_modules",
    "find_versions_files",
    "get_versions_file_path",
    "inventorize_repo",
    "load_module",
    "parse_version",
    "parse_versions",
    "read_inventory",
    "read_versions_file",
]
