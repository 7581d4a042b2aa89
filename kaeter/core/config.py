"""Typed configuration loading and access.

Repository level settings live in ``.kaeter.toml`` at the repository root:

    [git.main]
    branch = "origin/master"

All fields have defaults so a repository without the file works out of the box.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_TRUNK_BRANCH",
    "ConfigError",
    "GitConfig",
    "KaeterConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = ".kaeter.toml"
DEFAULT_TRUNK_BRANCH = "origin/master"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class GitConfig:
    """Git related settings."""

    main_branch: str = DEFAULT_TRUNK_BRANCH


@dataclass(frozen=True, slots=True)
class KaeterConfig:
    """Main configuration container."""

    git: GitConfig = field(default_factory=GitConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> KaeterConfig:
        """Create KaeterConfig from a mapping (parsed TOML)."""
        git: StrDict = get_table(data, "git") or {}
        main: StrDict = get_table(git, "main") or {}

        return cls(
            git=GitConfig(main_branch=get_str(main, "branch") or DEFAULT_TRUNK_BRANCH),
        )

    def with_main_branch(self, branch: str | None) -> KaeterConfig:
        """Return a copy where a non-empty ``branch`` overrides the trunk."""
        if not branch:
            return self
        return KaeterConfig(git=GitConfig(main_branch=branch))


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[KaeterConfig, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to .kaeter.toml

    Returns:
        Ok(KaeterConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(KaeterConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> KaeterConfig:
    """Load config from file, or return the defaults if it cannot be read."""
    result = load_config(path)
    if isinstance(result, Ok):
        return result.value
    return KaeterConfig()
