"""Module build files and make target invocation."""

from __future__ import annotations

from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.platform.process import ProcessRunner

__all__ = ["MAKEFILE_NAMES", "detect_module_makefile", "run_make_target"]

# Preference order: a kaeter specific makefile wins over the module's own.
MAKEFILE_NAMES = ("Makefile.kaeter", "Makefile")


def detect_module_makefile(module_dir: Path) -> Result[str, KaeterError]:
    """Name of the makefile used to build and release ``module_dir``."""
    for name in MAKEFILE_NAMES:
        candidate = module_dir / name
        if not candidate.exists():
            continue
        if candidate.is_dir():
            return Err(KaeterError(kind="not_found", message=f"module {module_dir} {name} cannot be a directory"))
        return Ok(name)
    return Err(KaeterError(kind="not_found", message=f"module {module_dir} has no Makefile, cannot release"))


def run_make_target(
    runner: ProcessRunner,
    module_dir: Path,
    makefile: str,
    target: str,
    version: str,
) -> Result[None, KaeterError]:
    """Run ``make --file <makefile> -e VERSION=<version> <target>`` in the module.

    Output is streamed to the terminal.
    """
    cmd = ["make", "--file", makefile, "-e", f"VERSION={version}", target]
    match runner.run_live(cmd, cwd=module_dir):
        case Ok(_):
            return Ok(None)
        case Err(e):
            return Err(
                KaeterError(
                    kind="external_tool",
                    message=f"failed '{target}' target on module {module_dir} (exit {e.returncode})",
                    hint=e.output or None,
                )
            )
