"""Module hooks declared through ledger annotations.

A module opts into a hook with an annotation such as::

    metadata:
      annotations:
        open.ch/kaeter-hook/autorelease-version: tools/next-version.sh

The value is an executable relative to the repository root. It runs from the
repository root and its trimmed output is the hook's result.
"""

from __future__ import annotations

from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.modules.versions import Versions
from kaeter.platform.process import ProcessRunner

__all__ = ["ANNOTATION_PREFIX", "AUTORELEASE_VERSION_HOOK", "has_hook", "run_hook"]

ANNOTATION_PREFIX = "open.ch/kaeter-hook/"
AUTORELEASE_VERSION_HOOK = "autorelease-version"


def has_hook(name: str, versions: Versions) -> bool:
    return ANNOTATION_PREFIX + name in versions.annotations


def run_hook(
    name: str,
    versions: Versions,
    repo_root: Path,
    args: list[str],
    runner: ProcessRunner,
) -> Result[str, KaeterError]:
    """Execute the named hook with positional ``args``."""
    hook_path = versions.annotations.get(ANNOTATION_PREFIX + name)
    if hook_path is None:
        return Err(KaeterError(kind="not_found", message=f"module {versions.id} has no {name} hook"))
    if ".." in hook_path:
        return Err(
            KaeterError(
                kind="validation",
                message="path traversal not allowed in hooks, use relative local paths only",
            )
        )

    executable = str(repo_root / hook_path) if "/" in hook_path else hook_path
    match runner.run([executable, *args], cwd=repo_root):
        case Ok(output):
            return Ok(output.strip())
        case Err(e):
            return Err(
                KaeterError(
                    kind="external_tool",
                    message=f"execution of {name} hook failed (exit {e.returncode})",
                    hint=e.output or None,
                )
            )
