"""CI entry points: autorelease plan in pull request bodies.

The changeset JSON comes from an external change detector. Only the parts
used here are read::

    {
        "Commit": {"ReleasePlan": {"Releases": [{"ModuleID": "...", "Version": "..."}]}},
        "Kaeter": {"Modules": {"<id>": {"id": "<id>", "autoRelease": "1.2.3"}}},
        "PullRequest": {"title": "...", "body": "..."}
    }

Key lookup is case-insensitive, as the detector has historically emitted both
``body`` and ``Body``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.core.structured import StrDict, as_obj_list, as_str_dict
from kaeter.output.console import ConsoleProtocol
from kaeter.platform.files import atomic_write_text

from .release_plan import ReleasePlan, ReleaseTarget

__all__ = [
    "AUTORELEASE_PLAN_PREFIX",
    "Changeset",
    "autorelease_plan_lines",
    "insert_plan",
    "load_changeset",
    "parse_changeset",
    "strip_autorelease_plan",
    "update_pull_request_body",
]

AUTORELEASE_PLAN_PREFIX = "Autorelease-Plan"

_PLAN_LINE = re.compile(rf"(?m)^{re.escape(AUTORELEASE_PLAN_PREFIX)}: .+$\r?\n?")


@dataclass(frozen=True, slots=True)
class Changeset:
    """Subset of the change detector output."""

    commit_plan: ReleasePlan | None = None
    autoreleases: dict[str, str] = field(default_factory=dict)
    pull_request_body: str = ""


def _get_ci(data: StrDict | None, key: str) -> object:
    if data is None:
        return None
    if key in data:
        return data[key]
    lowered = key.lower()
    for k, v in data.items():
        if k.lower() == lowered:
            return v
    return None


def _plan_from_json(raw: object) -> ReleasePlan | None:
    targets: list[ReleaseTarget] = []
    for item in as_obj_list(_get_ci(as_str_dict(raw), "Releases")) or []:
        entry = as_str_dict(item)
        module_id = _get_ci(entry, "ModuleID")
        version = _get_ci(entry, "Version")
        if isinstance(module_id, str) and isinstance(version, str):
            targets.append(ReleaseTarget(module_id, version))
    return ReleasePlan(tuple(targets)) if targets else None


def parse_changeset(text: str) -> Result[Changeset, KaeterError]:
    try:
        raw: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(KaeterError(kind="validation", message=f"invalid changeset JSON: {e}"))
    data = as_str_dict(raw)
    if data is None:
        return Err(KaeterError(kind="validation", message="changeset JSON must be an object"))

    commit = as_str_dict(_get_ci(data, "Commit"))
    kaeter = as_str_dict(_get_ci(data, "Kaeter"))
    pull_request = as_str_dict(_get_ci(data, "PullRequest"))

    autoreleases: dict[str, str] = {}
    for module_id, module in (as_str_dict(_get_ci(kaeter, "Modules")) or {}).items():
        version = _get_ci(as_str_dict(module), "autoRelease")
        if isinstance(version, str) and version:
            autoreleases[module_id] = version

    body = _get_ci(pull_request, "body")
    return Ok(
        Changeset(
            commit_plan=_plan_from_json(_get_ci(commit, "ReleasePlan")),
            autoreleases=autoreleases,
            pull_request_body=body if isinstance(body, str) else "",
        )
    )


def load_changeset(path: Path) -> Result[Changeset, KaeterError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(KaeterError(kind="io", message=f"could not read {path}: {e}"))
    return parse_changeset(text).map_err(lambda e: e.with_context(f"could not parse {path}"))


def autorelease_plan_lines(autoreleases: dict[str, str]) -> str:
    """``Autorelease-Plan: id:version`` lines sorted by module ID, with a leading newline."""
    if not autoreleases:
        return ""
    lines = [f"{AUTORELEASE_PLAN_PREFIX}: {module_id}:{autoreleases[module_id]}\n" for module_id in sorted(autoreleases)]
    return "\n" + "".join(lines)


def strip_autorelease_plan(body: str) -> str:
    """Remove previous plan lines; surrounding whitespace goes along with them."""
    if not _PLAN_LINE.search(body):
        return body
    return _PLAN_LINE.sub("", body).strip()


def insert_plan(body: str, plan: str) -> str:
    if not plan:
        return body
    return f"{body}\n{plan}"


def update_pull_request_body(
    changeset_path: Path,
    output_path: Path,
    *,
    console: ConsoleProtocol,
) -> Result[str, KaeterError]:
    """Write the pull request body with an up to date autorelease plan.

    Fails when the changeset already carries a prepared release plan, the
    two release styles cannot be mixed.
    """
    loaded = load_changeset(changeset_path)
    if isinstance(loaded, Err):
        return Err(loaded.error.with_context("could not load changeset"))
    changeset = loaded.value
    if changeset.commit_plan is not None:
        return Err(KaeterError(kind="consistency", message="prepare release detected: incompatible release(s)"))

    plan = autorelease_plan_lines(changeset.autoreleases)
    console.debug(f"new autorelease plan:{plan or ' (empty)'}")
    body = insert_plan(strip_autorelease_plan(changeset.pull_request_body), plan)

    try:
        atomic_write_text(output_path, body, mode=0o600)
    except OSError as e:
        return Err(KaeterError(kind="io", message=f"could not write pull request body to file {output_path}: {e}"))
    console.info(f"saved pull request body to {output_path}")
    return Ok(body)
