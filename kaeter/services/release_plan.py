"""Release plans embedded in commit messages.

``prepare`` records the modules to release in the commit it creates::

    [release] ch.open:mod version 1.2.3

    Release message generated by #kaeter.
    Please do not edit the part below until the end of the raw YAML Segment.

    Release Plan:
    ```lang=yaml

    releases:
    - ch.open:mod:1.2.3
    ```

``release`` reads the plan back from the commit message. Module IDs may
contain colons, versions never do, so targets split on the last colon.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

import yaml

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result
from kaeter.core.structured import as_obj_list, as_str_dict

__all__ = [
    "RELEASE_TAG",
    "ReleasePlan",
    "ReleaseTarget",
    "has_release_plan",
    "plan_from_commit_message",
    "plan_from_yaml",
]

RELEASE_TAG = "[release]"

_COMMIT_MESSAGE_TEMPLATE = """\
[release] {first_id} version {first_version}{others}

Release message generated by #kaeter.
Please do not edit the part below until the end of the raw YAML Segment.

Release Plan:
```lang=yaml

{plan_yaml}
```
"""

_PLAN_PATTERN = re.compile(
    r".*Release Plan:(?:\n|\r\n?){1,2}```(?:lang=yaml)?(?:\n|\r\n?){1,2}(.*)```",
    re.DOTALL,
)


@dataclass(frozen=True, slots=True)
class ReleaseTarget:
    module_id: str
    version: str

    def marshal(self) -> str:
        return f"{self.module_id}:{self.version}"

    @classmethod
    def unmarshal(cls, raw: str) -> Result[ReleaseTarget, KaeterError]:
        module_id, sep, version = raw.rpartition(":")
        if not sep:
            return Err(KaeterError(kind="protocol", message=f"invalid release target: {raw!r}"))
        return Ok(cls(module_id=module_id, version=version))


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    """Ordered release targets."""

    releases: tuple[ReleaseTarget, ...]

    @classmethod
    def single(cls, module_id: str, version: str) -> ReleasePlan:
        return cls((ReleaseTarget(module_id, version),))

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            {"releases": [t.marshal() for t in self.releases]},
            default_flow_style=False,
            width=float("inf"),
        )

    def to_commit_message(self) -> Result[str, KaeterError]:
        if not self.releases:
            return Err(KaeterError(kind="protocol", message="cannot write an empty release plan to a commit message"))
        first = self.releases[0]
        others = len(self.releases) - 1
        return Ok(
            _COMMIT_MESSAGE_TEMPLATE.format(
                first_id=first.module_id,
                first_version=first.version,
                others=f" (+{others} other modules)" if others else "",
                plan_yaml=self.to_yaml(),
            )
        )

    def to_json(self) -> str:
        return json.dumps([{"ModuleID": t.module_id, "Version": t.version} for t in self.releases])


def plan_from_yaml(text: str) -> Result[ReleasePlan, KaeterError]:
    """Parse a ``releases:`` YAML document."""
    try:
        raw: object = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return Err(KaeterError(kind="protocol", message="invalid release plan YAML", hint=str(e)))

    data = as_str_dict(raw)
    entries = as_obj_list(data.get("releases")) if data is not None else None
    if not entries:
        return Err(KaeterError(kind="protocol", message="did not find any releases in the release plan"))

    targets: list[ReleaseTarget] = []
    for entry in entries:
        if isinstance(entry, (dict, list)) or entry is None:
            return Err(KaeterError(kind="protocol", message=f"invalid release target: {entry!r}"))
        target = ReleaseTarget.unmarshal(str(entry))
        if isinstance(target, Err):
            return target
        targets.append(target.value)
    return Ok(ReleasePlan(tuple(targets)))


def plan_from_commit_message(message: str) -> Result[ReleasePlan, KaeterError]:
    """Extract the release plan block from a commit message."""
    m = _PLAN_PATTERN.search(message)
    if m is None:
        return Err(KaeterError(kind="protocol", message="could not extract release plan from commit message"))
    return plan_from_yaml(m.group(1))


def has_release_plan(message: str) -> bool:
    """True when the message is tagged ``[release]`` and carries a valid plan."""
    if RELEASE_TAG not in message:
        return False
    return isinstance(plan_from_commit_message(message), Ok)
