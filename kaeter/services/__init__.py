# SPDX-License-Identifier: MIT
"""Release services of kaeter.

Services implement the release workflows (prepare, autorelease, release, CI)
on top of the module layer (modules/) and infrastructure (git/, platform/).
"""

from kaeter.services.autorelease import AutoreleaseConfig, AutoreleaseService
from kaeter.services.lint import check_module, check_modules_under
from kaeter.services.prepare import PrepareConfig, PrepareService
from kaeter.services.release import ReleaseConfig, ReleaseReport, ReleaseService, ReleaseStage
from kaeter.services.release_plan import ReleasePlan, ReleaseTarget, has_release_plan, plan_from_commit_message

__all__ = [
    # Release plans
    "ReleasePlan",
    "ReleaseTarget",
    "has_release_plan",
    "plan_from_commit_message",
    # Workflows
    "AutoreleaseConfig",
    "AutoreleaseService",
    "PrepareConfig",
    "PrepareService",
    "ReleaseConfig",
    "ReleaseReport",
    "ReleaseService",
    "ReleaseStage",
    # Lint
    "check_module",
    "check_modules_under",
]
