"""Git operations module.

Usage:
    from kaeter.git import Repository, validate_commit_on_trunk

    repo = Repository(repo_root)
    head = repo.resolve_revision("HEAD")
"""

from kaeter.git.repository import FileChangeStatus, Repository
from kaeter.git.validate import normalize_trunk, validate_commit_on_trunk

__all__ = [
    "FileChangeStatus",
    "Repository",
    "normalize_trunk",
    "validate_commit_on_trunk",
]
