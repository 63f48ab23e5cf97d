"""Git operations module.

Usage:
    from calrel.git import Repository

    repo = Repository(Path("/path/to/repo"))
    tags = repo.list_tags()
"""

from calrel.git.repository import (
    Repository,
    VcsError,
    find_repo_root,
)

__all__ = [
    "Repository",
    "VcsError",
    "find_repo_root",
]
