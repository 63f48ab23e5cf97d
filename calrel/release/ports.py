"""Capabilities the release pipeline needs from the outside world.

The pipeline reaches the repository, the registry and the lock tooling only
through these protocols. ``calrel.git.Repository`` and the command-backed
classes in ``calrel.release.registry`` implement them for real; tests use
in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from calrel.core.result import Result
from calrel.release.version import Version

__all__ = [
    "CollaboratorError",
    "LockRegenerator",
    "PackageRegistry",
    "VcsError",
    "VersionControl",
]


@dataclass(frozen=True, slots=True)
class VcsError:
    """Error from a version control operation.

    Attributes:
        command: The command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class CollaboratorError:
    """Failure reported by the registry or the lock tooling."""

    message: str
    hint: str | None = None


class VersionControl(Protocol):
    """The narrow slice of version control a release needs."""

    @property
    def root(self) -> Path: ...

    def list_tags(self) -> Result[tuple[str, ...], VcsError]: ...

    def is_clean(self) -> bool: ...

    def branch_exists(self, name: str) -> Result[bool, VcsError]: ...

    def create_branch(self, name: str) -> Result[None, VcsError]:
        """Create ``name`` from HEAD and switch to it."""
        ...

    def checkout(self, name: str) -> Result[None, VcsError]: ...

    def stage(self, paths: Sequence[Path]) -> Result[None, VcsError]: ...

    def is_ignored(self, path: Path) -> Result[bool, VcsError]:
        """True when ``path`` is untracked and matched by an ignore rule."""
        ...

    def has_staged_changes(self, paths: Sequence[Path]) -> Result[bool, VcsError]: ...

    def commit(self, message: str, paths: Sequence[Path]) -> Result[str, VcsError]:
        """Commit ``paths`` only, leaving anything else in the index staged.

        Returns the new commit id.
        """
        ...

    def merge_no_ff(self, branch: str, message: str) -> Result[str, VcsError]:
        """Merge ``branch`` into the current branch with a merge commit."""
        ...

    def tag_exists(self, name: str) -> Result[bool, VcsError]: ...

    def create_annotated_tag(self, name: str, message: str) -> Result[None, VcsError]: ...

    def push(self, remote: str, ref: str) -> Result[None, VcsError]: ...


class PackageRegistry(Protocol):
    def publish(self, version: Version) -> Result[None, CollaboratorError]: ...


class LockRegenerator(Protocol):
    def regenerate(self) -> Result[None, CollaboratorError]: ...
