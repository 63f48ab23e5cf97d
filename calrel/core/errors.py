"""Error codes for CLI exit status.

Every command maps its failure to one of these codes. The values are process
exit codes and must stay stable, CI jobs branch on them:
- 0: Success
- 1: User error (malformed version or date override, bad option combination)
- 2: Environment error (not a git repository, invalid calrel config)
- 3: Build error (build/test/lint/clean passthrough failed)
- 4: Network error (push or publish rejected by the remote side)
- 5: I/O error (manifest missing, unreadable or without a version field)
- 6: Release error (branch or tag exists, empty commit, merge conflict)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    RELEASE_ERROR = 6

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
