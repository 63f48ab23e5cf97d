"""Error types for the release bounded context.

Three families, by the stage that produces them:

- ``ResolutionError``: the version could not be determined (bad override or
  date). Nothing has been touched yet.
- ``ManifestError``: the manifest could not be bumped. Fatal to the branch
  cut only.
- ``ReleaseError``: a version-control or registry step failed.

``StepFailure`` wraps any of them with the name of the pipeline step that
failed and the steps that had already completed, which is what the CLI needs
to tell a human what is left to do.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from calrel.release.version import Version

ResolutionErrorKind = Literal["invalid_date", "invalid_version"]
ManifestErrorKind = Literal["not_found", "io_failure"]
ReleaseErrorKind = Literal[
    "invalid_input",
    "branch_exists",
    "empty_commit",
    "merge_conflict",
    "tag_exists",
    "push_rejected",
    "publish_rejected",
    "vcs_failed",
]


def _pretty(message: str, hint: str | None) -> str:
    if hint:
        return f"{message} (hint: {hint})"
    return message


@dataclass(frozen=True, slots=True)
class ResolutionError:
    kind: ResolutionErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


@dataclass(frozen=True, slots=True)
class ManifestError:
    kind: ManifestErrorKind
    message: str
    path: Path | None = None
    hint: str | None = None

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


type PipelineError = ResolutionError | ManifestError | ReleaseError


@dataclass(frozen=True, slots=True)
class StepFailure:
    """A pipeline step failed; everything before it stays as it is.

    Attributes:
        step: Name of the failed step (e.g. ``"publish"``).
        error: The underlying cause.
        completed: Steps that finished before the failure, in order.
        version: Version being released, once known.
    """

    step: str
    error: PipelineError
    completed: tuple[str, ...] = ()
    version: Version | None = None

    @property
    def kind(self) -> str:
        return self.error.kind

    def pretty(self) -> str:
        return f"{self.step}: {self.error.pretty()}"
