"""Release bounded context: version resolution and the release pipeline."""

from calrel.release.branch import BranchRef, cut_release_branch
from calrel.release.errors import (
    ManifestError,
    PipelineError,
    ReleaseError,
    ResolutionError,
    StepFailure,
)
from calrel.release.integrate import ReleaseReport, integrate
from calrel.release.manifest import ManifestUpdate, apply_version, read_version
from calrel.release.version import (
    Resolution,
    Version,
    parse_date,
    parse_version,
    resolve,
    resolve_next_version,
)

__all__ = [
    # branch
    "BranchRef",
    "cut_release_branch",
    # errors
    "ManifestError",
    "PipelineError",
    "ReleaseError",
    "ResolutionError",
    "StepFailure",
    # integrate
    "ReleaseReport",
    "integrate",
    # manifest
    "ManifestUpdate",
    "apply_version",
    "read_version",
    # version
    "Resolution",
    "Version",
    "parse_date",
    "parse_version",
    "resolve",
    "resolve_next_version",
]
