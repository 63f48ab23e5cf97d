"""Date-based version resolution.

Versions look like ``20250601.0.2``: the release date, a constant ``0``
minor, and a patch counting releases cut that day. Tags are the version
prefixed with ``v``. The next version is derived from today's date and the
tags already recorded, nothing else, so resolution is deterministic and
needs no repository.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import ClassVar

from calrel.core.result import Err, Ok, Result
from calrel.release.errors import ResolutionError

__all__ = [
    "Resolution",
    "TAG_PREFIX",
    "Version",
    "parse_date",
    "parse_version",
    "resolve",
    "resolve_next_version",
]

TAG_PREFIX = "v"

_DATE_FORMAT = "%Y%m%d"
_VERSION_RE = re.compile(r"v?(?P<date>[0-9]{8})\.0\.(?P<patch>[0-9]+)")
_DATE_RE = re.compile(r"[0-9]{4}-?[0-9]{2}-?[0-9]{2}")


@dataclass(frozen=True, slots=True, order=True)
class Version:
    """A release version, ordered by (date, patch)."""

    date: date
    patch: int = 0

    minor: ClassVar[int] = 0

    def __post_init__(self) -> None:
        if self.patch < 0:
            raise ValueError(f"patch must be non-negative, got {self.patch}")

    @property
    def stamp(self) -> str:
        """The date part, ``YYYYMMDD``."""
        return self.date.strftime(_DATE_FORMAT)

    def to_tag(self) -> str:
        return f"{TAG_PREFIX}{self}"

    def branch_name(self, prefix: str = "release/") -> str:
        return f"{prefix}{self.to_tag()}"

    def __str__(self) -> str:
        return f"{self.stamp}.{self.minor}.{self.patch}"


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of a resolution.

    Attributes:
        version: The next version.
        latest: Highest patch already tagged for that date, None if none.
        skipped: Tags carrying the date prefix that could not be parsed.
    """

    version: Version
    latest: int | None = None
    skipped: tuple[str, ...] = ()


def resolve(today: date, existing_tags: Iterable[str]) -> Resolution:
    """Resolve the next version, keeping diagnostics about ignored tags.

    Only tags shaped exactly ``v<YYYYMMDD>.0.<N>`` for ``today`` count. Tags
    of other dates are ignored; tags with today's prefix but a malformed
    tail (``v20250601.0.abc``, ``v20250601.0.``, ``v20250601.1.0``) are
    skipped and reported in ``Resolution.skipped``.
    """
    stamp = today.strftime(_DATE_FORMAT)
    prefix = f"{TAG_PREFIX}{stamp}."
    pattern = re.compile(rf"{re.escape(TAG_PREFIX)}{stamp}\.0\.([0-9]+)")

    patches: list[int] = []
    skipped: set[str] = set()
    for tag in existing_tags:
        if not tag.startswith(prefix):
            continue
        m = pattern.fullmatch(tag)
        if m is None:
            skipped.add(tag)
            continue
        patches.append(int(m.group(1)))

    if not patches:
        return Resolution(version=Version(today, 0), skipped=tuple(sorted(skipped)))

    latest = max(patches)
    return Resolution(
        version=Version(today, latest + 1),
        latest=latest,
        skipped=tuple(sorted(skipped)),
    )


def resolve_next_version(today: date, existing_tags: Iterable[str]) -> Version:
    """Next version for ``today`` given the recorded release tags."""
    return resolve(today, existing_tags).version


def parse_version(text: str) -> Result[Version, ResolutionError]:
    """Parse an explicit version override (``20250601.0.2``, ``v`` allowed)."""
    s = text.strip()
    m = _VERSION_RE.fullmatch(s)
    if m is None:
        return Err(
            ResolutionError(
                kind="invalid_version",
                message=f"invalid version: {text!r}",
                hint="Expected YYYYMMDD.0.N, e.g. 20250601.0.0",
            )
        )

    day = _parse_stamp(m.group("date"))
    if day is None:
        return Err(
            ResolutionError(
                kind="invalid_version",
                message=f"invalid date in version: {text!r}",
            )
        )
    return Ok(Version(day, int(m.group("patch"))))


def parse_date(text: str) -> Result[date, ResolutionError]:
    """Parse a release date given as ``YYYYMMDD`` or ``YYYY-MM-DD``."""
    s = text.strip()
    if _DATE_RE.fullmatch(s) is None:
        return Err(
            ResolutionError(
                kind="invalid_date",
                message=f"invalid date: {text!r}",
                hint="Expected YYYYMMDD or YYYY-MM-DD",
            )
        )

    day = _parse_stamp(s.replace("-", ""))
    if day is None:
        return Err(ResolutionError(kind="invalid_date", message=f"invalid date: {text!r}"))
    return Ok(day)


def _parse_stamp(stamp: str) -> date | None:
    try:
        return datetime.strptime(stamp, _DATE_FORMAT).date()
    except ValueError:
        return None
