from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from calrel.core.config import ManifestSettings
from calrel.core.result import Err, Ok, Result
from calrel.output.console import ConsoleProtocol, Style
from calrel.platform.files import atomic_write_text, read_text_exact
from calrel.release.errors import ManifestError
from calrel.release.ports import LockRegenerator
from calrel.release.version import Version

_HEADER_RE = re.compile(r"(?m)^[ \t]*\[")
_TOKEN_RE = re.compile(r"\"\"\"|'''|\"(?:[^\"\\\r\n]|\\.)*\"|'[^'\r\n]*'|#[^\r\n]*")


@dataclass(frozen=True, slots=True)
class ManifestUpdate:
    """What a version bump changed on disk.

    Attributes:
        manifest: The rewritten manifest.
        previous: Version string the manifest declared before.
        lock: Lock artifact to stage alongside, None if there is none.
        lock_regenerated: False when regeneration was skipped or failed.
    """

    manifest: Path
    previous: str
    lock: Path | None = None
    lock_regenerated: bool = False

    @property
    def paths(self) -> tuple[Path, ...]:
        if self.lock is None:
            return (self.manifest,)
        return (self.manifest, self.lock)


@dataclass(frozen=True, slots=True)
class _Field:
    start: int
    end: int
    value: str


def read_version(manifest_path: Path, *, settings: ManifestSettings) -> Result[str, ManifestError]:
    """Read the version currently declared by the manifest."""
    text = _read(manifest_path)
    if isinstance(text, Err):
        return text

    found = _locate(text.value, manifest_path=manifest_path, settings=settings)
    if isinstance(found, Err):
        return found
    return Ok(found.value.value)


def apply_version(
    manifest_path: Path,
    version: Version,
    *,
    settings: ManifestSettings,
    lock_path: Path | None,
    regenerator: LockRegenerator | None,
    console: ConsoleProtocol,
) -> Result[ManifestUpdate, ManifestError]:
    """Rewrite the manifest's version field, then refresh the lock artifact.

    Only the quoted value of the version field changes; every other byte of
    the manifest, line endings included, is preserved. Lock regeneration is
    best effort: a failure is reported as a warning and the update still
    succeeds.
    """
    text = _read(manifest_path)
    if isinstance(text, Err):
        return text

    found = _locate(text.value, manifest_path=manifest_path, settings=settings)
    if isinstance(found, Err):
        return found
    field = found.value

    content = text.value
    updated = content[: field.start] + str(version) + content[field.end :]
    console.print(f"set {settings.key} = \"{version}\" in {manifest_path.name}", Style.DIM)

    try:
        atomic_write_text(manifest_path, updated, encoding="utf-8")
    except OSError as e:
        return Err(
            ManifestError(
                kind="io_failure",
                message=f"failed to write {manifest_path.name}: {e}",
                path=manifest_path,
            )
        )

    if lock_path is None or not lock_path.is_file():
        return Ok(ManifestUpdate(manifest=manifest_path, previous=field.value))

    regenerated = False
    if regenerator is not None:
        console.print(f"regenerate {lock_path.name}", Style.DIM)
        result = regenerator.regenerate()
        if isinstance(result, Err):
            detail = f" ({result.error.hint})" if result.error.hint else ""
            console.warning(
                f"{lock_path.name} not regenerated, continuing: {result.error.message}{detail}"
            )
        else:
            regenerated = True

    return Ok(
        ManifestUpdate(
            manifest=manifest_path,
            previous=field.value,
            lock=lock_path,
            lock_regenerated=regenerated,
        )
    )


def _read(path: Path) -> Result[str, ManifestError]:
    try:
        return Ok(read_text_exact(path, encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(
            ManifestError(
                kind="io_failure",
                message=f"failed to read {path.name}: {e}",
                path=path,
            )
        )


def _locate(
    text: str, *, manifest_path: Path, settings: ManifestSettings
) -> Result[_Field, ManifestError]:
    """Find the authoritative version field.

    The key must open its own line (``version = "..."``); ``rust-version``,
    ``version.workspace`` or inline tables never match. With a section
    configured, only that table's body is searched. Lines inside multi-line
    strings are never taken for a header or the key.
    """
    start, end = 0, len(text)
    if settings.section is not None:
        header = re.compile(
            rf"(?m)^[ \t]*\[[ \t]*{re.escape(settings.section)}[ \t]*\][ \t]*(?:#[^\r\n]*)?\r?$"
        )
        m = header.search(text)
        if m is None:
            return Err(
                ManifestError(
                    kind="not_found",
                    message=f"missing [{settings.section}] section in {manifest_path.name}",
                    path=manifest_path,
                )
            )
        start = m.end()

    spans = _multiline_strings(text, start)
    if settings.section is not None:
        nxt = _first_outside(_HEADER_RE.finditer(text, start), spans)
        if nxt is not None:
            end = nxt.start()

    key_re = re.compile(
        rf"(?m)^[ \t]*{re.escape(settings.key)}[ \t]*=[ \t]*"
        r"""(?P<q>["'])(?P<value>[^"'\r\n]*)(?P=q)"""
    )
    m = _first_outside(key_re.finditer(text, start, end), spans)
    if m is None:
        where = f"[{settings.section}]" if settings.section else manifest_path.name
        return Err(
            ManifestError(
                kind="not_found",
                message=f"no {settings.key} field in {where}",
                path=manifest_path,
                hint=f'Expected a line like {settings.key} = "20250601.0.0"',
            )
        )

    return Ok(_Field(start=m.start("value"), end=m.end("value"), value=m.group("value")))


def _multiline_strings(text: str, start: int) -> list[tuple[int, int]]:
    """Spans of the multi-line strings from ``start`` on.

    Single-line strings and comments are consumed too, so a triple quote
    inside them does not open a span.
    """
    spans: list[tuple[int, int]] = []
    pos = start
    while (m := _TOKEN_RE.search(text, pos)) is not None:
        token = m.group()
        if token not in ('"""', "'''"):
            pos = m.end()
            continue
        close = text.find(token, m.end())
        pos = len(text) if close == -1 else close + len(token)
        spans.append((m.start(), pos))
    return spans


def _first_outside(
    matches: Iterator[re.Match[str]], spans: list[tuple[int, int]]
) -> re.Match[str] | None:
    for m in matches:
        if not any(lo <= m.start() < hi for lo, hi in spans):
            return m
    return None
