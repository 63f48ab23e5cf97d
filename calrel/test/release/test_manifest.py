from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from calrel.core.config import ManifestSettings
from calrel.core.result import Err, Ok, Result
from calrel.output.console import MockConsole
from calrel.release.errors import ManifestError
from calrel.release.manifest import ManifestUpdate, apply_version, read_version
from calrel.release.ports import CollaboratorError
from calrel.release.version import Version
from calrel.test.fakes import FakeLock

VERSION = Version(date(2025, 6, 1), 2)

CARGO = """\
[package]
name = "noggin"
version = "20250531.0.4"  # bumped by calrel
rust-version = "1.80"
edition = "2021"

[dependencies]
serde = { version = "1", features = ["derive"] }

[dependencies.tokio]
version = "1.38"
"""

PYPROJECT = """\
[build-system]
requires = ["setuptools"]

[project]
name = "demo"
version = '0.1.0'
dependencies = []
"""


def _write(path: Path, text: str) -> Path:
    path.write_bytes(text.encode("utf-8"))
    return path


def _apply(
    path: Path,
    settings: ManifestSettings,
    *,
    lock_path: Path | None = None,
    regenerator: FakeLock | None = None,
    console: MockConsole | None = None,
) -> Result[ManifestUpdate, ManifestError]:
    return apply_version(
        path,
        VERSION,
        settings=settings,
        lock_path=lock_path,
        regenerator=regenerator,
        console=console or MockConsole(),
    )


class TestApplyVersion:
    def test_only_package_version_changes(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "Cargo.toml", CARGO)

        result = _apply(manifest, ManifestSettings(lock=None))

        assert isinstance(result, Ok)
        assert result.value.previous == "20250531.0.4"
        assert manifest.read_bytes().decode("utf-8") == CARGO.replace(
            'version = "20250531.0.4"', 'version = "20250601.0.2"'
        )

    def test_round_trip(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "Cargo.toml", CARGO)
        settings = ManifestSettings(lock=None)

        _apply(manifest, settings)

        assert read_version(manifest, settings=settings) == Ok("20250601.0.2")

    def test_crlf_and_surrounding_bytes_preserved(self, tmp_path: Path) -> None:
        original = CARGO.replace("\n", "\r\n")
        manifest = _write(tmp_path / "Cargo.toml", original)

        _apply(manifest, ManifestSettings(lock=None))

        before = original.encode("utf-8")
        after = manifest.read_bytes()
        assert after == before.replace(b"20250531.0.4", b"20250601.0.2")

    def test_section_scoped_single_quotes(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "pyproject.toml", PYPROJECT)
        settings = ManifestSettings(path="pyproject.toml", section="project", lock=None)

        result = _apply(manifest, settings)

        assert isinstance(result, Ok)
        assert "version = '20250601.0.2'" in manifest.read_text(encoding="utf-8")

    def test_without_section_first_anchored_key_wins(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "VERSION.toml", 'rust-version = "1"\nversion = "1"\n')

        _apply(manifest, ManifestSettings(section=None, lock=None))

        expected = 'rust-version = "1"\nversion = "20250601.0.2"\n'
        assert manifest.read_text(encoding="utf-8") == expected

    def test_bracket_line_in_multiline_string_stays_in_section(self, tmp_path: Path) -> None:
        text = '[package]\ndescription = """\n[alpha] tool\n"""\nversion = "1"\n'
        manifest = _write(tmp_path / "Cargo.toml", text)

        result = _apply(manifest, ManifestSettings(lock=None))

        assert isinstance(result, Ok)
        assert manifest.read_text(encoding="utf-8") == text.replace(
            'version = "1"', 'version = "20250601.0.2"'
        )

    def test_version_line_in_multiline_string_is_skipped(self, tmp_path: Path) -> None:
        text = (
            "[package]\nreadme = '''\nversion = \"9\"\n'''\n"
            "name = \"x\" # '''\nversion = \"1\"\n"
        )
        manifest = _write(tmp_path / "Cargo.toml", text)

        result = _apply(manifest, ManifestSettings(lock=None))

        assert isinstance(result, Ok)
        assert result.value.previous == "1"
        assert 'version = "9"' in manifest.read_text(encoding="utf-8")

    def test_missing_version_field(self, tmp_path: Path) -> None:
        text = '[package]\nname = "x"\nversion.workspace = true\n'
        manifest = _write(tmp_path / "Cargo.toml", text)

        result = _apply(manifest, ManifestSettings(lock=None))

        assert isinstance(result, Err)
        assert result.error.kind == "not_found"

    def test_version_outside_section_is_not_found(self, tmp_path: Path) -> None:
        text = '[package]\nname = "x"\n\n[dependencies.a]\nversion = "1"\n'
        manifest = _write(tmp_path / "Cargo.toml", text)

        result = _apply(manifest, ManifestSettings(lock=None))

        assert isinstance(result, Err)
        assert result.error.kind == "not_found"

    def test_missing_section(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "Cargo.toml", '[workspace]\nmembers = []\n')

        result = _apply(manifest, ManifestSettings(lock=None))

        assert isinstance(result, Err)
        assert result.error.kind == "not_found"
        assert "[package]" in result.error.message

    def test_missing_file_is_io_failure(self, tmp_path: Path) -> None:
        result = _apply(tmp_path / "Cargo.toml", ManifestSettings(lock=None))

        assert isinstance(result, Err)
        assert result.error.kind == "io_failure"

    def test_not_found_leaves_file_untouched(self, tmp_path: Path) -> None:
        text = '[package]\nname = "x"\n'
        manifest = _write(tmp_path / "Cargo.toml", text)

        _apply(manifest, ManifestSettings(lock=None))

        assert manifest.read_text(encoding="utf-8") == text


class TestLockRegeneration:
    def test_regenerates_existing_lock(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "Cargo.toml", CARGO)
        lock_path = _write(tmp_path / "Cargo.lock", "# old\n")
        lock = FakeLock(path=lock_path)

        result = _apply(manifest, ManifestSettings(), lock_path=lock_path, regenerator=lock)

        assert isinstance(result, Ok)
        assert lock.calls == 1
        assert result.value.lock_regenerated is True
        assert result.value.paths == (manifest, lock_path)

    def test_lock_failure_is_not_fatal(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "Cargo.toml", CARGO)
        lock_path = _write(tmp_path / "Cargo.lock", "# old\n")
        lock = FakeLock(error=CollaboratorError(message="cargo check failed"))
        console = MockConsole()

        result = _apply(
            manifest, ManifestSettings(), lock_path=lock_path, regenerator=lock, console=console
        )

        assert isinstance(result, Ok)
        assert result.value.lock_regenerated is False
        assert result.value.paths == (manifest, lock_path)
        assert console.has_warning()
        assert read_version(manifest, settings=ManifestSettings()) == Ok("20250601.0.2")

    def test_missing_lock_is_skipped(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path / "Cargo.toml", CARGO)
        lock = FakeLock()

        result = _apply(
            manifest, ManifestSettings(), lock_path=tmp_path / "Cargo.lock", regenerator=lock
        )

        assert isinstance(result, Ok)
        assert lock.calls == 0
        assert result.value.paths == (manifest,)


class TestReadVersion:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ('[package]\nversion = "1.2.3"\n', "1.2.3"),
            ('[package]\n  version   =   "4"\n', "4"),
        ],
    )
    def test_reads(self, tmp_path: Path, text: str, expected: str) -> None:
        manifest = _write(tmp_path / "Cargo.toml", text)
        assert read_version(manifest, settings=ManifestSettings()) == Ok(expected)
