from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from calrel.platform.files import atomic_write_text, read_text_exact


def test_atomic_write_text_replaces_existing_content(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text("old", encoding="utf-8")

    atomic_write_text(path, "new", encoding="utf-8")

    assert path.read_text(encoding="utf-8") == "new"


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_atomic_write_text_keeps_permissions(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text("old", encoding="utf-8")
    path.chmod(0o644)

    atomic_write_text(path, "new", encoding="utf-8")

    assert stat.S_IMODE(path.stat().st_mode) == 0o644


def test_crlf_round_trips_verbatim(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_bytes(b'[package]\r\nversion = "1"\r\n')

    text = read_text_exact(path)
    atomic_write_text(path, text.replace('"1"', '"2"'))

    assert "\r\n" in text
    assert path.read_bytes() == b'[package]\r\nversion = "2"\r\n'


def test_atomic_write_text_cleans_temp_file_on_replace_failure(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text("original", encoding="utf-8")

    def fail_replace(_src: Path, _dst: Path) -> None:
        raise OSError("replace failed")

    monkeypatch.setattr(os, "replace", fail_replace)

    with pytest.raises(OSError, match="replace failed"):
        atomic_write_text(path, "payload", encoding="utf-8")

    assert list(tmp_path.glob(f".{path.name}.*.tmp")) == []
    assert path.read_text(encoding="utf-8") == "original"


def test_atomic_write_text_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        atomic_write_text(tmp_path / "nope" / "Cargo.toml", "x")
