"""Typed configuration loading and access.

Configuration lives in ``calrel.toml`` at the repository root, or in the
``[tool.calrel]`` table of ``pyproject.toml``. Without either, defaults
describe a Cargo crate released from ``main`` to ``origin``:

    [release]
    trunk = "main"
    remote = "origin"
    branch_prefix = "release/"

    [manifest]
    path = "Cargo.toml"
    section = "package"
    key = "version"
    lock = "Cargo.lock"
    lock_command = ["cargo", "check", "--quiet"]

    [publish]
    command = ["cargo", "publish"]

    [commands]
    build = ["cargo", "build", "--release"]
    test = ["cargo", "test"]
    lint = ["cargo", "clippy", "--", "-D", "warnings"]
    clean = ["cargo", "clean"]

An empty string or empty list disables an optional entry (``lock = ""``
skips lock regeneration, ``command = []`` under ``[publish]`` makes publish a
no-op).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_argv, get_str, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "CommandsConfig",
    "Config",
    "ConfigError",
    "ManifestSettings",
    "PublishSettings",
    "ReleaseSettings",
    "load_config",
    "load_config_file",
]

CONFIG_FILE_NAME = "calrel.toml"

DEFAULT_LOCK_COMMAND = ("cargo", "check", "--quiet")
DEFAULT_PUBLISH_COMMAND = ("cargo", "publish")
DEFAULT_BUILD_COMMAND = ("cargo", "build", "--release")
DEFAULT_TEST_COMMAND = ("cargo", "test")
DEFAULT_LINT_COMMAND = ("cargo", "clippy", "--", "-D", "warnings")
DEFAULT_CLEAN_COMMAND = ("cargo", "clean")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseSettings:
    """Where releases are integrated and pushed."""

    trunk: str = "main"
    remote: str = "origin"
    branch_prefix: str = "release/"


@dataclass(frozen=True, slots=True)
class ManifestSettings:
    """Location and shape of the version-declaring manifest.

    Attributes:
        path: Manifest path, relative to the repository root.
        section: TOML table the version key must live in (None: whole file).
        key: The version key.
        lock: Dependent lock artifact, relative to the repository root.
        lock_command: Command regenerating ``lock`` after a bump.
    """

    path: str = "Cargo.toml"
    section: str | None = "package"
    key: str = "version"
    lock: str | None = "Cargo.lock"
    lock_command: tuple[str, ...] | None = DEFAULT_LOCK_COMMAND


@dataclass(frozen=True, slots=True)
class PublishSettings:
    """Registry publish command; ``{version}`` and ``{tag}`` are substituted."""

    command: tuple[str, ...] | None = DEFAULT_PUBLISH_COMMAND


@dataclass(frozen=True, slots=True)
class CommandsConfig:
    """Passthrough commands run by ``calrel build|test|lint|clean``."""

    build: tuple[str, ...] | None = DEFAULT_BUILD_COMMAND
    test: tuple[str, ...] | None = DEFAULT_TEST_COMMAND
    lint: tuple[str, ...] | None = DEFAULT_LINT_COMMAND
    clean: tuple[str, ...] | None = DEFAULT_CLEAN_COMMAND

    def get(self, name: str) -> tuple[str, ...] | None:
        match name:
            case "build":
                return self.build
            case "test":
                return self.test
            case "lint":
                return self.lint
            case "clean":
                return self.clean
            case _:
                return None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    release: ReleaseSettings = field(default_factory=ReleaseSettings)
    manifest: ManifestSettings = field(default_factory=ManifestSettings)
    publish: PublishSettings = field(default_factory=PublishSettings)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    source: Path | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, source: Path | None = None) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        release: StrDict = get_table(data, "release") or {}
        manifest: StrDict = get_table(data, "manifest") or {}
        publish: StrDict = get_table(data, "publish") or {}
        commands: StrDict = get_table(data, "commands") or {}

        return cls(
            release=ReleaseSettings(
                trunk=get_str(release, "trunk") or "main",
                remote=get_str(release, "remote") or "origin",
                branch_prefix=get_str(release, "branch_prefix") or "release/",
            ),
            manifest=ManifestSettings(
                path=get_str(manifest, "path") or "Cargo.toml",
                section=_optional_str(manifest, "section", default="package"),
                key=get_str(manifest, "key") or "version",
                lock=_optional_str(manifest, "lock", default="Cargo.lock"),
                lock_command=_optional_argv(manifest, "lock_command", DEFAULT_LOCK_COMMAND),
            ),
            publish=PublishSettings(
                command=_optional_argv(publish, "command", DEFAULT_PUBLISH_COMMAND),
            ),
            commands=CommandsConfig(
                build=_optional_argv(commands, "build", DEFAULT_BUILD_COMMAND),
                test=_optional_argv(commands, "test", DEFAULT_TEST_COMMAND),
                lint=_optional_argv(commands, "lint", DEFAULT_LINT_COMMAND),
                clean=_optional_argv(commands, "clean", DEFAULT_CLEAN_COMMAND),
            ),
            source=source,
        )


def _optional_str(table: Mapping[str, object], key: str, *, default: str) -> str | None:
    # Present but empty disables the entry.
    if key not in table:
        return default
    return get_str(table, key)


def _optional_argv(
    table: Mapping[str, object],
    key: str,
    default: tuple[str, ...],
) -> tuple[str, ...] | None:
    if key not in table:
        return default
    return get_argv(table, key)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config_file(path: Path) -> Result[Config, ConfigError]:
    """Load configuration from a ``calrel.toml`` file.

    Args:
        path: Path to the config file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value, source=path))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config(repo_root: Path) -> Result[Config, ConfigError]:
    """Load configuration for the repository at ``repo_root``.

    ``calrel.toml`` wins over ``[tool.calrel]`` in ``pyproject.toml``. When
    neither exists the defaults are returned.
    """
    dedicated = repo_root / CONFIG_FILE_NAME
    if dedicated.is_file():
        return load_config_file(dedicated)

    pyproject = repo_root / "pyproject.toml"
    if not pyproject.is_file():
        return Ok(Config())

    result = _parse_toml(pyproject)
    if isinstance(result, Err):
        return result

    tool = get_table(result.value, "tool") or {}
    table = get_table(tool, "calrel")
    if table is None:
        return Ok(Config())

    try:
        return Ok(Config.from_dict(table, source=pyproject))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid [tool.calrel] structure: {e}", path=pyproject))
