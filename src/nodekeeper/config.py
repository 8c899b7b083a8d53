"""Configuration constants and config file loading for nodekeeper."""

import os
import shlex
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from nodekeeper.errors import ConfigError

CONFIG_DIR: Path = Path("~/.config/nodes").expanduser()
CONFIG_PATH: Path = CONFIG_DIR / "config"

# Used when no config file exists.
DEFAULT_STORAGE_NAME: str = "default"
DEFAULT_STORAGE_DIR: Path = Path("~/.local/share/nodes").expanduser()

DB_FILENAME: str = "nodes.db"
LOG_FILENAME: str = "nodes.log"

# Fallback when neither the config file nor the environment names an editor.
DEFAULT_EDITOR: str = "vi"


@dataclass(frozen=True)
class Config:
    """Parsed configuration: named storage folders and external programs."""

    default_storage: str
    storages: dict[str, Path]
    programs: dict[str, list[str]] = field(default_factory=dict)

    def storage_folder(self, name: str | None = None) -> Path:
        """Return the folder of the named storage, or of the default one."""
        key = name or self.default_storage
        try:
            return self.storages[key]
        except KeyError:
            msg = f"Unknown storage {key!r}, known: {sorted(self.storages)}"
            raise ConfigError(msg) from None

    def editor_command(self) -> list[str]:
        """Return the editor command line (without the file argument)."""
        if "editor" in self.programs:
            return list(self.programs["editor"])
        for var in ("VISUAL", "EDITOR"):
            value = os.environ.get(var, "").strip()
            if value:
                return shlex.split(value)
        return [DEFAULT_EDITOR]


def default_config() -> Config:
    return Config(
        default_storage=DEFAULT_STORAGE_NAME,
        storages={DEFAULT_STORAGE_NAME: DEFAULT_STORAGE_DIR},
    )


class ConfigFile(BaseModel):
    """Typed contents of the TOML config file.

    ``[storage]`` maps storage names to folders, plus an optional
    ``default`` naming one of them. ``[programs]`` maps program names to a
    command line, given as a string or as a list of arguments.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    storage: dict[str, str]
    programs: dict[str, str | list[str]] = Field(default_factory=dict)

    @field_validator("programs")
    @classmethod
    def _commands_not_empty(cls, programs: dict[str, str | list[str]]) -> dict[str, str | list[str]]:
        for name, command in programs.items():
            if not (shlex.split(command) if isinstance(command, str) else command):
                msg = f"programs.{name} must not be empty"
                raise ValueError(msg)
        return programs

    @model_validator(mode="after")
    def _check_default(self) -> "ConfigFile":
        names = self.storage_names()
        if not names:
            msg = "[storage] does not list any storages"
            raise ValueError(msg)
        default = self.storage.get("default")
        if default is None and len(names) != 1:
            msg = "storage.default is required when more than one storage is listed"
            raise ValueError(msg)
        if default is not None and default not in names:
            msg = f"storage.default names unknown storage {default!r}"
            raise ValueError(msg)
        return self

    def storage_names(self) -> list[str]:
        return [name for name in self.storage if name != "default"]

    def to_config(self) -> Config:
        names = self.storage_names()
        return Config(
            default_storage=self.storage.get("default", names[0]),
            storages={name: Path(self.storage[name]).expanduser() for name in names},
            programs={
                name: shlex.split(command) if isinstance(command, str) else list(command)
                for name, command in self.programs.items()
            },
        )


def load_config(path: Path = CONFIG_PATH) -> Config:
    """Load the config file at ``path``.

    Returns the default configuration when the file does not exist; fails only
    when the file exists but is invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No config file at {}, using defaults", path)
        return default_config()
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e

    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        msg = f"Cannot parse config file {path}: {e}"
        raise ConfigError(msg) from e

    try:
        config_file = ConfigFile.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid config file {path}: {e}"
        raise ConfigError(msg) from e
    return config_file.to_config()


def find_local_storage(start: Path | None = None) -> Path:
    """Search ``start`` (default: cwd) and its parents for a node database."""
    here = (start or Path.cwd()).resolve()
    for candidate in (here, *here.parents):
        if (candidate / DB_FILENAME).is_file():
            return candidate
    msg = f"No {DB_FILENAME} found in {here} or any parent directory"
    raise ConfigError(msg)


def resolve_storage_dir(
    config: Config, *, storage: str | None = None, local: bool = False
) -> Path:
    """Pick the storage folder from the command-line options and the config."""
    if local:
        return find_local_storage()
    folder = config.storage_folder(storage)
    folder.mkdir(parents=True, exist_ok=True)
    return folder
