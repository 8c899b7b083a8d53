"""Tests for config file loading and storage resolution."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from nodekeeper.config import (
    DB_FILENAME,
    DEFAULT_EDITOR,
    Config,
    ConfigFile,
    find_local_storage,
    load_config,
    resolve_storage_dir,
)
from nodekeeper.errors import ConfigError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing")
    assert config.default_storage == "default"
    assert config.storage_folder().name == "nodes"
    assert config.programs == {}


def test_single_storage_is_default(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, '[storage]\nnotes = "/data/notes"\n'))
    assert config.default_storage == "notes"
    assert config.storage_folder() == Path("/data/notes")


def test_named_storages_and_programs(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[storage]
default = "work"
work = "/data/work"
home = "~/home-notes"

[programs]
editor = "nvim -u NONE"
pager = ["less", "-R"]
""",
    )
    config = load_config(path)
    assert config.storage_folder() == Path("/data/work")
    assert config.storage_folder("home") == Path("~/home-notes").expanduser()
    assert config.programs == {"editor": ["nvim", "-u", "NONE"], "pager": ["less", "-R"]}
    assert config.editor_command() == ["nvim", "-u", "NONE"]


def test_unknown_storage_name(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, '[storage]\nnotes = "/data/notes"\n'))
    with pytest.raises(ConfigError, match="Unknown storage 'other'"):
        config.storage_folder("other")


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("not toml [", "Cannot parse"),
        ('[programs]\neditor = "vi"\n', "storage\n  Field required"),
        ("storage = 3\n", "valid dictionary"),
        ("[storage]\n", "does not list any storages"),
        ('[storage]\na = "/a"\nb = "/b"\n', "storage.default is required"),
        ('[storage]\ndefault = "c"\na = "/a"\n', "unknown storage 'c'"),
        ("[storage]\na = 1\n", "valid string"),
        ('[storage]\na = "/a"\n[programs]\neditor = []\n', "programs.editor must not be empty"),
        ('[storage]\na = "/a"\n[programs]\neditor = "  "\n', "programs.editor must not be empty"),
        ('[storage]\na = "/a"\n[editors]\nvi = "vi"\n', "Extra inputs are not permitted"),
    ],
)
def test_invalid_config(tmp_path: Path, text: str, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        load_config(_write(tmp_path, text))


def test_editor_falls_back_to_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    config = Config(default_storage="d", storages={"d": Path("/d")})
    monkeypatch.setenv("VISUAL", "code --wait")
    monkeypatch.setenv("EDITOR", "nano")
    assert config.editor_command() == ["code", "--wait"]

    monkeypatch.delenv("VISUAL")
    assert config.editor_command() == ["nano"]

    monkeypatch.delenv("EDITOR")
    assert config.editor_command() == [DEFAULT_EDITOR]


def test_find_local_storage_searches_parents(tmp_path: Path) -> None:
    (tmp_path / DB_FILENAME).touch()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_local_storage(nested) == tmp_path.resolve()


def test_find_local_storage_fails_without_database(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="No nodes.db found"):
        find_local_storage(tmp_path)


def test_resolve_storage_dir_creates_folder(tmp_path: Path) -> None:
    folder = tmp_path / "store"
    config = Config(default_storage="main", storages={"main": folder})
    assert resolve_storage_dir(config) == folder
    assert folder.is_dir()


def test_resolve_local_storage(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / DB_FILENAME).touch()
    monkeypatch.chdir(tmp_path)
    config = Config(default_storage="main", storages={"main": tmp_path / "unused"})
    assert resolve_storage_dir(config, local=True) == tmp_path.resolve()
    assert not (tmp_path / "unused").exists()


def test_config_file_model_builds_config() -> None:
    config_file = ConfigFile.model_validate(
        {"storage": {"main": "/m", "other": "/o", "default": "other"}, "programs": {"editor": ["ed"]}}
    )
    assert config_file.storage_names() == ["main", "other"]
    config = config_file.to_config()
    assert config.default_storage == "other"
    assert config.storages == {"main": Path("/m"), "other": Path("/o")}
    assert config.editor_command() == ["ed"]


def test_config_file_model_rejects_ambiguous_default() -> None:
    with pytest.raises(ValidationError, match="storage.default is required"):
        ConfigFile.model_validate({"storage": {"a": "/a", "b": "/b"}})
