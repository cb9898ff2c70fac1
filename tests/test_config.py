from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_config
from navlib.config import Config, ConfigError, load_config, resolve_config_path


def test_load_config_from_env(config_env, tmp_path):
    cfg = load_config()

    assert cfg.source_path == config_env
    assert cfg.base_path == "/window"
    assert set(cfg.windows) == {"143", "123"}
    assert cfg.storage_path() == tmp_path / "state" / "storage.json"

    sales = cfg.metadata("143")
    assert sales.name == "Sales Order"
    assert [t.tab_id for t in sales.roots()] == ["186"]
    assert sales.tab("189").parent_tab_id == "187"
    assert sales.descendants("186") == ["187", "188", "189"]
    assert cfg.metadata("999") is None


def test_missing_override_path(monkeypatch, tmp_path):
    monkeypatch.setenv("NAVCTL_CONFIG", str(tmp_path / "nope.yaml"))
    with pytest.raises(ConfigError):
        resolve_config_path()


def test_xdg_config_home(monkeypatch, tmp_path):
    monkeypatch.delenv("NAVCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    target = tmp_path / "navctl"
    target.mkdir()
    write_config(target)

    assert resolve_config_path() == target / "config.yaml"


def test_no_config_anywhere(monkeypatch, tmp_path):
    monkeypatch.delenv("NAVCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_DIRS", str(tmp_path / "etc"))
    with pytest.raises(ConfigError, match="No config file found"):
        resolve_config_path()


def test_env_expansion_and_default_storage(monkeypatch, tmp_path):
    monkeypatch.setenv("NAV_BASE", "/app/window")
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    path = tmp_path / "config.yaml"
    path.write_text('base_path: "${NAV_BASE}"\nwindows: {}\n')

    cfg = load_config(path)

    assert cfg.base_path == "/app/window"
    assert cfg.storage_path() == tmp_path / "state" / "navctl" / "storage.json"


def test_unknown_parent_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        'windows:\n  "1":\n    tabs:\n      - { id: "2", level: 1, parent: "9" }\n'
    )
    with pytest.raises(ConfigError, match="unknown parent"):
        load_config(path)


@pytest.mark.parametrize(
    "tabs,message",
    [
        ('      - { id: "2", level: 1 }\n', "root tab 2 must be level 0"),
        (
            '      - { id: "2", level: 0 }\n      - { id: "3", level: 2, parent: "2" }\n',
            "tab 3 is level 2 but its parent 2 is level 0",
        ),
        (
            '      - { id: "2", level: 0 }\n      - { id: "3", level: 0, parent: "2" }\n',
            "tab 3 is level 0 but its parent 2 is level 0",
        ),
    ],
)
def test_inconsistent_levels_are_rejected(tmp_path, tabs, message):
    path = tmp_path / "config.yaml"
    path.write_text('windows:\n  "1":\n    tabs:\n' + tabs)
    with pytest.raises(ConfigError, match=message):
        load_config(path)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("windows: [unclosed\n")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


def test_defaults():
    cfg = Config()
    assert cfg.windows == {}
    assert cfg.metadata("143") is None
    assert isinstance(cfg.storage_path(), Path)
