from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .models import TabMetadata, WindowMetadata


class ConfigError(RuntimeError):
    pass


DEFAULT_BASE_PATH = "/window"


@dataclass
class StorageConfig:
    path: Optional[Path] = None


@dataclass
class Config:
    version: int = 1
    base_path: str = DEFAULT_BASE_PATH
    storage: StorageConfig = field(default_factory=StorageConfig)
    windows: Dict[str, WindowMetadata] = field(default_factory=dict)
    source_path: Optional[Path] = None

    def metadata(self, window_id: str) -> Optional[WindowMetadata]:
        """Metadata provider: window id -> tab tree, None when not configured."""
        return self.windows.get(window_id)

    def storage_path(self) -> Path:
        if self.storage.path is not None:
            return self.storage.path
        state_home = Path(os.environ.get("XDG_STATE_HOME", "~/.local/state")).expanduser()
        return state_home / "navctl" / "storage.json"


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        # Expand ${VAR} style
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def _as_tab(window_id: str, raw: Dict[str, Any]) -> TabMetadata:
    if "id" not in raw:
        raise ConfigError(f"Window {window_id}: every tab needs an 'id'")
    try:
        level = int(raw.get("level", 0))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Window {window_id}: tab {raw['id']} has invalid level {raw.get('level')!r}") from e
    parent = raw.get("parent")
    return TabMetadata(
        tab_id=str(raw["id"]),
        level=level,
        parent_tab_id=str(parent) if parent is not None else None,
        entity_name=str(raw.get("entity_name", "")),
        name=str(raw.get("name", raw["id"])),
    )


def _as_window(window_id: str, raw: Dict[str, Any]) -> WindowMetadata:
    tabs_raw: List[Dict[str, Any]] = raw.get("tabs") or []
    tabs = tuple(_as_tab(window_id, t or {}) for t in tabs_raw)
    known = {t.tab_id: t for t in tabs}
    for t in tabs:
        if t.parent_tab_id is None:
            if t.level != 0:
                raise ConfigError(f"Window {window_id}: root tab {t.tab_id} must be level 0, got {t.level}")
            continue
        parent = known.get(t.parent_tab_id)
        if parent is None:
            raise ConfigError(f"Window {window_id}: tab {t.tab_id} references unknown parent {t.parent_tab_id}")
        if t.level != parent.level + 1:
            raise ConfigError(
                f"Window {window_id}: tab {t.tab_id} is level {t.level} "
                f"but its parent {parent.tab_id} is level {parent.level}"
            )
    return WindowMetadata(window_id=window_id, name=str(raw.get("name", window_id)), tabs=tabs)


def resolve_config_path() -> Path:
    # Highest priority: explicit override
    override = os.environ.get("NAVCTL_CONFIG")
    if override:
        p = Path(override).expanduser()
        if p.is_file():
            return p
        raise ConfigError(f"NAVCTL_CONFIG path not found: {p}")

    # XDG base dirs
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", "~/.config")).expanduser()
    candidates = [xdg_home / "navctl" / "config.yaml"]

    xdg_dirs = os.environ.get("XDG_CONFIG_DIRS", "/etc/xdg")
    for d in xdg_dirs.split(":"):
        candidates.append(Path(d) / "navctl" / "config.yaml")

    for c in candidates:
        if c.is_file():
            return c

    raise ConfigError(
        "No config file found. Set NAVCTL_CONFIG or create ~/.config/navctl/config.yaml"
    )


def load_config(path: Optional[Path] = None) -> Config:
    cfg_path = path or resolve_config_path()
    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except FileNotFoundError as e:
        raise ConfigError(str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {cfg_path}: {e}") from e

    data = _expand_env(data)
    windows_raw = data.get("windows") or {}
    windows: Dict[str, WindowMetadata] = {
        str(wid): _as_window(str(wid), raw or {}) for wid, raw in windows_raw.items()
    }

    storage_raw = data.get("storage") or {}
    storage_path = storage_raw.get("path")

    cfg = Config(
        version=int(data.get("version", 1)),
        base_path=str(data.get("base_path", DEFAULT_BASE_PATH)),
        storage=StorageConfig(path=Path(storage_path).expanduser() if storage_path else None),
        windows=windows,
        source_path=cfg_path,
    )
    return cfg
