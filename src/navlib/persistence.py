"""Best-effort mirror of the open-window shell.

Only used to pre-paint the tab bar before URL recovery finishes; recovery
never reads it. Every read or write failure is logged and swallowed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from .models import NavigationTab, WindowMetadata, WindowState
from .url_codec import build_url

logger = logging.getLogger(__name__)

NAVIGATION_TABS_KEY = "navigationTabs"


class Storage(Protocol):
    """The subset of the browser localStorage API the shell cache needs."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self.items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStorage:
    """Key/value strings kept in one JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> Dict[str, str]:
        if not self.path.is_file():
            return {}
        data = json.loads(self.path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True))

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self.path.write_text(json.dumps(data, indent=2, sort_keys=True))


class NavigationTabStore:
    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def load(self) -> List[NavigationTab]:
        try:
            raw = self.storage.get_item(NAVIGATION_TABS_KEY)
            if not raw:
                return []
            entries = json.loads(raw)
            return [NavigationTab.from_dict(e) for e in entries]
        except Exception as e:
            logger.warning("Ignoring unreadable navigation tab cache: %s", e)
            return []

    def save(self, tabs: Iterable[NavigationTab]) -> None:
        try:
            payload = json.dumps([t.to_dict() for t in tabs])
            self.storage.set_item(NAVIGATION_TABS_KEY, payload)
        except Exception as e:
            logger.warning("Could not write navigation tab cache: %s", e)

    def clear(self) -> None:
        try:
            self.storage.remove_item(NAVIGATION_TABS_KEY)
        except Exception as e:
            logger.warning("Could not clear navigation tab cache: %s", e)


def snapshot(
    windows: Iterable[WindowState],
    base_path: str,
    metadata: Optional[Dict[str, WindowMetadata]] = None,
) -> List[NavigationTab]:
    """Shell entries for the open windows, each with a URL that activates it."""
    windows = sorted(windows, key=lambda w: (w.order, w.window_identifier))
    entries = []
    for w in windows:
        meta = (metadata or {}).get(w.window_id)
        title = w.title or (meta.name if meta else "") or w.window_id
        activated = [replace(o, is_active=o.window_identifier == w.window_identifier) for o in windows]
        root_record = None
        if meta is not None and meta.roots():
            root_record = w.tab(meta.roots()[0].tab_id).selected_record
        entries.append(
            NavigationTab(
                title=title,
                window_id=w.window_id,
                record_id=root_record,
                url=build_url(base_path, activated),
                type="window",
                metadata={"windowIdentifier": w.window_identifier},
            )
        )
    return entries
