"""Window, tab and navigation state types shared by every navlib module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

TAB_MODE_TABLE = "table"
TAB_MODE_FORM = "form"
TAB_MODES = (TAB_MODE_TABLE, TAB_MODE_FORM)

FORM_MODE_EDIT = "edit"
FORM_MODE_NEW = "new"
FORM_MODES = (FORM_MODE_EDIT, FORM_MODE_NEW)

NEW_RECORD_ID = "new"

# A record is whatever the datasource returns; only "id" is relied upon.
Record = Dict[str, Any]


@dataclass(frozen=True)
class TabFormState:
    """Form-view state of a tab as carried by tm_/tf_/tfm_ keys."""

    mode: Optional[str] = None       # None means no tm_ key (implicit table)
    record_id: Optional[str] = None  # tf_
    form_mode: Optional[str] = None  # tfm_

    def is_empty(self) -> bool:
        return self.mode is None and self.record_id is None and self.form_mode is None

    @property
    def effective_mode(self) -> str:
        return self.mode or TAB_MODE_TABLE


@dataclass(frozen=True)
class TabState:
    level: Optional[int] = None
    selected_record: Optional[str] = None
    form: TabFormState = field(default_factory=TabFormState)

    def has_selection(self) -> bool:
        return self.selected_record is not None

    def has_form_entry(self) -> bool:
        return self.form.record_id is not None or self.form.mode == TAB_MODE_FORM

    def carries_state(self) -> bool:
        """True when the tab has anything worth writing to the URL."""
        return self.has_selection() or not self.form.is_empty()

    def current_record(self) -> Optional[str]:
        """Record this tab filters its children by: selected, else open in form."""
        if self.selected_record is not None:
            return self.selected_record
        return self.form.record_id


@dataclass(frozen=True)
class NavigationState:
    active_levels: List[int] = field(default_factory=list)
    active_tabs_by_level: Dict[int, str] = field(default_factory=dict)
    initialized: bool = False


@dataclass(frozen=True)
class WindowState:
    window_id: str
    window_identifier: str
    order: int
    is_active: bool = False
    tabs: Dict[str, TabState] = field(default_factory=dict)
    navigation: NavigationState = field(default_factory=NavigationState)
    title: Optional[str] = None

    def tab(self, tab_id: str) -> TabState:
        return self.tabs.get(tab_id) or TabState()

    def url_tabs(self) -> Dict[str, TabState]:
        """Tabs that carry URL state, in map order."""
        return {tid: ts for tid, ts in self.tabs.items() if ts.carries_state()}


@dataclass(frozen=True)
class TabMetadata:
    tab_id: str
    level: int
    parent_tab_id: Optional[str] = None
    entity_name: str = ""
    name: str = ""


@dataclass(frozen=True)
class WindowMetadata:
    """Tab tree of one window definition, in declaration order."""

    window_id: str
    name: str = ""
    tabs: Tuple[TabMetadata, ...] = ()

    def tab(self, tab_id: str) -> Optional[TabMetadata]:
        for t in self.tabs:
            if t.tab_id == tab_id:
                return t
        return None

    def roots(self) -> List[TabMetadata]:
        return [t for t in self.tabs if t.parent_tab_id is None or t.level == 0]

    def children(self, tab_id: str) -> List[TabMetadata]:
        return [t for t in self.tabs if t.parent_tab_id == tab_id]

    def descendants(self, tab_id: str) -> List[str]:
        """All tab ids below tab_id, breadth first."""
        result: List[str] = []
        seen = {tab_id}
        queue = [tab_id]
        while queue:
            current = queue.pop(0)
            for child in self.children(current):
                if child.tab_id in seen:
                    continue
                seen.add(child.tab_id)
                result.append(child.tab_id)
                queue.append(child.tab_id)
        return result

    def declaration_index(self, tab_id: str) -> int:
        for i, t in enumerate(self.tabs):
            if t.tab_id == tab_id:
                return i
        return len(self.tabs)

    def __iter__(self) -> Iterator[TabMetadata]:
        return iter(self.tabs)


@dataclass
class NavigationTab:
    """Persisted shell entry used to pre-paint the tab bar."""

    title: str
    window_id: Optional[str]
    url: str
    type: str = "window"
    record_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    icon: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "title": self.title,
            "windowId": self.window_id,
            "url": self.url,
            "type": self.type,
        }
        if self.record_id is not None:
            out["recordId"] = self.record_id
        if self.metadata:
            out["metadata"] = self.metadata
        if self.icon:
            out["icon"] = self.icon
        return out

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "NavigationTab":
        return cls(
            title=str(raw.get("title", "")),
            window_id=raw.get("windowId"),
            url=str(raw["url"]),
            type=str(raw.get("type", "window")),
            record_id=raw.get("recordId"),
            metadata=raw.get("metadata"),
            icon=raw.get("icon"),
        )


def window_id_from_identifier(window_identifier: str) -> str:
    """Return the catalog window id of an instance identifier ("143_2" -> "143")."""
    head, _, _ = window_identifier.partition("_")
    return head or window_identifier


def new_window_identifier(window_id: str, existing: List[str]) -> str:
    """First instance reuses the window id; later ones get the smallest free _n suffix."""
    taken = set(existing)
    if window_id not in taken:
        return window_id
    n = 2
    while f"{window_id}_{n}" in taken:
        n += 1
    return f"{window_id}_{n}"


def default_form_mode(record_id: Optional[str]) -> str:
    return FORM_MODE_NEW if record_id == NEW_RECORD_ID else FORM_MODE_EDIT
