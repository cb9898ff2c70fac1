"""Per-tab record selection cache with event listeners.

The graph mirrors what the tabs of one window instance have selected. It is
not the source of truth: the URL is, and recovery rebuilds the graph from it.
Selecting a parent record neither emits events for nor modifies child tabs;
cascading invalidation happens through the URL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .models import Record, TabMetadata

logger = logging.getLogger(__name__)

SELECTED = "selected"
UNSELECTED = "unselected"
SELECTED_MULTIPLE = "selected_multiple"
UNSELECTED_MULTIPLE = "unselected_multiple"
EVENTS = (SELECTED, UNSELECTED, SELECTED_MULTIPLE, UNSELECTED_MULTIPLE)

Listener = Callable[..., None]


@dataclass
class SelectionNode:
    tab: TabMetadata
    children: List[str] = field(default_factory=list)
    selected: Optional[Record] = None
    selected_multiple: List[Record] = field(default_factory=list)
    records: List[Record] = field(default_factory=list)


class SelectionGraph:
    def __init__(self, tabs: Iterable[TabMetadata]) -> None:
        self.nodes: Dict[str, SelectionNode] = {}
        self._listeners: Dict[Tuple[str, str], List[Listener]] = {}
        tabs = list(tabs)
        for tab in tabs:
            if tab.tab_id not in self.nodes:
                self.nodes[tab.tab_id] = SelectionNode(tab=tab)
        for tab in tabs:
            if tab.parent_tab_id is None:
                continue
            parent = self.nodes.get(tab.parent_tab_id)
            if parent is None:
                logger.warning("Tab %s references unknown parent %s", tab.tab_id, tab.parent_tab_id)
                continue
            parent.children.append(tab.tab_id)

    def _node(self, tab_id: str) -> Optional[SelectionNode]:
        node = self.nodes.get(tab_id)
        if node is None:
            logger.debug("Selection graph has no tab %s", tab_id)
        return node

    # Listeners

    def add_listener(self, event: str, tab_id: str, callback: Listener) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown selection event {event!r}; expected one of {EVENTS}")
        self._listeners.setdefault((event, tab_id), []).append(callback)

    def remove_listener(self, event: str, tab_id: str, callback: Listener) -> None:
        listeners = self._listeners.get((event, tab_id), [])
        if callback in listeners:
            listeners.remove(callback)

    def _emit(self, event: str, tab_id: str, *args) -> None:
        for callback in list(self._listeners.get((event, tab_id), [])):
            try:
                callback(tab_id, *args)
            except Exception:
                logger.exception("Selection listener for %s on tab %s failed", event, tab_id)

    # Single selection

    def select(self, tab_id: str, record: Record) -> None:
        node = self._node(tab_id)
        if node is None:
            return
        node.selected = record
        self._emit(SELECTED, tab_id, record)

    def unselect(self, tab_id: str) -> None:
        node = self._node(tab_id)
        if node is None:
            return
        node.selected = None
        self._emit(UNSELECTED, tab_id)

    def get_selected(self, tab_id: str) -> Optional[Record]:
        node = self.nodes.get(tab_id)
        return node.selected if node else None

    # Multiple selection

    def select_multiple(self, tab_id: str, records: Iterable[Record]) -> None:
        node = self._node(tab_id)
        if node is None:
            return
        node.selected_multiple = list(records)
        self._emit(SELECTED_MULTIPLE, tab_id, list(node.selected_multiple))

    def unselect_multiple(self, tab_id: str) -> None:
        node = self._node(tab_id)
        if node is None:
            return
        node.selected_multiple = []
        self._emit(UNSELECTED_MULTIPLE, tab_id)

    def get_selected_multiple(self, tab_id: str) -> List[Record]:
        node = self.nodes.get(tab_id)
        return list(node.selected_multiple) if node else []

    def clear(self, tab_id: str) -> None:
        self.unselect(tab_id)
        self.unselect_multiple(tab_id)

    # Tree and record cache

    def children(self, tab_id: str) -> List[TabMetadata]:
        node = self.nodes.get(tab_id)
        if node is None:
            return []
        return [self.nodes[c].tab for c in node.children]

    def parent(self, tab_id: str) -> Optional[TabMetadata]:
        node = self.nodes.get(tab_id)
        if node is None or node.tab.parent_tab_id is None:
            return None
        parent = self.nodes.get(node.tab.parent_tab_id)
        return parent.tab if parent else None

    def set_records(self, tab_id: str, records: Iterable[Record]) -> None:
        node = self._node(tab_id)
        if node is not None:
            node.records = list(records)

    def get_record(self, tab_id: str, record_id: str) -> Optional[Record]:
        node = self.nodes.get(tab_id)
        if node is None:
            return None
        for record in node.records:
            if str(record.get("id")) == record_id:
                return record
        return None
