"""Public mutation API over the multi-window URL.

Every operation reads the router's currently committed parameters (never a
snapshot captured earlier), computes the complete next window list, encodes
it and issues exactly one `replace`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import InvalidNavigationRequest, MetadataUnavailable
from .models import (
    FORM_MODES,
    TAB_MODE_FORM,
    TAB_MODES,
    TabFormState,
    TabState,
    WindowMetadata,
    WindowState,
    default_form_mode,
    new_window_identifier,
)
from .router import Router
from .url_codec import build_url, decode, parse_query_string

logger = logging.getLogger(__name__)

MetadataProvider = Callable[[str], Optional[WindowMetadata]]


@dataclass(frozen=True)
class Selection:
    tab_id: str
    record_id: str
    open_form: bool = False


@dataclass(frozen=True)
class WindowSummary:
    window_identifier: str
    window_id: str
    order: int
    is_active: bool
    title: str


class NavigationController:
    def __init__(self, router: Router, metadata: MetadataProvider, base_path: str = "/window") -> None:
        self.router = router
        self._metadata = metadata
        self.base_path = base_path

    # Reads

    def windows(self) -> List[WindowState]:
        return decode(self.router.current_params())

    def window(self, window_identifier: str) -> Optional[WindowState]:
        return _find(self.windows(), window_identifier)

    def active_window(self) -> Optional[WindowState]:
        for w in self.windows():
            if w.is_active:
                return w
        return None

    def open_windows(self) -> List[WindowSummary]:
        summaries = []
        for w in self.windows():
            meta = self._metadata(w.window_id)
            summaries.append(
                WindowSummary(
                    window_identifier=w.window_identifier,
                    window_id=w.window_id,
                    order=w.order,
                    is_active=w.is_active,
                    title=meta.name if meta else w.window_id,
                )
            )
        return summaries

    def active_record(self, window_identifier: str, tab_id: str) -> Optional[str]:
        w = self.window(window_identifier)
        return w.tab(tab_id).selected_record if w else None

    def tab_mode(self, window_identifier: str, tab_id: str) -> str:
        w = self.window(window_identifier)
        return w.tab(tab_id).form.effective_mode if w else TabFormState().effective_mode

    # Mutations

    def open_window(self, window_id: str) -> str:
        """Reactivate the open instance of window_id, or open a new one."""
        windows, identifier = self._open(self.windows(), window_id, new_instance=False)
        self._commit(windows, "open %s" % identifier)
        return identifier

    def open_new_window_instance(self, window_id: str) -> str:
        windows, identifier = self._open(self.windows(), window_id, new_instance=True)
        self._commit(windows, "open new instance %s" % identifier)
        return identifier

    def open_window_and_select(self, window_id: str, selection: Selection) -> str:
        """Open window_id and select a record, clearing the tab's descendants, in one commit."""
        windows, identifier = self._open(self.windows(), window_id, new_instance=False)
        opened = _find(windows, identifier)
        descendants = self._descendants(opened, selection.tab_id) if opened.tabs else []

        def _select(tab: TabState) -> TabState:
            tab = replace(tab, selected_record=selection.record_id)
            if selection.open_form:
                tab = replace(
                    tab,
                    form=TabFormState(
                        mode=TAB_MODE_FORM,
                        record_id=selection.record_id,
                        form_mode=default_form_mode(selection.record_id),
                    ),
                )
            return tab

        def _apply(tabs: Dict[str, TabState]) -> Dict[str, TabState]:
            return _drop_tabs(_set_tab(tabs, selection.tab_id, _select), descendants)

        windows = _update_tabs(windows, identifier, _apply)
        self._commit(
            windows,
            "open %s selecting %s=%s%s"
            % (identifier, selection.tab_id, selection.record_id, " in form" if selection.open_form else ""),
        )
        return identifier

    def set_active_window(self, window_identifier: str) -> None:
        windows = self.windows()
        if _find(windows, window_identifier) is None:
            logger.warning("Cannot activate unknown window %s", window_identifier)
        else:
            windows = [replace(w, is_active=w.window_identifier == window_identifier) for w in windows]
        self._commit(windows, "activate %s" % window_identifier)

    def select_record_in_tab(self, window_identifier: str, tab_id: str, record_id: str) -> None:
        """Select a record and invalidate every descendant tab, in one commit."""
        windows = self.windows()
        window = self._require(windows, window_identifier)
        if window is not None:
            descendants = self._descendants(window, tab_id)

            def _apply(tabs: Dict[str, TabState]) -> Dict[str, TabState]:
                tabs = _set_tab(tabs, tab_id, lambda t: replace(t, selected_record=record_id))
                return _drop_tabs(tabs, descendants)

            windows = _update_tabs(windows, window_identifier, _apply)
        self._commit(windows, "select %s=%s in %s" % (tab_id, record_id, window_identifier))

    def clear_selected_record(self, window_identifier: str, tab_id: str) -> None:
        windows = self.windows()
        window = self._require(windows, window_identifier)
        if window is not None:
            descendants = self._descendants(window, tab_id)

            def _apply(tabs: Dict[str, TabState]) -> Dict[str, TabState]:
                tabs = _set_tab(tabs, tab_id, lambda t: replace(t, selected_record=None))
                return _drop_tabs(tabs, descendants)

            windows = _update_tabs(windows, window_identifier, _apply)
        self._commit(windows, "clear selection of %s in %s" % (tab_id, window_identifier))

    def clear_children_selections(self, window_identifier: str, tab_ids: Iterable[str]) -> None:
        """Remove selection and form keys of exactly the given tabs."""
        tab_ids = list(tab_ids)
        windows = self.windows()
        if self._require(windows, window_identifier) is not None:
            windows = _update_tabs(windows, window_identifier, lambda tabs: _drop_tabs(tabs, tab_ids))
        self._commit(windows, "clear %d tab(s) in %s" % (len(tab_ids), window_identifier))

    def close_window(self, window_identifier: str) -> None:
        windows = self.windows()
        closing = self._require(windows, window_identifier)
        remaining = [w for w in windows if w.window_identifier != window_identifier]
        if closing is not None and closing.is_active and remaining:
            successor = max(remaining, key=lambda w: (w.order, w.window_identifier))
            remaining = [replace(w, is_active=w is successor) for w in remaining]
        self._commit(remaining, "close %s" % window_identifier)

    def set_tab_mode(
        self,
        window_identifier: str,
        tab_id: str,
        mode: str,
        record_id: Optional[str] = None,
        form_mode: Optional[str] = None,
    ) -> None:
        if mode not in TAB_MODES:
            raise InvalidNavigationRequest(f"mode must be one of {TAB_MODES}, got {mode!r}")
        if form_mode is not None and form_mode not in FORM_MODES:
            raise InvalidNavigationRequest(f"form mode must be one of {FORM_MODES}, got {form_mode!r}")

        windows = self.windows()
        window = self._require(windows, window_identifier)
        if window is not None:
            if mode == TAB_MODE_FORM:
                rid = record_id or window.tab(tab_id).selected_record
                if rid is None:
                    raise InvalidNavigationRequest(
                        f"tab {tab_id} has no selected record to open in form mode; pass a record id"
                    )
                form = TabFormState(mode=mode, record_id=rid, form_mode=form_mode or default_form_mode(rid))
            else:
                form = TabFormState(mode=mode)
            before = window.tab(tab_id)
            after = replace(before, form=form)
            # Children filter by the tab's current record; a new one invalidates them.
            descendants = self._descendants(window, tab_id) if after.current_record() != before.current_record() else []

            def _apply(tabs: Dict[str, TabState]) -> Dict[str, TabState]:
                tabs[tab_id] = after
                return _drop_tabs(tabs, descendants)

            windows = _update_tabs(windows, window_identifier, _apply)
        self._commit(windows, "set %s mode=%s in %s" % (tab_id, mode, window_identifier))

    def prune(self, stale: Mapping[str, Optional[Iterable[str]]]) -> bool:
        """Drop stale tab state after recovery and canonicalize the URL.

        `stale` maps a window identifier to the tab ids to drop, or to None to
        drop every tab of that window. Keys the codec ignored as malformed go
        as well. Commits once, and only when the query actually changes.
        """
        params = self.router.current_params()
        windows = decode(params)
        for identifier, tab_ids in stale.items():
            if tab_ids is None:
                windows = _update_tabs(windows, identifier, lambda tabs: {})
            else:
                windows = _update_tabs(windows, identifier, lambda tabs, ids=list(tab_ids): _drop_tabs(tabs, ids))
        url = build_url(self.base_path, windows)
        if parse_query_string(url) == params:
            return False
        self._commit(windows, "prune stale state of %s" % (", ".join(sorted(stale)) or "malformed keys"))
        return True

    # Internals

    def _open(self, windows: List[WindowState], window_id: str, new_instance: bool) -> Tuple[List[WindowState], str]:
        existing = [w for w in windows if w.window_id == window_id]
        if existing and not new_instance:
            identifier = min(existing, key=lambda w: w.order).window_identifier
            return [replace(w, is_active=w.window_identifier == identifier) for w in windows], identifier

        identifier = new_window_identifier(window_id, [w.window_identifier for w in windows])
        order = max((w.order for w in windows), default=0) + 1
        opened = WindowState(window_id=window_id, window_identifier=identifier, order=order, is_active=True)
        return [replace(w, is_active=False) for w in windows] + [opened], identifier

    def _require(self, windows: List[WindowState], window_identifier: str) -> Optional[WindowState]:
        window = _find(windows, window_identifier)
        if window is None:
            logger.warning("Window %s is not open; URL left unchanged", window_identifier)
        return window

    def _descendants(self, window: WindowState, tab_id: str) -> List[str]:
        metadata = self._metadata(window.window_id)
        if metadata is None:
            logger.warning("%s; child tabs of %s are not cleared", MetadataUnavailable(window.window_id), tab_id)
            return []
        return metadata.descendants(tab_id)

    def _commit(self, windows: List[WindowState], description: str) -> str:
        url = build_url(self.base_path, windows)
        logger.info("Navigation: %s -> %s", description, url)
        self.router.replace(url)
        return url


def _find(windows: Iterable[WindowState], window_identifier: str) -> Optional[WindowState]:
    for w in windows:
        if w.window_identifier == window_identifier:
            return w
    return None


def _update_tabs(
    windows: List[WindowState],
    window_identifier: str,
    update: Callable[[Dict[str, TabState]], Dict[str, TabState]],
) -> List[WindowState]:
    return [
        replace(w, tabs=update(dict(w.tabs))) if w.window_identifier == window_identifier else w
        for w in windows
    ]


def _set_tab(
    tabs: Dict[str, TabState], tab_id: str, update: Callable[[TabState], TabState]
) -> Dict[str, TabState]:
    tabs[tab_id] = update(tabs.get(tab_id) or TabState())
    return tabs


def _drop_tabs(tabs: Dict[str, TabState], tab_ids: Iterable[str]) -> Dict[str, TabState]:
    for tab_id in tab_ids:
        tabs.pop(tab_id, None)
    return tabs
