"""Window screen showing the recovered tab hierarchy of one window instance."""

from typing import Any, Dict, List, Optional
import logging

from textual.widgets import Static

from navlib.models import WindowState

from .base_screen import BaseListScreen

logger = logging.getLogger(__name__)

COLUMNS = ["TAB", "NAME", "LEVEL", "PARENT", "ACTIVE", "SELECTED", "MODE", "FORM RECORD"]


class WindowScreen(BaseListScreen):
    """Screen for one open window instance; rows are the tabs of its definition."""

    def __init__(self, window_identifier: str):
        super().__init__(title=window_identifier)
        self.window_identifier = window_identifier

    def current_window(self) -> Optional[WindowState]:
        """Recovered window if available, else what the URL says."""
        session = self.app.session
        published = session.orchestrator.published.get(self.window_identifier)
        if published is not None:
            return published
        return session.controller.window(self.window_identifier)

    def load_data(self) -> None:
        session = getattr(self.app, "session", None)
        if session is None:
            self.set_data(COLUMNS, [])
            return

        window = self.current_window()
        if window is None:
            self.set_data(["INFO"], [{"INFO": f"Window {self.window_identifier} is not open"}])
            return

        meta = session.metadata(window.window_id)
        state = session.recovery_state(self.window_identifier)
        name = meta.name if meta and meta.name else window.window_id
        self.query_one("#screen-title", Static).update(f"{name} [{self.window_identifier}] recovery: {state.value}")

        if meta is None:
            self.set_data(["INFO"], [{"INFO": f"No metadata configured for window {window.window_id}"}])
            return

        active_tabs = set(window.navigation.active_tabs_by_level.values())
        rows: List[Dict[str, Any]] = []
        for tab in meta:
            tab_state = window.tab(tab.tab_id)
            rows.append({
                "TAB": ("  " * tab.level) + tab.tab_id,
                "NAME": tab.name or tab.entity_name,
                "LEVEL": tab.level,
                "PARENT": tab.parent_tab_id or "",
                "ACTIVE": "yes" if tab.tab_id in active_tabs else "",
                "SELECTED": tab_state.selected_record or "",
                "MODE": tab_state.form.effective_mode,
                "FORM RECORD": tab_state.form.record_id or "",
                "_tab_id": tab.tab_id,
                "_window_identifier": self.window_identifier,
            })

        self.set_data(COLUMNS, rows)
        self.set_status(session.router.url)
