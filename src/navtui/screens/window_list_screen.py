"""Tab bar screen: open window instances plus configured windows."""

from typing import Any, Dict, List
import logging

from .base_screen import BaseListScreen

logger = logging.getLogger(__name__)

COLUMNS = ["", "IDENTIFIER", "WINDOW", "NAME", "ORDER", "RECOVERY"]


class WindowListScreen(BaseListScreen):
    """Screen for listing open windows and opening configured ones."""

    def __init__(self):
        super().__init__(title="Windows")

    def load_data(self) -> None:
        session = getattr(self.app, "session", None)
        config = getattr(self.app, "config", None)
        if session is None or config is None:
            logger.warning("Session not ready yet, showing empty window list")
            self.set_data(COLUMNS, [])
            return

        rows: List[Dict[str, Any]] = []
        open_ids = set()
        for summary in session.controller.open_windows():
            open_ids.add(summary.window_id)
            rows.append({
                "": "*" if summary.is_active else "",
                "IDENTIFIER": summary.window_identifier,
                "WINDOW": summary.window_id,
                "NAME": summary.title,
                "ORDER": summary.order,
                "RECOVERY": session.recovery_state(summary.window_identifier).value,
                "_window_id": summary.window_id,
                "_identifier": summary.window_identifier,
            })

        for window_id, meta in sorted(config.windows.items()):
            if window_id in open_ids:
                continue
            rows.append({
                "": "",
                "IDENTIFIER": "",
                "WINDOW": window_id,
                "NAME": meta.name or window_id,
                "ORDER": "",
                "RECOVERY": "",
                "_window_id": window_id,
            })

        self.set_data(COLUMNS, rows)
        self.set_status(session.router.url)
        logger.info("Listed %d open window(s), %d row(s) total", len(open_ids), len(rows))
