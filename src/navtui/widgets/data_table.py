"""Filterable data table widget for TUI."""

from typing import List, Dict, Any, Optional
from textual.widgets import DataTable
from textual.reactive import reactive


class FilterableDataTable(DataTable):
    """Data table over row dicts; keys starting with '_' are hidden payload."""

    filter_text: reactive[str] = reactive("")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._columns: List[str] = []
        self._all_rows: List[Dict[str, Any]] = []
        self._filtered_rows: List[Dict[str, Any]] = []
        self.cursor_type = "row"

    def set_data(self, columns: List[str], rows: List[Dict[str, Any]]) -> None:
        """Replace columns and rows, keeping the cursor where it was if possible."""
        cursor = self.cursor_row
        self._columns = list(columns)
        self._all_rows = list(rows)
        self.clear(columns=True)
        for col in self._columns:
            self.add_column(col, key=col)
        self.apply_filter()
        if 0 <= cursor < len(self._filtered_rows):
            self.move_cursor(row=cursor)

    def apply_filter(self) -> None:
        """Apply current filter to the data."""
        needle = self.filter_text.lower()
        self._filtered_rows = [
            row for row in self._all_rows
            if not needle or any(needle in str(row.get(col, "")).lower() for col in self._columns)
        ]

        self.clear(columns=False)
        for row in self._filtered_rows:
            self.add_row(*[str(row.get(col, "")) for col in self._columns])

    def set_filter(self, filter_text: str) -> None:
        """Set filter text and refresh display."""
        self.filter_text = filter_text
        self.apply_filter()

    def get_selected_row(self) -> Optional[Dict[str, Any]]:
        """Get the currently selected row data."""
        row_index = self.cursor_row
        if row_index < 0 or row_index >= len(self._filtered_rows):
            return None
        return self._filtered_rows[row_index]
