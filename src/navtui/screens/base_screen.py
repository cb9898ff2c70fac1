"""Base screen with common navigation, filtering and command input."""

from typing import List, Dict, Any, Optional
from textual.screen import Screen
from textual.containers import Vertical
from textual.widgets import Header, Footer, Static
from textual.message import Message
from textual.binding import Binding

from ..widgets.data_table import FilterableDataTable
from ..widgets.command_input import CommandInput


class BaseListScreen(Screen):
    """Base screen for list-based navigation with filtering."""

    BINDINGS = [
        Binding("escape", "go_back", "Back", priority=True),
        Binding("enter", "select_item", "Select"),
        ("q", "quit", "Quit"),
        ("/", "focus_input", "Filter"),
        (":", "start_command", "Command"),
    ]

    class ItemSelected(Message):
        """Message sent when an item is selected."""

        def __init__(self, item_data: Dict[str, Any]) -> None:
            super().__init__()
            self.item_data = item_data

    class GoBack(Message):
        """Message sent when user wants to go back."""
        pass

    def __init__(self, title: str, **kwargs):
        super().__init__(**kwargs)
        self.title = title
        self.data_table: Optional[FilterableDataTable] = None
        self.command_input: Optional[CommandInput] = None
        self.status: Optional[Static] = None

    def compose(self):
        """Compose the screen layout."""
        with Vertical():
            yield Header()
            yield Static(self.title, id="screen-title")
            yield CommandInput(id="command-input")
            yield FilterableDataTable(id="data-table")
            yield Static("", id="status")
            yield Footer()

    def on_mount(self) -> None:
        """Initialize screen components after mount."""
        self.data_table = self.query_one("#data-table", FilterableDataTable)
        self.command_input = self.query_one("#command-input", CommandInput)
        self.status = self.query_one("#status", Static)
        self.data_table.focus()
        self.load_data()

    def on_command_input_filter_changed(self, event: CommandInput.FilterChanged) -> None:
        if self.data_table:
            self.data_table.set_filter(event.filter_text)

    def on_command_input_command_entered(self, event: CommandInput.CommandEntered) -> None:
        # Hand the table the focus back; the app handles the command itself.
        if self.data_table:
            self.data_table.focus()

    def action_select_item(self) -> None:
        """Handle item selection."""
        if self.data_table:
            selected_row = self.data_table.get_selected_row()
            if selected_row:
                self.post_message(self.ItemSelected(selected_row))

    def action_go_back(self) -> None:
        if self.command_input and self.command_input.has_focus:
            self.command_input.value = ""
            if self.data_table:
                self.data_table.focus()
            return
        self.post_message(self.GoBack())

    def action_quit(self) -> None:
        """Quit the application."""
        self.app.exit()

    def action_focus_input(self) -> None:
        if self.command_input:
            self.command_input.focus()

    def action_start_command(self) -> None:
        if self.command_input:
            self.command_input.value = ":"
            self.command_input.focus()
            self.command_input.cursor_position = 1

    def load_data(self) -> None:
        """Load data for this screen. Override in subclasses."""
        raise NotImplementedError("Subclasses must implement load_data()")

    def set_data(self, columns: List[str], rows: List[Dict[str, Any]]) -> None:
        """Set the data for the table."""
        if self.data_table:
            self.data_table.set_data(columns, rows)

    def set_status(self, text: str) -> None:
        if self.status:
            self.status.update(text)
