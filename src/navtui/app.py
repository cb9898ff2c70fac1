"""Main TUI application with global exception handling."""

import logging
from typing import Optional

from textual.app import App

from navlib.config import load_config
from navlib.controller import Selection
from navlib.errors import NavigationError
from navlib.models import TAB_MODE_FORM
from navlib.persistence import JsonFileStorage, NavigationTabStore
from navlib.router import InMemoryRouter
from navlib.session import NavigationSession
from navlib.url_codec import HOME_URL

from .command_parser import CommandParser, CommandType, ParsedCommand
from .screens.base_screen import BaseListScreen
from .screens.window_list_screen import WindowListScreen
from .screens.window_screen import WindowScreen
from .widgets.command_input import CommandInput


logger = logging.getLogger(__name__)


class TUIApp(App):
    """Main TUI application driving one navigation session."""

    TITLE = "navctl TUI"
    SUB_TITLE = "Multi-window navigation"

    CSS = """
    Screen {
        layout: vertical;
    }

    Header {
        dock: top;
    }

    Footer {
        dock: bottom;
    }

    #status {
        height: 1;
        color: $text-muted;
    }
    """

    def __init__(self, url: str = HOME_URL):
        super().__init__()
        self.initial_url = url
        self.config = None
        self.session: Optional[NavigationSession] = None
        self.command_parser = CommandParser()

    def on_mount(self) -> None:
        """Load config, recover the initial URL and show the tab bar."""
        try:
            self.config = load_config()
        except Exception as e:
            self.show_error_dialog(
                title="Configuration Error",
                message=f"Failed to load configuration: {e}"
            )
            return

        store = NavigationTabStore(JsonFileStorage(self.config.storage_path()))
        router = InMemoryRouter(self.initial_url, auto_flush=True)
        self.session = NavigationSession(router, self.config.metadata, store=store, base_path=self.config.base_path)
        router.subscribe(self.on_url_committed)
        self.session.recover()
        logger.info("TUI app initialized at %s", router.url)

        self.push_screen(WindowListScreen())
        active = self.session.controller.active_window()
        if active is not None:
            self.push_screen(WindowScreen(active.window_identifier))

    def on_unmount(self) -> None:
        if self.session is not None:
            self.session.close()

    async def on_exception(self, exception: Exception) -> None:
        """Global exception handler - never crash."""
        self.show_error_dialog(
            title="Unexpected Error",
            message=f"An error occurred: {str(exception)}"
        )
        logger.error(f"TUI exception: {exception}", exc_info=True)

    def show_error_dialog(self, title: str, message: str, details: Optional[str] = None) -> None:
        self.bell()
        self.notify(message, title=title, severity="error")
        logger.error(f"{title}: {message}")
        if details:
            logger.error(f"Details: {details}")

    def show_notification(self, message: str) -> None:
        self.sub_title = f"Multi-window navigation - {message}"
        logger.info(f"Notification: {message}")

    def on_url_committed(self, url: str) -> None:
        """Router render hook: recover the new URL and repaint the current screen."""
        if self.session is None:
            return
        self.session.recover()
        if isinstance(self.screen, BaseListScreen):
            self.screen.load_data()

    def current_window_identifier(self) -> Optional[str]:
        if isinstance(self.screen, WindowScreen):
            return self.screen.window_identifier
        active = self.session.controller.active_window() if self.session else None
        return active.window_identifier if active else None

    def show_window(self, window_identifier: str) -> None:
        if isinstance(self.screen, WindowScreen):
            if self.screen.window_identifier == window_identifier:
                self.screen.load_data()
                return
            self.pop_screen()
        self.push_screen(WindowScreen(window_identifier))

    def on_base_list_screen_item_selected(self, message: BaseListScreen.ItemSelected) -> None:
        """Open windows from the tab bar; toggle table/form on a tab row."""
        if self.session is None:
            return
        item = message.item_data
        controller = self.session.controller
        logger.info(f"Item selected: {item}")

        if "_tab_id" in item:
            identifier = item["_window_identifier"]
            tab_id = item["_tab_id"]
            if controller.tab_mode(identifier, tab_id) == TAB_MODE_FORM:
                self.run_navigation("mode", lambda: controller.set_tab_mode(identifier, tab_id, "table"))
            elif controller.active_record(identifier, tab_id) is None:
                self.show_notification(f"Select a record in tab {tab_id} first (:select {tab_id} <record>)")
            else:
                self.run_navigation("mode", lambda: controller.set_tab_mode(identifier, tab_id, TAB_MODE_FORM))
        elif item.get("_identifier"):
            identifier = item["_identifier"]
            self.run_navigation("activate", lambda: controller.set_active_window(identifier))
            self.show_window(identifier)
        elif "_window_id" in item:
            identifier = self.run_navigation("open", lambda: controller.open_window(item["_window_id"]))
            if identifier:
                self.show_window(identifier)

    def on_base_list_screen_go_back(self, message: BaseListScreen.GoBack) -> None:
        if isinstance(self.screen, WindowScreen):
            logger.info("Going back to window list")
            self.pop_screen()
            self.screen.load_data()

    def on_command_input_command_entered(self, message: CommandInput.CommandEntered) -> None:
        parsed = self.command_parser.parse(message.command_text)
        if parsed.error:
            self.show_error_dialog("Command Error", parsed.error)
            return
        self.execute_command(parsed)

    def run_navigation(self, operation: str, action):
        """Run one controller call, reporting navigation errors instead of raising."""
        try:
            return action()
        except NavigationError as e:
            self.show_error_dialog(f"Cannot {operation}", str(e))
            return None

    def execute_command(self, command: ParsedCommand) -> None:
        if command.command_type == CommandType.QUIT:
            self.exit()
            return
        if command.command_type == CommandType.HELP:
            self.notify(self.command_parser.get_help_text(), title="Help", timeout=15)
            return
        if self.session is None:
            self.show_error_dialog("Not Ready", "Configuration is not loaded")
            return

        controller = self.session.controller
        args = command.args
        current = self.current_window_identifier()

        if command.command_type == CommandType.OPEN:
            if len(args) == 2:
                tab_id, record_id = args[1].split("=", 1)
                identifier = self.run_navigation(
                    "open", lambda: controller.open_window_and_select(args[0], Selection(tab_id, record_id))
                )
            else:
                identifier = self.run_navigation("open", lambda: controller.open_window(args[0]))
            if identifier:
                self.show_window(identifier)
            return

        if command.command_type == CommandType.WINDOW:
            self.run_navigation("activate", lambda: controller.set_active_window(args[0]))
            if controller.window(args[0]) is not None:
                self.show_window(args[0])
            return

        if command.command_type == CommandType.RECOVER:
            windows = self.session.recover()
            if isinstance(self.screen, BaseListScreen):
                self.screen.load_data()
            self.show_notification(f"Recovered {len(windows)} window(s)")
            return

        target = args[0] if command.command_type == CommandType.CLOSE and args else current
        if target is None:
            self.show_error_dialog("No Window", "Open a window first (:open <window>)")
            return

        if command.command_type == CommandType.CLOSE:
            self.run_navigation("close", lambda: controller.close_window(target))
            if isinstance(self.screen, WindowScreen) and self.screen.window_identifier == target:
                self.pop_screen()
                self.screen.load_data()
        elif command.command_type == CommandType.SELECT:
            self.run_navigation("select", lambda: controller.select_record_in_tab(target, args[0], args[1]))
        elif command.command_type == CommandType.CLEAR:
            self.run_navigation("clear", lambda: controller.clear_children_selections(target, args))
        elif command.command_type == CommandType.MODE:
            record_id = args[2] if len(args) == 3 else None
            self.run_navigation("set mode", lambda: controller.set_tab_mode(target, args[0], args[1], record_id))


def run_tui(url: str = HOME_URL) -> None:
    """Entry point for running the TUI."""
    log_file = "/tmp/navtui_debug.log"
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            logging.FileHandler(log_file, mode='w')
        ]
    )
    logger.info(f"Starting TUI at {url}, debug log at: {log_file}")

    app = TUIApp(url)
    app.run()
