"""Parse vim-style navigation commands for the TUI."""

import shlex
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from navlib.models import TAB_MODES


class CommandType(Enum):
    """Types of commands supported in TUI."""
    OPEN = "open"
    CLOSE = "close"
    WINDOW = "window"
    SELECT = "select"
    CLEAR = "clear"
    MODE = "mode"
    RECOVER = "recover"
    QUIT = "quit"
    HELP = "help"
    UNKNOWN = "unknown"


@dataclass
class ParsedCommand:
    """Result of parsing a command string."""
    command_type: CommandType
    args: List[str]
    raw_input: str
    error: Optional[str] = None


# (min, max) argument counts; None means unbounded
ARITY = {
    CommandType.OPEN: (1, 2),
    CommandType.CLOSE: (0, 1),
    CommandType.WINDOW: (1, 1),
    CommandType.SELECT: (2, 2),
    CommandType.CLEAR: (1, None),
    CommandType.MODE: (2, 3),
    CommandType.RECOVER: (0, 0),
    CommandType.QUIT: (0, 0),
    CommandType.HELP: (0, 0),
}


class CommandParser:
    """Parser for vim-style TUI commands."""

    ALIASES = {
        "o": "open",
        "x": "close",
        "w": "window",
        "s": "select",
        "c": "clear",
        "m": "mode",
        "r": "recover",
        "q": "quit",
        "?": "help",
    }

    def _error(self, raw: str, message: str, args: Optional[List[str]] = None) -> ParsedCommand:
        return ParsedCommand(command_type=CommandType.UNKNOWN, args=args or [], raw_input=raw, error=message)

    def parse(self, input_text: str) -> ParsedCommand:
        """Parse command input and return parsed command."""
        input_text = input_text.strip()

        if not input_text:
            return self._error(input_text, "Empty command")

        if not input_text.startswith(":"):
            return self._error(input_text, "Commands must start with ':'")

        command_line = input_text[1:].strip()
        if not command_line:
            return self._error(input_text, "No command after ':'")

        try:
            parts = shlex.split(command_line)
        except ValueError as e:
            return self._error(input_text, f"Invalid command syntax: {e}")

        if not parts:
            return self._error(input_text, "No command specified")

        command = parts[0].lower()
        args = parts[1:]
        resolved_command = self.ALIASES.get(command, command)

        try:
            command_type = CommandType(resolved_command)
        except ValueError:
            return self._error(input_text, f"Unknown command: {command}", args)
        if command_type is CommandType.UNKNOWN:
            return self._error(input_text, f"Unknown command: {command}", args)

        return ParsedCommand(
            command_type=command_type,
            args=args,
            raw_input=input_text,
            error=self._validate_command_args(command_type, args),
        )

    def _validate_command_args(self, command_type: CommandType, args: List[str]) -> Optional[str]:
        """Validate arguments for specific command types."""
        low, high = ARITY[command_type]
        if len(args) < low:
            return f"{command_type.value} command requires at least {low} argument(s)"
        if high is not None and len(args) > high:
            if high == 0:
                return f"{command_type.value} command does not accept arguments"
            return f"{command_type.value} command accepts at most {high} argument(s)"

        if command_type is CommandType.MODE and args[1] not in TAB_MODES:
            return f"mode must be one of: {', '.join(TAB_MODES)}"

        if command_type is CommandType.OPEN and len(args) == 2 and "=" not in args[1]:
            return "open selection must look like TAB=RECORD"

        return None

    def get_help_text(self) -> str:
        """Get help text for all commands."""
        return """Command Mode Help:

:open <window> [TAB=REC] (or :o) - Open or reactivate a window
:close [identifier] (or :x)      - Close a window (default: active)
:window <identifier> (or :w)     - Switch to an open window
:select <tab> <record> (or :s)   - Select a record, clearing child tabs
:clear <tab>... (or :c)          - Clear selection/form state of tabs
:mode <tab> table|form [rec] (:m) - Switch a tab between table and form
:recover (or :r)                 - Re-run URL recovery
:quit (or :q)                    - Exit application
:help (or :?)                    - Show this help

Filter Mode:
Type directly (without :) to filter the current list

Navigation:
↑↓ - Navigate items
Enter - Open window / run command
Esc - Go back/cancel
"""
