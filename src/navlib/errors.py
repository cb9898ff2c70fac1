"""Error types and user-facing error formatting for navctl."""

from __future__ import annotations

from typing import Any


class NavigationError(Exception):
    """Base class for navigation state errors."""


class MalformedUrlKey(NavigationError):
    """A query-string key or value that cannot be interpreted."""

    def __init__(self, key: str, value: str, reason: str) -> None:
        super().__init__(f"Malformed URL parameter {key}={value!r}: {reason}")
        self.key = key
        self.value = value
        self.reason = reason


class DanglingSelection(NavigationError):
    """A tab selection whose ancestor chain is not active."""

    def __init__(self, window_identifier: str, tab_id: str) -> None:
        super().__init__(f"Dangling selection on tab {tab_id} of window {window_identifier}")
        self.window_identifier = window_identifier
        self.tab_id = tab_id


class MetadataUnavailable(NavigationError):
    """Window metadata was requested before it was loaded."""

    def __init__(self, window_id: str) -> None:
        super().__init__(f"Window metadata not available for window {window_id}")
        self.window_id = window_id


class RecoveryException(NavigationError):
    """Unexpected failure while recovering a window from the URL."""

    def __init__(self, window_identifier: str, cause: BaseException) -> None:
        super().__init__(f"Recovery failed for window {window_identifier}: {cause}")
        self.window_identifier = window_identifier
        self.cause = cause


class InvalidNavigationRequest(NavigationError, ValueError):
    """A public navigation call with arguments that cannot be honoured."""


def format_error_message(operation: str, error: Exception, context: dict[str, Any] | None = None) -> str:
    """Format a user-friendly error message based on the exception type and context."""
    context = context or {}

    if isinstance(error, MetadataUnavailable):
        return (
            f"Window '{error.window_id}' is not defined in the configuration. "
            f"Add it under 'windows:' to enable tab hierarchy recovery. "
            f"Original error: {error}"
        )

    if isinstance(error, InvalidNavigationRequest):
        return f"Invalid request to {operation}: {error}"

    if isinstance(error, RecoveryException):
        window = context.get("window", error.window_identifier)
        return (
            f"Could not restore window '{window}' from the URL; "
            f"it was opened with nothing pre-selected. Original error: {error.cause}"
        )

    error_str = str(error)
    if "url" in error_str.lower() or "query" in error_str.lower():
        return (
            f"The navigation URL could not be interpreted. "
            f"Check that it is quoted in the shell. Original error: {error_str}"
        )

    return f"Failed to {operation}: {error_str}"


def suggest_troubleshooting_steps(operation: str, error: Exception) -> list[str]:
    """Suggest troubleshooting steps based on the operation and error."""
    suggestions = []

    if isinstance(error, MetadataUnavailable):
        suggestions.extend([
            "List the windows the URL references: navctl windows list '<url>'",
            "Check the window ids under 'windows:' in your config file",
            "Ensure the correct NAVCTL_CONFIG path is set",
        ])

    elif isinstance(error, InvalidNavigationRequest):
        suggestions.extend([
            "Tab modes are 'table' or 'form'; form modes are 'edit' or 'new'",
            "Opening a tab in form mode needs --record or an existing selection",
        ])

    elif isinstance(error, RecoveryException):
        suggestions.extend([
            "Inspect the tab tree with: navctl windows show '<url>' <identifier>",
            "Verify parent/child tab levels in the window configuration",
        ])

    if "window" in operation.lower() and not suggestions:
        suggestions.append("Use 'navctl windows list <url>' to see open window identifiers")

    if not suggestions:
        suggestions.extend([
            "Check the logs with -v/--verbose flag for more details",
            "Verify your configuration file is correct",
        ])

    return suggestions


def format_config_error(error: Exception) -> str:
    """Format configuration-related error messages."""
    error_str = str(error)

    if "no config file found" in error_str.lower():
        return (
            "No configuration file found. Please either:\n"
            "  • Set NAVCTL_CONFIG=/path/to/config.yaml, or\n"
            "  • Create ~/.config/navctl/config.yaml\n"
            "\n"
            "See the README for configuration examples."
        )

    if "window" in error_str.lower():
        return (
            f"Window configuration error: {error_str}\n"
            "Check your config file and ensure every tab declares id and level."
        )

    return f"Configuration error: {error_str}"
