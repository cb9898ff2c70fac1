"""Core library for multi-window navigation state.

Contains the URL codec, navigation controller, recovery engine, selection
graph and configuration loading used by the CLI and the TUI.
"""

__all__ = [
    "config",
    "controller",
    "models",
    "persistence",
    "recovery",
    "router",
    "selection_graph",
    "session",
    "url_codec",
]
