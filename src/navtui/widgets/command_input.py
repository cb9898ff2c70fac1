"""Input that filters the current list, or runs a ':' command on Enter."""

from textual.message import Message
from textual.widgets import Input


class CommandInput(Input):
    """Filter as you type; lines starting with ':' are commands."""

    class FilterChanged(Message):
        def __init__(self, filter_text: str) -> None:
            super().__init__()
            self.filter_text = filter_text

    class CommandEntered(Message):
        def __init__(self, command_text: str) -> None:
            super().__init__()
            self.command_text = command_text

    def __init__(self, **kwargs):
        super().__init__(placeholder="Type to filter, or :command (:? for help)", **kwargs)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.value.startswith(":"):
            return
        self.post_message(self.FilterChanged(event.value))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.value.startswith(":"):
            self.post_message(self.CommandEntered(event.value))
            self.value = ""
