"""
Command input for the voice assistant (`/summarize <url>`, `/ask <image> <question>`, ...).
"""
from textual.widgets import Input
from textual.message import Message


class InputArea(Input):
    class Submit(Message, bubble=True):
        def __init__(self, command: str, argument: str) -> None:
            super().__init__()
            self.command = command
            self.argument = argument

    async def on_key(self, event) -> None:
        if event.key != "enter":
            return
        value = self.value.strip()
        self.value = ""
        if not value:
            return
        command, _, argument = value.partition(" ")
        self.post_message(self.Submit(command.lower(), argument.strip()))
