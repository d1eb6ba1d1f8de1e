"""
Modal screens for the voice assistant.
"""

from rich.markup import escape
from textual import on
from textual.widgets import Static, OptionList
from textual.widgets.option_list import Option
from textual.containers import Center, Vertical
from textual.screen import ModalScreen


class CaptureUnavailableScreen(ModalScreen[bool]):
    """Shown once at startup when speech capture is not supported. Dismisses True to continue."""
    CSS = """
#panel {
    width: 80%;
    max-width: 100;
    border: round $error;
    padding: 1 2;
}
#capture_options {
    margin-top: 1;
}
#panel OptionList {
    border: none;
    background: transparent;
}
    """
    BINDINGS = [
        ('1', 'choose_continue', 'continue'),
        ('2', 'choose_quit', 'quit'),
    ]

    def __init__(self, reason: str) -> None:
        """
        Args:
            reason (str): Why the capture capability is missing, shown verbatim.
        """
        super().__init__()
        self.reason = reason

    def compose(self):
        yield Center(
                Vertical(
                    Static("[bold]Speech recognition is not supported[/bold]\n", markup=True, classes="title"),
                    Static(f"[dim]{escape(self.reason)}[/dim]\n", markup=True),
                    Static(
                        "The microphone button stays disabled for this session.\n"
                        "You can still summarize web pages and ask about images from the command input.\n",
                        markup=True,
                    ),
                    OptionList(
                        Option("1. Continue without voice", id="continue"),
                        Option("2. Quit", id="quit"),
                        id="capture_options",
                    ),
                ),
                id="panel",
        )

    def on_mount(self) -> None:
        ol = self.query_one(OptionList)
        ol.focus()
        ol.index = 0

    @on(OptionList.OptionSelected)
    def on_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(event.option_id == 'continue')

    def action_choose_continue(self) -> None:
        self.dismiss(True)

    def action_choose_quit(self) -> None:
        self.dismiss(False)
