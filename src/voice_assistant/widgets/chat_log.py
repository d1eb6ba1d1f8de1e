from typing import Sequence

from rich.markup import escape
from textual.widgets import RichLog

from voice_assistant.core.transcript import TranscriptLine

_FORMATS = {
    'user': "[bold cyan]you:[/bold cyan] {text}",
    'assistant': "[bold green]assistant:[/bold green] {text}",
    'thinking': "[bold green]assistant:[/bold green] [dim]{text}[/dim]",
    'placeholder': "[dim]{text}[/dim]",
}


class ChatLog(RichLog):
    """Redraws the whole transcript from its projection, then any side notes."""

    def show(self, lines: Sequence[TranscriptLine], notes: Sequence[str] = ()) -> None:
        self.clear()
        for line in lines:
            self.write(_FORMATS[line.kind].format(text=escape(line.text)))
        if notes:
            self.write("")
            self.write("[dim]── notes ──[/dim]")
            for note in notes:
                self.write(escape(note))
        self.scroll_end(animate=False)
