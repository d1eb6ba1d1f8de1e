from textual.widgets import Static

from voice_assistant.core.domain import Status
from voice_assistant.core.transcript import status_caption

UNAVAILABLE_CAPTION = "Speech recognition is not supported on this machine"


class StatusBar(Static):
    def set_status(self, status: Status, *, capture_available: bool = True) -> None:
        if not capture_available:
            self.update(f"[dim]{UNAVAILABLE_CAPTION}[/dim]")
            return
        self.update(status_caption(status))
