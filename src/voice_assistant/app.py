"""
Voice Assistant
"""

import asyncio
import logging
import os
import sys
from typing import Optional

import httpx
from openai import AsyncOpenAI
from textual import work
from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.logging import TextualHandler
from textual.widgets import Button, Footer

from voice_assistant.config import Settings
from voice_assistant.core.capture import SpeechRecognitionCapture
from voice_assistant.core.clients import ChatCompletionClient, SpeechSynthesisClient
from voice_assistant.core.domain import Status
from voice_assistant.core.errors import CaptureUnsupported, ConfigError, VoiceAssistantError
from voice_assistant.core.flows import build_chat_flow, build_llm, build_summarize_flow, build_visual_qa_flow
from voice_assistant.core.orchestrator import TurnOrchestrator
from voice_assistant.core.playback import PlaybackController
from voice_assistant.core.side_flows import SideFlows
from voice_assistant.core.transcript import render_transcript
from voice_assistant.screens import CaptureUnavailableScreen
from voice_assistant.widgets import ChatLog, InputArea, StatusBar

log = logging.getLogger("voice_assistant.app")

HELP_TEXT = (
    "F2 mic on/off · F3 stop audio · ctrl+r reset\n"
    "/summarize <url> · /ask <image-path> <question> · /reset · /help"
)


class VoiceAssistantApp(App):
    CSS = """
#chat_log {
    height: 1fr;
    border: round $secondary;
}
#status_bar {
    height: 1;
    content-align: center middle;
    margin: 1 0 0 0;
}
#controls {
    height: auto;
}
#mic {
    min-width: 10;
}
#input_text {
    width: 1fr;
}
    """
    BINDINGS = [
        ("f2", "toggle_capture", "Mic"),
        ("f3", "stop_playback", "Stop audio"),
        ("ctrl+r", "reset", "Reset"),
    ]

    def __init__(
        self,
        orchestrator: TurnOrchestrator,
        *,
        side_flows: Optional[SideFlows] = None,
        capture_error: Optional[CaptureUnsupported] = None,
    ):
        super().__init__()
        self.orchestrator = orchestrator
        self.event_q = orchestrator.events_q
        self.side_flows = side_flows
        self.capture_error = capture_error
        self.notes: list[str] = []

    def compose(self) -> ComposeResult:
        yield ChatLog(id="chat_log", markup=True, wrap=True)
        yield StatusBar(id="status_bar")
        yield Horizontal(
            Button("Mic", id="mic", variant="primary"),
            InputArea(id="input_text", placeholder="/summarize <url> · /ask <image> <question> · /help"),
            id="controls",
        )
        yield Footer()

    async def on_mount(self) -> None:
        self._refresh_view()
        self._pump()
        self._startup_flow()

    async def on_unmount(self) -> None:
        if self.side_flows is not None:
            await self.side_flows.aclose()

    @work(exclusive=True, group="startup")
    async def _startup_flow(self) -> None:
        """
        Surface a missing capture capability once, as a modal. The mic stays
        disabled for the rest of the session.
        """
        if self.capture_error is None:
            return
        proceed = await self.push_screen_wait(CaptureUnavailableScreen(str(self.capture_error)))
        if not proceed:
            self.exit()
            return
        self.set_focus(self.query_one("#input_text", InputArea))

    # ----------------- view -----------------
    def _refresh_view(self) -> None:
        status = self.orchestrator.status
        available = self.orchestrator.capture_available

        chat_log = self.query_one("#chat_log", ChatLog)
        chat_log.show(render_transcript(self.orchestrator.history.snapshot(), status), self.notes)

        self.query_one("#status_bar", StatusBar).set_status(status, capture_available=available)

        mic = self.query_one("#mic", Button)
        mic.label = "Stop" if status is Status.LISTENING else "Mic"
        mic.disabled = not available or status in (Status.THINKING, Status.SPEAKING)

    # ----------------- actions -----------------
    def action_toggle_capture(self) -> None:
        status = self.orchestrator.status
        if status is Status.IDLE:
            self.run_turn()
        elif status is Status.LISTENING:
            self.orchestrator.deactivate_capture()
        else:
            self.bell()

    def action_stop_playback(self) -> None:
        self.orchestrator.stop_playback()

    def action_reset(self) -> None:
        if self.orchestrator.reset():
            self.notes.clear()
            self._refresh_view()
        else:
            self.notify("Wait for the current turn to finish.", severity="warning")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "mic":
            self.action_toggle_capture()

    async def on_input_area_submit(self, message: InputArea.Submit) -> None:
        command, argument = message.command, message.argument

        if command == "/help":
            self.notify(HELP_TEXT, title="Commands")
        elif command == "/reset":
            self.action_reset()
        elif command == "/summarize" and argument:
            self.run_side_flow(command, argument)
        elif command == "/ask" and len(argument.split(maxsplit=1)) == 2:
            self.run_side_flow(command, argument)
        else:
            self.notify(f"Unknown command: {command} {argument}".strip(), severity="warning")

    # ----------------- workers -----------------
    @work(group="turn", exit_on_error=False)
    async def run_turn(self) -> None:
        # the orchestrator is already back to idle when an error reaches here
        try:
            await self.orchestrator.run_turn()
        except Exception as exc:
            log.exception("event=turn_crashed")
            self.notify(f"The turn failed: {exc}", title="Something went wrong", severity="error")

    @work(exclusive=True, group="side")
    async def run_side_flow(self, command: str, argument: str) -> None:
        if self.side_flows is None:
            self.notify("Side flows are not configured.", severity="warning")
            return

        self.notify("Working on it...", timeout=2)
        try:
            if command == "/summarize":
                result = await self.side_flows.summarize(argument)
                self.notes.append(f"summary of {argument}:\n{result}")
            else:
                path, question = argument.split(maxsplit=1)
                result = await self.side_flows.ask_about_image(path, question)
                self.notes.append(f"{path}: {question}\n{result}")
        except VoiceAssistantError as exc:
            log.warning("event=side_flow_failed command=%s error=%s", command, exc)
            self.notify(str(exc), title="Request failed", severity="error")
            return
        self._refresh_view()

    @work(exclusive=True, group='pump')
    async def _pump(self):
        """
        Event processing loop.

        Event types handled:
        - 'status': orchestrator status changed
        - 'turn': a turn was appended to the history
        - 'reset': the history was cleared
        - 'notice': a transient message for the user
        """
        while True:
            ev = await self.event_q.get()
            type = ev.get("type", '')

            if type in ("status", "turn", "reset"):
                self._refresh_view()
            elif type == "notice":
                self.notify(
                    ev.get("message", ""),
                    title=ev.get("title", ""),
                    severity=ev.get("severity", "information"),
                )


# ----------------- assembly -----------------
def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        handlers=[TextualHandler()],
    )


def build_orchestrator(settings: Settings, events_q: asyncio.Queue) -> tuple[TurnOrchestrator, Optional[CaptureUnsupported]]:
    capture_error = None
    try:
        capture = SpeechRecognitionCapture(
            language=settings.language,
            listen_timeout=settings.listen_timeout,
            phrase_time_limit=settings.phrase_time_limit,
        )
    except CaptureUnsupported as exc:
        log.warning("event=capture_unsupported error=%s", exc)
        capture, capture_error = None, exc

    chat = ChatCompletionClient(build_chat_flow(build_llm(settings.chat_model, settings.temperature)))
    synthesis = SpeechSynthesisClient(AsyncOpenAI(), model=settings.tts_model, voice=settings.tts_voice)
    orchestrator = TurnOrchestrator(
        events_q,
        capture=capture,
        chat=chat,
        synthesis=synthesis,
        playback=PlaybackController(),
    )
    return orchestrator, capture_error


def build_side_flows(settings: Settings) -> SideFlows:
    http = httpx.AsyncClient(timeout=settings.fetch_timeout, headers={"User-Agent": "voice-assistant/0.1"})
    return SideFlows(
        build_summarize_flow(build_llm(settings.chat_model, 0.2), http, max_chars=settings.max_content_chars),
        build_visual_qa_flow(build_llm(settings.vision_model, 0.2)),
        http=http,
    )


def main():
    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        sys.exit(str(exc))
    if not os.environ.get("OPENAI_API_KEY"):
        sys.exit("OPENAI_API_KEY is not set (environment or .env)")

    configure_logging(settings.log_level)
    orchestrator, capture_error = build_orchestrator(settings, asyncio.Queue())
    app = VoiceAssistantApp(
        orchestrator,
        side_flows=build_side_flows(settings),
        capture_error=capture_error,
    )
    app.run()


if __name__ == "__main__":
    main()
