"""
Turn orchestration: capture -> chat completion -> synthesis -> playback.

One turn runs at a time. Every turn is a straight sequence of awaited steps,
and every step moves the phase through the TRANSITIONS table, so an event that
is not valid in the current phase raises IllegalTransition instead of leaving
the status and the pipeline out of sync.
"""
import asyncio
import logging
from enum import Enum, auto
from typing import Optional, Protocol, Sequence

from voice_assistant.core.audio import AudioResource
from voice_assistant.core.capture import SpeechCapture
from voice_assistant.core.domain import CaptureKind, CaptureOutcome, PlaybackOutcome, Status, UiEvent
from voice_assistant.core.errors import CaptureError, GenerationError, IllegalTransition, PlaybackError, SynthesisError
from voice_assistant.core.history import HistoryStore
from voice_assistant.models import Turn

log = logging.getLogger("voice_assistant.orchestrator")

FALLBACK_REPLY = "Sorry, I'm having trouble connecting. Please try again later."

# capture error kinds the user gets told about; no-speech stays silent
_NOTIFIED_CAPTURE_KINDS = {'permission-denied', 'other'}


class ChatCompleter(Protocol):
    async def complete(self, message: str, prior_history: Sequence[Turn]) -> str: ...


class SpeechSynthesizer(Protocol):
    async def synthesize(self, text: str) -> AudioResource: ...


class AudioPlayer(Protocol):
    async def play(self, resource: AudioResource) -> PlaybackOutcome: ...

    def stop(self) -> bool: ...


class Phase(Enum):
    IDLE = auto()
    LISTENING = auto()
    THINKING = auto()
    SPEAKING_PENDING = auto()
    SPEAKING = auto()

    @property
    def status(self) -> Status:
        return _PUBLIC_STATUS[self]


_PUBLIC_STATUS = {
    Phase.IDLE: Status.IDLE,
    Phase.LISTENING: Status.LISTENING,
    Phase.THINKING: Status.THINKING,
    # audio is not ready yet, the UI keeps showing "thinking"
    Phase.SPEAKING_PENDING: Status.THINKING,
    Phase.SPEAKING: Status.SPEAKING,
}


class Trigger(Enum):
    CAPTURE_STARTED = auto()
    TRANSCRIPT = auto()
    CAPTURE_EMPTY = auto()
    CAPTURE_FAILED = auto()
    CAPTURE_STOPPED = auto()
    REPLY_READY = auto()
    GENERATION_FAILED = auto()
    AUDIO_READY = auto()
    SYNTHESIS_FAILED = auto()
    PLAYBACK_FAILED = auto()
    PLAYBACK_ENDED = auto()


TRANSITIONS: dict[tuple[Phase, Trigger], Phase] = {
    (Phase.IDLE, Trigger.CAPTURE_STARTED): Phase.LISTENING,
    (Phase.LISTENING, Trigger.TRANSCRIPT): Phase.THINKING,
    (Phase.LISTENING, Trigger.CAPTURE_EMPTY): Phase.IDLE,
    (Phase.LISTENING, Trigger.CAPTURE_FAILED): Phase.IDLE,
    (Phase.LISTENING, Trigger.CAPTURE_STOPPED): Phase.IDLE,
    (Phase.THINKING, Trigger.REPLY_READY): Phase.SPEAKING_PENDING,
    (Phase.THINKING, Trigger.GENERATION_FAILED): Phase.IDLE,
    (Phase.SPEAKING_PENDING, Trigger.AUDIO_READY): Phase.SPEAKING,
    (Phase.SPEAKING_PENDING, Trigger.SYNTHESIS_FAILED): Phase.IDLE,
    (Phase.SPEAKING, Trigger.PLAYBACK_FAILED): Phase.IDLE,
    (Phase.SPEAKING, Trigger.PLAYBACK_ENDED): Phase.IDLE,
}


class TurnOrchestrator:
    def __init__(
        self,
        events_q: asyncio.Queue,
        *,
        capture: Optional[SpeechCapture],
        chat: ChatCompleter,
        synthesis: SpeechSynthesizer,
        playback: AudioPlayer,
        history: Optional[HistoryStore] = None,
    ) -> None:
        self.events_q = events_q
        self.capture = capture
        self.chat = chat
        self.synthesis = synthesis
        self.playback = playback
        self.history = history if history is not None else HistoryStore()

        self._phase = Phase.IDLE
        self._stop_requested = False

    # ----------------- state -----------------
    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def status(self) -> Status:
        return self._phase.status

    @property
    def capture_available(self) -> bool:
        return self.capture is not None

    def _emit(self, ev: UiEvent) -> None:
        self.events_q.put_nowait(ev)

    def _fire(self, trigger: Trigger) -> None:
        try:
            target = TRANSITIONS[(self._phase, trigger)]
        except KeyError:
            raise IllegalTransition(self._phase, trigger) from None

        before = self._phase.status
        log.debug("event=transition from=%s trigger=%s to=%s", self._phase.name, trigger.name, target.name)
        self._phase = target
        if target.status is not before:
            self._emit({'type': 'status', 'status': target.status})

    def _append(self, turn: Turn) -> None:
        self.history.append(turn)
        self._emit({'type': 'turn', 'turn': turn})

    def _notify(self, severity: str, title: str, message: str) -> None:
        self._emit({'type': 'notice', 'severity': severity, 'title': title, 'message': message})

    # ----------------- commands -----------------
    async def run_turn(self) -> bool:
        """
        Run one complete turn. Returns False without doing anything when the
        orchestrator is not idle or there is no capture capability.
        """
        if self.capture is None:
            log.info("event=turn_rejected reason=capture_unavailable")
            return False
        if self._phase is not Phase.IDLE:
            log.info("event=turn_rejected phase=%s", self._phase.name)
            return False

        # no await between the idle check and leaving IDLE
        self._fire(Trigger.CAPTURE_STARTED)
        self._stop_requested = False
        try:
            pending = self.capture.activate()
            await self._pipeline(pending)
        finally:
            if self._phase is not Phase.IDLE:
                log.error("event=turn_aborted phase=%s", self._phase.name)
                self._force_idle()
        return True

    def deactivate_capture(self) -> bool:
        if self._phase is not Phase.LISTENING or self.capture is None:
            return False
        self._stop_requested = True
        self.capture.deactivate()
        return True

    def stop_playback(self) -> bool:
        if self._phase is not Phase.SPEAKING:
            return False
        return self.playback.stop()

    def reset(self) -> bool:
        """Clear the conversation. Only allowed between turns."""
        if self._phase is not Phase.IDLE:
            return False
        self.history.clear()
        self._emit({'type': 'reset'})
        log.info("event=session_reset")
        return True

    # ----------------- pipeline -----------------
    async def _pipeline(self, pending: "asyncio.Future[CaptureOutcome]") -> None:
        outcome = await pending

        if outcome.kind is CaptureKind.EMPTY:
            self._fire(Trigger.CAPTURE_STOPPED if self._stop_requested else Trigger.CAPTURE_EMPTY)
            return
        if outcome.kind is CaptureKind.ERROR:
            self._capture_failed(outcome.error)
            return

        message = outcome.text
        prior = self.history.snapshot()
        self._append(Turn.user(message))
        self._fire(Trigger.TRANSCRIPT)

        try:
            reply = await self.chat.complete(message, prior)
        except GenerationError as exc:
            log.warning("event=generation_failed error=%s", exc)
            self._append(Turn.assistant(FALLBACK_REPLY))
            self._fire(Trigger.GENERATION_FAILED)
            return

        self._append(Turn.assistant(reply))
        self._fire(Trigger.REPLY_READY)

        try:
            resource = await self.synthesis.synthesize(reply)
        except SynthesisError as exc:
            log.warning("event=synthesis_failed error=%s", exc)
            self._notify('warning', 'Speech unavailable', 'The reply could not be spoken aloud.')
            self._fire(Trigger.SYNTHESIS_FAILED)
            return

        self._fire(Trigger.AUDIO_READY)
        try:
            result = await self.playback.play(resource)
        except PlaybackError as exc:
            log.error("event=playback_failed error=%s", exc)
            self._notify('warning', 'Audio playback failed', str(exc))
            self._fire(Trigger.PLAYBACK_FAILED)
            return

        log.info("event=turn_done playback=%s", result.value)
        self._fire(Trigger.PLAYBACK_ENDED)

    def _capture_failed(self, error: Optional[Exception]) -> None:
        kind = error.kind if isinstance(error, CaptureError) else 'other'
        if kind in _NOTIFIED_CAPTURE_KINDS:
            log.warning("event=capture_error kind=%s error=%s", kind, error)
            self._notify(
                'error',
                'Speech Recognition Error',
                f'An error occurred: {kind}. Please ensure you have given microphone permissions.',
            )
        else:
            log.info("event=capture_error_silent kind=%s", kind)
        self._fire(Trigger.CAPTURE_FAILED)

    def _force_idle(self) -> None:
        before = self._phase.status
        self._phase = Phase.IDLE
        if self.capture is not None:
            self.capture.deactivate()
        self.playback.stop()
        if before is not Status.IDLE:
            self._emit({'type': 'status', 'status': Status.IDLE})
