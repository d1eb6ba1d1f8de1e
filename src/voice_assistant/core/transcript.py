"""
Transcript projection: (history snapshot, status) -> display lines.

Pure functions, no state and no side effects.
"""
from dataclasses import dataclass
from typing import Literal, Sequence

from voice_assistant.core.domain import Status
from voice_assistant.models import Role, Turn

EMPTY_PLACEHOLDER = "Press the mic to start talking."
THINKING_PLACEHOLDER = "…"

_CAPTIONS = {
    Status.IDLE: "Tap to speak",
    Status.LISTENING: "Listening...",
    Status.THINKING: "Thinking...",
    Status.SPEAKING: "Speaking...",
}


@dataclass(frozen=True)
class TranscriptLine:
    kind: Literal['user', 'assistant', 'thinking', 'placeholder']
    text: str


def render_transcript(history: Sequence[Turn], status: Status) -> list[TranscriptLine]:
    lines = [
        TranscriptLine('user' if t.role is Role.USER else 'assistant', t.content)
        for t in history
    ]
    if status is Status.THINKING:
        lines.append(TranscriptLine('thinking', THINKING_PLACEHOLDER))
    if not lines:
        lines.append(TranscriptLine('placeholder', EMPTY_PLACEHOLDER))
    return lines


def status_caption(status: Status) -> str:
    return _CAPTIONS[status]
