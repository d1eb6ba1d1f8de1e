"""
Orchestrator-facing data domain: status, capture outcomes, UI events and the
request/response shapes of the backend flows.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, TypedDict, Union

from voice_assistant.models import Turn


class Status(str, Enum):
    IDLE = 'idle'
    LISTENING = 'listening'
    THINKING = 'thinking'
    SPEAKING = 'speaking'


# --------- capture outcomes ---------

class CaptureKind(Enum):
    TRANSCRIPT = 'transcript'
    EMPTY = 'empty'
    ERROR = 'error'


@dataclass(frozen=True)
class CaptureOutcome:
    """The single terminal event of one capture activation."""
    kind: CaptureKind
    text: str = ''
    error: Optional[Exception] = None

    @classmethod
    def transcript(cls, text: str) -> "CaptureOutcome":
        return cls(CaptureKind.TRANSCRIPT, text=text)

    @classmethod
    def empty(cls) -> "CaptureOutcome":
        return cls(CaptureKind.EMPTY)

    @classmethod
    def failed(cls, error: Exception) -> "CaptureOutcome":
        return cls(CaptureKind.ERROR, error=error)


class PlaybackOutcome(Enum):
    COMPLETED = 'completed'
    STOPPED = 'stopped'


# --------- UI events (orchestrator -> app pump) ---------

class StatusEvent(TypedDict):
    type: Literal['status']
    status: Status


class TurnEvent(TypedDict):
    type: Literal['turn']
    turn: Turn


class NoticeEvent(TypedDict, total=False):
    type: Literal['notice']
    severity: Literal['information', 'warning', 'error']
    title: str
    message: str


class ResetEvent(TypedDict):
    type: Literal['reset']


UiEvent = Union[StatusEvent, TurnEvent, NoticeEvent, ResetEvent]


# --------- backend flow boundaries ---------

class HistoryEntry(TypedDict):
    role: Literal['user', 'assistant']
    content: str


class ChatRequest(TypedDict, total=False):
    message: str
    conversationHistory: list[HistoryEntry]


class ChatResponse(TypedDict):
    response: str


class SpeechRequest(TypedDict):
    text: str


class SpeechResponse(TypedDict):
    audioDataUri: str


class VisualQuestionRequest(TypedDict):
    question: str
    photoDataUri: str


class VisualQuestionResponse(TypedDict):
    answer: str


class SummarizeRequest(TypedDict):
    url: str


class SummarizeResponse(TypedDict):
    summary: str
