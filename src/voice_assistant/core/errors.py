"""
Error taxonomy shared by the orchestrator, its clients and the sibling flows.
"""


class VoiceAssistantError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(VoiceAssistantError):
    pass


class CaptureError(VoiceAssistantError):
    """Speech capture failed. `kind` is one of the capture error kinds."""

    kind = 'other'

    def __init__(self, message: str = '', *, kind: str | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        if kind is not None:
            self.kind = kind


class CaptureUnsupported(CaptureError):
    """No microphone / recognition capability. Detected once at construction."""

    kind = 'unsupported'


class CapturePermissionDenied(CaptureError):
    kind = 'permission-denied'


class CaptureOther(CaptureError):
    kind = 'other'


class GenerationError(VoiceAssistantError):
    """The language model backend failed or returned nothing usable."""


class SynthesisError(VoiceAssistantError):
    """The speech synthesis backend failed."""


class PlaybackError(VoiceAssistantError):
    """An audio resource could not start playing."""


class FlowInputError(VoiceAssistantError, ValueError):
    """A flow request did not match its input contract."""


class ContentFetchError(VoiceAssistantError):
    """A web page could not be fetched or yielded no readable text."""


class IllegalTransition(VoiceAssistantError):
    def __init__(self, phase, event) -> None:
        super().__init__(f'no transition from {phase.name} on {event.name}')
        self.phase = phase
        self.event = event
