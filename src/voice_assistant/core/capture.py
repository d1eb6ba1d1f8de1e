"""
Single-utterance speech capture.

Every activation resolves exactly one terminal `CaptureOutcome`: a transcript,
an empty result, or an error. `deactivate()` counts as terminal, so anything the
recognizer produces after it is dropped.
"""
from __future__ import annotations

import asyncio
import errno
import logging
import threading
from typing import Any, Optional, Protocol

import speech_recognition as sr

from voice_assistant.core.domain import CaptureOutcome
from voice_assistant.core.errors import CaptureOther, CapturePermissionDenied, CaptureUnsupported

log = logging.getLogger("voice_assistant.capture")

_ACCESS_ERRNOS = {errno.EACCES, errno.EPERM}


class SpeechCapture(Protocol):
    """What the orchestrator needs from a capture adapter."""

    def activate(self) -> "asyncio.Future[CaptureOutcome]": ...

    def deactivate(self) -> None: ...


class ListenCancelled(Exception):
    """The activation was deactivated while the microphone was open."""


class _CancellableStream:
    """Wraps a microphone stream so a pending `listen()` aborts on the next read."""

    def __init__(self, stream, cancelled: threading.Event) -> None:
        self._stream = stream
        self._cancelled = cancelled

    def read(self, size):
        if self._cancelled.is_set():
            raise ListenCancelled()
        return self._stream.read(size)

    def close(self):
        self._stream.close()


class SpeechRecognitionCapture:
    """
    Capture adapter over the `speech_recognition` package.

    One activation = one `listen()` on the microphone followed by one
    recognition request; the blocking part runs in a worker thread so the event
    loop (and the UI) stays responsive. Options mirror a browser recognizer
    configured with `continuous=false, interimResults=false, lang=<locale>`.

    `deactivate()` closes the activation: the open `listen()` stops at its next
    audio read and nothing it heard is sent for recognition.

    Raises CaptureUnsupported at construction when there is no microphone
    capability (PyAudio missing or no input device).
    """

    def __init__(
        self,
        *,
        language: str = 'en-US',
        listen_timeout: float = 5.0,
        phrase_time_limit: float = 15.0,
        recognizer: Optional[Any] = None,
        microphone: Optional[Any] = None,
    ) -> None:
        self.language = language
        self.listen_timeout = listen_timeout
        self.phrase_time_limit = phrase_time_limit
        self.recognizer = recognizer if recognizer is not None else sr.Recognizer()
        self.microphone = microphone if microphone is not None else self._open_microphone()

        self._pending: Optional[asyncio.Future[CaptureOutcome]] = None
        self._cancelled: Optional[threading.Event] = None
        self._worker: Optional[asyncio.Task] = None

    @staticmethod
    def _open_microphone() -> sr.Microphone:
        try:
            names = sr.Microphone.list_microphone_names()
        except (AttributeError, OSError) as exc:
            # speech_recognition raises AttributeError when PyAudio is absent
            raise CaptureUnsupported(f'speech capture is not available: {exc}') from exc
        if not names:
            raise CaptureUnsupported('no audio input device found')
        return sr.Microphone()

    @property
    def active(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def activate(self) -> "asyncio.Future[CaptureOutcome]":
        if self.active:
            raise RuntimeError('capture is already active')

        fut: asyncio.Future[CaptureOutcome] = asyncio.get_running_loop().create_future()
        cancelled = threading.Event()
        self._pending, self._cancelled = fut, cancelled
        self._worker = asyncio.create_task(self._run(fut, cancelled, self._worker))
        log.debug("event=capture_activated language=%s", self.language)
        return fut

    async def listen(self) -> CaptureOutcome:
        return await self.activate()

    def deactivate(self) -> None:
        fut = self._pending
        if fut is None or fut.done():
            return
        self._cancelled.set()
        fut.set_result(CaptureOutcome.empty())
        log.info("event=capture_deactivated")

    async def _run(
        self,
        fut: "asyncio.Future[CaptureOutcome]",
        cancelled: threading.Event,
        previous: Optional[asyncio.Task],
    ) -> None:
        # the microphone can only be opened by one listener at a time; a
        # deactivated listener lets go at its next read
        if previous is not None and not previous.done():
            await previous
        if fut.done():
            return

        outcome = await self._capture(cancelled)
        if fut.done():
            log.debug("event=capture_late_result_discarded kind=%s", outcome.kind.value)
            return
        fut.set_result(outcome)

    async def _capture(self, cancelled: threading.Event) -> CaptureOutcome:
        try:
            text = await asyncio.to_thread(self._capture_blocking, cancelled)
        except ListenCancelled:
            log.debug("event=capture_listen_cancelled")
            return CaptureOutcome.empty()
        except sr.WaitTimeoutError:
            log.info("event=capture_no_speech")
            return CaptureOutcome.empty()
        except sr.UnknownValueError:
            log.info("event=capture_unintelligible")
            return CaptureOutcome.empty()
        except sr.RequestError as exc:
            log.warning("event=capture_request_error error=%s", exc)
            return CaptureOutcome.failed(CaptureOther(str(exc)))
        except OSError as exc:
            log.warning("event=capture_device_error errno=%s error=%s", exc.errno, exc)
            if isinstance(exc, PermissionError) or exc.errno in _ACCESS_ERRNOS:
                return CaptureOutcome.failed(CapturePermissionDenied(str(exc)))
            return CaptureOutcome.failed(CaptureOther(str(exc)))
        except Exception as exc:
            log.exception("event=capture_failed")
            return CaptureOutcome.failed(CaptureOther(str(exc) or type(exc).__name__))

        text = (text or '').strip()
        if not text:
            return CaptureOutcome.empty()
        return CaptureOutcome.transcript(text)

    def _capture_blocking(self, cancelled: threading.Event) -> str:
        with self.microphone as source:
            stream = getattr(source, 'stream', None)
            if stream is not None:
                source.stream = _CancellableStream(stream, cancelled)
            try:
                audio = self.recognizer.listen(
                    source,
                    timeout=self.listen_timeout,
                    phrase_time_limit=self.phrase_time_limit,
                )
            finally:
                if stream is not None:
                    source.stream = stream
        if cancelled.is_set():
            raise ListenCancelled()
        return self.recognizer.recognize_google(audio, language=self.language)
