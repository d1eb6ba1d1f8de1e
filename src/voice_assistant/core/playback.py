"""
Audio playback: owns at most one AudioResource at a time.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import numpy as np
import sounddevice as sd

from voice_assistant.core.audio import AudioResource
from voice_assistant.core.domain import PlaybackOutcome
from voice_assistant.core.errors import PlaybackError

log = logging.getLogger("voice_assistant.playback")


class AudioOutput(Protocol):
    def play(self, samples: np.ndarray, samplerate: int) -> None:
        """Block until the samples finished playing or `stop()` was called."""
        ...

    def stop(self) -> None: ...


class SoundDeviceOutput:
    """Default output device through PortAudio (`sounddevice`)."""

    def play(self, samples: np.ndarray, samplerate: int) -> None:
        sd.play(samples, samplerate)
        sd.wait()

    def stop(self) -> None:
        sd.stop()


class PlaybackController:
    """
    Plays one resource at a time.

    `play()` resolves COMPLETED when the audio ends on its own and STOPPED when
    it was cut short by `stop()` or superseded by another `play()`. A stopped
    resource never reports COMPLETED.
    """

    def __init__(self, output: Optional[AudioOutput] = None) -> None:
        self.output = output if output is not None else SoundDeviceOutput()
        self._current: Optional[AudioResource] = None
        self._done: Optional[asyncio.Future[PlaybackOutcome]] = None
        self._workers: set[asyncio.Task] = set()

    @property
    def current(self) -> Optional[AudioResource]:
        return self._current

    @property
    def playing(self) -> bool:
        return self._done is not None and not self._done.done()

    async def play(self, resource: AudioResource) -> PlaybackOutcome:
        self.stop()

        try:
            samples, samplerate = resource.decode()
        except (RuntimeError, ValueError) as exc:
            raise PlaybackError(f'cannot decode {resource.mime_type} audio: {exc}') from exc

        done: asyncio.Future[PlaybackOutcome] = asyncio.get_running_loop().create_future()
        self._done = done
        self._current = resource
        worker = asyncio.create_task(self._drive(done, samples, samplerate))
        self._workers.add(worker)
        worker.add_done_callback(self._workers.discard)
        log.info("event=playback_started mime=%s bytes=%d", resource.mime_type, len(resource.data))

        try:
            return await done
        except asyncio.CancelledError:
            if self._done is done:
                self._release()
                self.output.stop()
            raise

    def stop(self) -> bool:
        """Stop the current resource. Returns False when nothing was playing."""
        done = self._done
        if done is None or done.done():
            return False
        self._release()
        self.output.stop()
        done.set_result(PlaybackOutcome.STOPPED)
        log.info("event=playback_stopped")
        return True

    async def _drive(self, done: "asyncio.Future[PlaybackOutcome]", samples: np.ndarray, samplerate: int) -> None:
        try:
            await asyncio.to_thread(self.output.play, samples, samplerate)
        except Exception as exc:
            if not done.done():
                self._release()
                done.set_exception(PlaybackError(str(exc) or type(exc).__name__))
            else:
                log.debug("event=playback_error_after_stop error=%s", exc)
            return

        if not done.done():
            self._release()
            done.set_result(PlaybackOutcome.COMPLETED)
            log.info("event=playback_completed")

    def _release(self) -> None:
        self._current = None
        self._done = None
