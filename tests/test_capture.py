import asyncio
import queue
import threading
import time

import pytest
import speech_recognition as sr

from voice_assistant.core.capture import SpeechRecognitionCapture
from voice_assistant.core.domain import CaptureKind
from voice_assistant.core.errors import CaptureUnsupported


class FakeStream:
    def __init__(self, chunks):
        self.chunks = chunks

    def read(self, size):
        try:
            return self.chunks.get(timeout=0.01)
        except queue.Empty:
            return b''

    def close(self):
        pass


class FakeMicrophone:
    """Like sr.Microphone: the stream exists only inside the context manager."""

    def __init__(self):
        self.chunks = queue.Queue()
        self.stream = None

    def say(self, words):
        self.chunks.put(words.encode())

    def __enter__(self):
        self.stream = FakeStream(self.chunks)
        return self

    def __exit__(self, *exc):
        self.stream.close()
        self.stream = None
        return False


class FakeRecognizer:
    def __init__(self, text='hello', listen_error=None, recognize_error=None, gate=None):
        self.text = text
        self.listen_error = listen_error
        self.recognize_error = recognize_error
        self.gate = gate
        self.listen_kwargs = None
        self.language = None
        self.recognized = []

    def listen(self, source, **kwargs):
        self.listen_kwargs = kwargs
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.listen_error is not None:
            raise self.listen_error
        return b'audio'

    def recognize_google(self, audio, language=None):
        self.language = language
        self.recognized.append(audio)
        if self.recognize_error is not None:
            raise self.recognize_error
        return self.text


class StreamingRecognizer(FakeRecognizer):
    """Reads the microphone stream until a phrase arrives, or times out."""

    def listen(self, source, timeout=None, **kwargs):
        self.listen_kwargs = dict(timeout=timeout, **kwargs)
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            chunk = source.stream.read(1024)
            if chunk:
                return chunk
        raise sr.WaitTimeoutError('listening timed out while waiting for phrase to start')

    def recognize_google(self, audio, language=None):
        self.language = language
        self.recognized.append(audio)
        return audio.decode()


def make_capture(recognizer, microphone=None):
    return SpeechRecognitionCapture(
        language='en-US',
        listen_timeout=3,
        phrase_time_limit=9,
        recognizer=recognizer,
        microphone=microphone if microphone is not None else FakeMicrophone(),
    )


async def test_transcript_is_trimmed_and_options_are_forwarded():
    recognizer = FakeRecognizer(text="  What's the weather?  ")
    capture = make_capture(recognizer)

    outcome = await capture.listen()

    assert outcome.kind is CaptureKind.TRANSCRIPT
    assert outcome.text == "What's the weather?"
    assert recognizer.listen_kwargs == {'timeout': 3, 'phrase_time_limit': 9}
    assert recognizer.language == 'en-US'
    assert capture.active is False


async def test_speech_on_the_microphone_is_recognized():
    mic = FakeMicrophone()
    capture = make_capture(StreamingRecognizer(), mic)

    fut = capture.activate()
    mic.say("turn on the lights")

    outcome = await fut
    assert outcome.kind is CaptureKind.TRANSCRIPT
    assert outcome.text == "turn on the lights"
    assert mic.stream is None


@pytest.mark.parametrize('recognizer', [
    FakeRecognizer(listen_error=sr.WaitTimeoutError('listening timed out')),
    FakeRecognizer(recognize_error=sr.UnknownValueError()),
    FakeRecognizer(text='   '),
])
async def test_nothing_heard_is_empty(recognizer):
    outcome = await make_capture(recognizer).listen()

    assert outcome.kind is CaptureKind.EMPTY
    assert outcome.error is None


@pytest.mark.parametrize('recognizer, kind', [
    (FakeRecognizer(recognize_error=sr.RequestError('recognition service down')), 'other'),
    (FakeRecognizer(listen_error=OSError(-9997, 'Invalid sample rate')), 'other'),
    (FakeRecognizer(listen_error=OSError(-9996, 'Invalid input device (no default output device)')), 'other'),
    (FakeRecognizer(listen_error=PermissionError(13, 'Permission denied')), 'permission-denied'),
    (FakeRecognizer(listen_error=AssertionError('already inside a context manager')), 'other'),
])
async def test_failures_become_error_outcomes(recognizer, kind):
    outcome = await make_capture(recognizer).listen()

    assert outcome.kind is CaptureKind.ERROR
    assert outcome.error.kind == kind


async def test_deactivate_is_terminal_and_nothing_is_recognized_afterwards():
    gate = threading.Event()
    recognizer = FakeRecognizer(text='too late', gate=gate)
    capture = make_capture(recognizer)
    try:
        fut = capture.activate()
        assert capture.active
        capture.deactivate()
        outcome = await fut
        assert outcome.kind is CaptureKind.EMPTY
    finally:
        gate.set()

    await capture._worker
    assert fut.result().kind is CaptureKind.EMPTY
    assert recognizer.recognized == []

    # deactivating again is a no-op
    capture.deactivate()
    assert fut.result().kind is CaptureKind.EMPTY


async def test_deactivate_releases_the_microphone_for_the_next_activation():
    mic = FakeMicrophone()
    recognizer = StreamingRecognizer()
    capture = make_capture(recognizer, mic)

    first = capture.activate()
    await asyncio.sleep(0.05)
    capture.deactivate()
    assert (await first).kind is CaptureKind.EMPTY

    second = capture.activate()
    mic.say("what time is it")

    outcome = await asyncio.wait_for(second, timeout=2)
    assert outcome.kind is CaptureKind.TRANSCRIPT
    assert outcome.text == "what time is it"
    assert recognizer.recognized == [b"what time is it"]


async def test_activate_twice_is_refused():
    gate = threading.Event()
    capture = make_capture(FakeRecognizer(gate=gate))
    try:
        capture.activate()
        with pytest.raises(RuntimeError):
            capture.activate()
    finally:
        capture.deactivate()
        gate.set()
    await capture._worker


def test_missing_audio_backend_is_unsupported(monkeypatch):
    def no_pyaudio():
        raise AttributeError('Could not find PyAudio; check installation')

    monkeypatch.setattr(sr.Microphone, 'list_microphone_names', staticmethod(no_pyaudio))

    with pytest.raises(CaptureUnsupported) as info:
        SpeechRecognitionCapture(recognizer=FakeRecognizer())
    assert info.value.kind == 'unsupported'


def test_no_input_device_is_unsupported(monkeypatch):
    monkeypatch.setattr(sr.Microphone, 'list_microphone_names', staticmethod(lambda: []))

    with pytest.raises(CaptureUnsupported):
        SpeechRecognitionCapture(recognizer=FakeRecognizer())
