"""
Audio resources and `data:` URI handling.
"""
import base64
import binascii
import io
import re
from dataclasses import dataclass

import numpy as np
import soundfile as sf

_DATA_URI_RE = re.compile(r'^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$')


def parse_data_uri(uri: str) -> tuple[str, bytes]:
    """
    Split a `data:<mimetype>;base64,<data>` URI into (mime_type, payload).

    Raises ValueError for anything that does not follow that exact form.
    """
    m = _DATA_URI_RE.match(uri.strip())
    if not m:
        raise ValueError("expected 'data:<mimetype>;base64,<encoded_data>'")
    try:
        payload = base64.b64decode(m.group('data'), validate=False)
    except binascii.Error as exc:
        raise ValueError(f'invalid base64 payload: {exc}') from exc
    if not payload:
        raise ValueError('empty data URI payload')
    return m.group('mime').lower(), payload


def to_data_uri(mime_type: str, payload: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


@dataclass(frozen=True)
class AudioResource:
    """Synthesized speech. Owned by exactly one PlaybackController at a time."""
    mime_type: str
    data: bytes

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.mime_type, self.data)

    @classmethod
    def from_data_uri(cls, uri: str) -> "AudioResource":
        mime, payload = parse_data_uri(uri)
        if not mime.startswith('audio/'):
            raise ValueError(f'not an audio data URI: {mime}')
        return cls(mime, payload)

    def decode(self) -> tuple[np.ndarray, int]:
        """Return (float32 samples, samplerate)."""
        samples, samplerate = sf.read(io.BytesIO(self.data), dtype='float32')
        return samples, samplerate


def encode_wav(samples: np.ndarray, samplerate: int) -> bytes:
    buf = io.BytesIO()
    sf.write(buf, samples, samplerate, format='WAV', subtype='PCM_16')
    return buf.getvalue()
