"""
Text -> speech through the OpenAI speech endpoint.

Long replies are split into chunks under the endpoint's input limit; every
chunk is synthesized as WAV and the decoded samples are joined into a single
WAV payload, so callers always get one `audioDataUri`.
"""
import logging
import re

import numpy as np

from voice_assistant.core.audio import AudioResource, encode_wav, to_data_uri
from voice_assistant.core.domain import SpeechRequest, SpeechResponse
from voice_assistant.core.errors import SynthesisError

log = logging.getLogger("voice_assistant.tts")

MAX_INPUT_CHARS = 4096
_SENTENCE_END_RE = re.compile(r'(?<=[.!?])\s+')


def split_for_speech(text: str, limit: int = MAX_INPUT_CHARS) -> list[str]:
    """Split on sentence ends, then on words, so every chunk is <= limit."""
    text = text.strip()
    if len(text) <= limit:
        return [text] if text else []

    chunks: list[str] = []
    current = ''
    for sentence in _SENTENCE_END_RE.split(text):
        pieces = [sentence]
        if len(sentence) > limit:
            pieces = _split_words(sentence, limit)
        for piece in pieces:
            candidate = f'{current} {piece}' if current else piece
            if len(candidate) <= limit:
                current = candidate
            else:
                chunks.append(current)
                current = piece
    if current:
        chunks.append(current)
    return chunks


def _split_words(sentence: str, limit: int) -> list[str]:
    out: list[str] = []
    current = ''
    for word in sentence.split():
        while len(word) > limit:
            if current:
                out.append(current)
                current = ''
            out.append(word[:limit])
            word = word[limit:]
        candidate = f'{current} {word}' if current else word
        if len(candidate) <= limit:
            current = candidate
        else:
            out.append(current)
            current = word
    if current:
        out.append(current)
    return out


async def _speak_chunk(client, chunk: str, *, model: str, voice: str) -> bytes:
    resp = await client.audio.speech.create(
        model=model,
        voice=voice,
        input=chunk,
        response_format='wav',
    )
    return resp.content


async def text_to_speech(
    client,
    request: SpeechRequest,
    *,
    model: str = 'tts-1',
    voice: str = 'alloy',
    max_chars: int = MAX_INPUT_CHARS,
) -> SpeechResponse:
    chunks = split_for_speech(request['text'], max_chars)
    if not chunks:
        raise SynthesisError('nothing to synthesize')

    payloads = [await _speak_chunk(client, chunk, model=model, voice=voice) for chunk in chunks]
    log.info("event=tts_done chunks=%d chars=%d", len(chunks), len(request['text']))

    if len(payloads) == 1:
        return {'audioDataUri': to_data_uri('audio/wav', payloads[0])}

    decoded = [AudioResource('audio/wav', p).decode() for p in payloads]
    rates = {rate for _, rate in decoded}
    if len(rates) != 1:
        raise SynthesisError(f'chunks came back with different sample rates: {sorted(rates)}')
    samples = np.concatenate([s for s, _ in decoded])
    return {'audioDataUri': to_data_uri('audio/wav', encode_wav(samples, rates.pop()))}
