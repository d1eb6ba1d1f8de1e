"""
Chat completion and speech synthesis clients used by the orchestrator.

Both wrap a backend flow and translate every backend failure into one error
type. Neither retries.
"""
import logging
from typing import Any, Sequence

from voice_assistant.core.audio import AudioResource
from voice_assistant.core.domain import ChatRequest
from voice_assistant.core.errors import GenerationError, SynthesisError
from voice_assistant.core.flows import chat_with_assistant, text_to_speech
from voice_assistant.core.flows.text_to_speech import MAX_INPUT_CHARS
from voice_assistant.models import Turn

log = logging.getLogger("voice_assistant.clients")


def build_chat_request(message: str, prior_history: Sequence[Turn]) -> ChatRequest:
    request: ChatRequest = {'message': message}
    if prior_history:
        request['conversationHistory'] = [t.to_payload() for t in prior_history]
    return request


class ChatCompletionClient:
    def __init__(self, flow: Any) -> None:
        self.flow = flow

    async def complete(self, message: str, prior_history: Sequence[Turn]) -> str:
        request = build_chat_request(message, prior_history)
        try:
            result = await chat_with_assistant(self.flow, request)
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f'chat completion failed: {exc}') from exc
        log.info("event=chat_completed history=%d reply_chars=%d", len(prior_history), len(result['response']))
        return result['response']


class SpeechSynthesisClient:
    def __init__(self, client: Any, *, model: str = 'tts-1', voice: str = 'alloy',
                 max_chunk_chars: int = MAX_INPUT_CHARS) -> None:
        self.client = client
        self.model = model
        self.voice = voice
        self.max_chunk_chars = max_chunk_chars

    async def synthesize(self, text: str) -> AudioResource:
        try:
            result = await text_to_speech(
                self.client,
                {'text': text},
                model=self.model,
                voice=self.voice,
                max_chars=self.max_chunk_chars,
            )
            return AudioResource.from_data_uri(result['audioDataUri'])
        except SynthesisError:
            raise
        except Exception as exc:
            raise SynthesisError(f'speech synthesis failed: {exc}') from exc
