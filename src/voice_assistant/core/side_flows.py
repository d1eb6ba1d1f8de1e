"""
Visual question answering and web summarization, reachable from the UI's
command input. Results are side notes, never conversation turns.
"""
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional

import httpx

from voice_assistant.core.audio import to_data_uri
from voice_assistant.core.errors import FlowInputError
from voice_assistant.core.flows import summarize_web_content, visual_question_answer

log = logging.getLogger("voice_assistant.side_flows")


def image_data_uri(path: str | Path) -> str:
    """Read an image file into a `data:<mimetype>;base64,...` URI."""
    p = Path(path).expanduser()
    mime, _ = mimetypes.guess_type(p.name)
    if not mime or not mime.startswith('image/'):
        raise FlowInputError(f'{p} does not look like an image file')
    try:
        payload = p.read_bytes()
    except OSError as exc:
        raise FlowInputError(f'cannot read {p}: {exc}') from exc
    return to_data_uri(mime, payload)


class SideFlows:
    def __init__(self, summarize_flow: Any, visual_qa_flow: Any, *, http: Optional[httpx.AsyncClient] = None) -> None:
        self.summarize_flow = summarize_flow
        self.visual_qa_flow = visual_qa_flow
        self.http = http

    async def aclose(self) -> None:
        if self.http is not None:
            await self.http.aclose()

    async def summarize(self, url: str) -> str:
        log.info("event=summarize_requested url=%s", url)
        result = await summarize_web_content(self.summarize_flow, {'url': url})
        return result['summary']

    async def ask_about_image(self, path: str, question: str) -> str:
        log.info("event=visual_question_requested path=%s", path)
        result = await visual_question_answer(self.visual_qa_flow, {
            'question': question,
            'photoDataUri': image_data_uri(path),
        })
        return result['answer']
