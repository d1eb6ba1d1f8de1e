from typing import Any, Optional, TypedDict

import httpx
from langchain_core.messages import HumanMessage, SystemMessage
from langgraph.graph import END, START, StateGraph

from voice_assistant.core.domain import SummarizeRequest, SummarizeResponse
from voice_assistant.core.errors import GenerationError
from voice_assistant.core.langgraph_adapter import message_text
from voice_assistant.core.web_content import fetch_page_text, validate_url


SYSTEM_PROMPT = """You are an expert summarizer. You will be provided the content of a web page, and you will summarize it into a concise summary."""


class SummarizeState(TypedDict):
    url: str
    content: Optional[str]
    summary: Optional[str]


def fetch_factory(http: httpx.AsyncClient, max_chars: int):
    async def fetch(state: SummarizeState):
        return {'content': await fetch_page_text(http, state['url'], max_chars=max_chars)}
    return fetch


def summarize_factory(llm):
    async def summarize(state: SummarizeState):
        msgs = [
            SystemMessage(SYSTEM_PROMPT),
            HumanMessage(content=f"Web page content: {state['content']}"),
        ]
        try:
            ai_msg = await llm.ainvoke(msgs)
        except Exception as exc:
            raise GenerationError(f'summarization failed: {exc}') from exc
        return {'summary': message_text(ai_msg)}
    return summarize


def build_summarize_flow(llm: Any, http: httpx.AsyncClient, *, max_chars: int = 20000):
    """fetch -> summarize"""
    graph_builder = StateGraph(SummarizeState)
    graph_builder.add_node('fetch', fetch_factory(http, max_chars))
    graph_builder.add_node('summarize', summarize_factory(llm))

    graph_builder.add_edge(START, 'fetch')
    graph_builder.add_edge('fetch', 'summarize')
    graph_builder.add_edge('summarize', END)

    return graph_builder.compile(name="summarize_web_content")


async def summarize_web_content(flow, request: SummarizeRequest) -> SummarizeResponse:
    url = validate_url(request.get('url', ''))
    state = await flow.ainvoke({'url': url, 'content': None, 'summary': None})
    if not state.get('summary'):
        raise GenerationError('model returned an empty summary')
    return {'summary': state['summary']}
