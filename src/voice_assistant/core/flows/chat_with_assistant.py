from typing import Annotated, Any, TypedDict

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from langgraph.graph import END, START, StateGraph
from langgraph.graph.message import add_messages

from voice_assistant.core.domain import ChatRequest, ChatResponse
from voice_assistant.core.errors import GenerationError
from voice_assistant.core.langgraph_adapter import history_to_messages, last_message_text


SYSTEM_PROMPT = """You are a helpful AI assistant. Your goal is to assist the user with their questions and tasks.
Your replies are read aloud, so answer in plain conversational sentences without markdown, lists or code blocks.
"""


class ChatState(TypedDict):
    messages: Annotated[list[BaseMessage], add_messages]


def build_llm(model: str, temperature: float = 0.7) -> ChatOpenAI:
    return ChatOpenAI(model=model, temperature=temperature)


def assistant_factory(llm):
    async def assistant(state: ChatState):
        msgs = [SystemMessage(SYSTEM_PROMPT), *state["messages"]]
        ai_msg = await llm.ainvoke(msgs)
        return {'messages': [ai_msg]}
    return assistant


def build_chat_flow(llm: Any):
    """
    One-node graph: system prompt + history + latest user message -> one reply.
    No checkpointer, the orchestrator owns the conversation history.
    """
    graph_builder = StateGraph(ChatState)
    graph_builder.add_node('assistant', assistant_factory(llm))

    graph_builder.add_edge(START, 'assistant')
    graph_builder.add_edge('assistant', END)

    return graph_builder.compile(name="chat_with_assistant")


async def chat_with_assistant(flow, request: ChatRequest) -> ChatResponse:
    msgs = history_to_messages(request.get('conversationHistory') or [])
    msgs.append(HumanMessage(content=request['message']))

    state = await flow.ainvoke({'messages': msgs})
    reply = last_message_text(state)
    if not reply:
        raise GenerationError('model returned an empty reply')
    return {'response': reply}
