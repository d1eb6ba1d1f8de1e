"""
Conversions between the flow boundary shapes and langchain messages.
"""
from typing import Any, Iterable, Mapping, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from voice_assistant.core.domain import HistoryEntry


def _extract_text(content: Any) -> Optional[str]:
    if isinstance(content, str):
        return content or None

    # multimodal models may answer with a list of content blocks
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, Mapping) and block.get('type') == 'text':
                parts.append(str(block.get('text') or ''))
        text = ''.join(parts)
        return text or None

    return None


def message_text(msg: Any) -> Optional[str]:
    """Plain text of a chat model reply, stripped; None when there is none."""
    text = _extract_text(getattr(msg, 'content', msg))
    text = text.strip() if text else ''
    return text or None


def history_to_messages(entries: Iterable[HistoryEntry]) -> list[BaseMessage]:
    """Role-tagged history -> chat messages, order preserved."""
    msgs: list[BaseMessage] = []
    for entry in entries:
        role = entry.get('role')
        if role == 'user':
            msgs.append(HumanMessage(content=entry['content']))
        elif role == 'assistant':
            msgs.append(AIMessage(content=entry['content']))
        else:
            raise ValueError(f'unknown role in conversation history: {role!r}')
    return msgs


def last_message_text(state: Mapping[str, Any]) -> Optional[str]:
    msgs = state.get('messages') or []
    return message_text(msgs[-1]) if msgs else None
