"""
Backend flows: one request shape in, one response shape out.
"""
from .chat_with_assistant import build_chat_flow, build_llm, chat_with_assistant
from .summarize_web_content import build_summarize_flow, summarize_web_content
from .text_to_speech import split_for_speech, text_to_speech
from .visual_question_answer import build_visual_qa_flow, visual_question_answer

__all__ = [
    "build_chat_flow",
    "build_llm",
    "build_summarize_flow",
    "build_visual_qa_flow",
    "chat_with_assistant",
    "split_for_speech",
    "summarize_web_content",
    "text_to_speech",
    "visual_question_answer",
]
