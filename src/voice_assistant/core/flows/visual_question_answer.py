from typing import Any, Optional, TypedDict

from langchain_core.messages import HumanMessage
from langgraph.graph import END, START, StateGraph

from voice_assistant.core.audio import parse_data_uri
from voice_assistant.core.domain import VisualQuestionRequest, VisualQuestionResponse
from voice_assistant.core.errors import FlowInputError, GenerationError
from voice_assistant.core.langgraph_adapter import message_text


PROMPT = """Based on the provided image and question, provide a concise answer.

Question: {question}"""


class VisualQAState(TypedDict):
    question: str
    photo_data_uri: str
    answer: Optional[str]


def answer_factory(llm):
    async def answer(state: VisualQAState):
        msg = HumanMessage(content=[
            {'type': 'text', 'text': PROMPT.format(question=state['question'])},
            {'type': 'image_url', 'image_url': {'url': state['photo_data_uri']}},
        ])
        ai_msg = await llm.ainvoke([msg])
        return {'answer': message_text(ai_msg)}
    return answer


def build_visual_qa_flow(llm: Any):
    graph_builder = StateGraph(VisualQAState)
    graph_builder.add_node('answer', answer_factory(llm))
    graph_builder.add_edge(START, 'answer')
    graph_builder.add_edge('answer', END)
    return graph_builder.compile(name="visual_question_answer")


def validate_request(request: VisualQuestionRequest) -> None:
    question = (request.get('question') or '').strip()
    if not question:
        raise FlowInputError('question must not be empty')
    try:
        mime, _ = parse_data_uri(request.get('photoDataUri') or '')
    except ValueError as exc:
        raise FlowInputError(f'photoDataUri: {exc}') from exc
    if not mime.startswith('image/'):
        raise FlowInputError(f'photoDataUri must carry an image, got {mime}')


async def visual_question_answer(flow, request: VisualQuestionRequest) -> VisualQuestionResponse:
    validate_request(request)
    try:
        state = await flow.ainvoke({
            'question': request['question'].strip(),
            'photo_data_uri': request['photoDataUri'].strip(),
            'answer': None,
        })
    except Exception as exc:
        raise GenerationError(f'visual question failed: {exc}') from exc

    if not state.get('answer'):
        raise GenerationError('model returned an empty answer')
    return {'answer': state['answer']}
