import base64

import httpx
import pytest

from fakes import RecordingLLM
from voice_assistant.core.errors import ContentFetchError, FlowInputError, GenerationError
from voice_assistant.core.flows import (
    build_summarize_flow,
    build_visual_qa_flow,
    summarize_web_content,
    visual_question_answer,
)
from voice_assistant.core.side_flows import SideFlows, image_data_uri
from voice_assistant.core.web_content import extract_text, validate_url

PAGE = """<html><head><title>ignored</title><style>body {color: red}</style></head>
<body><h1>Solar power</h1><script>var tracking = 1;</script>
<p>Panels   turn sunlight
into electricity.</p><p>Costs fell &amp; adoption grew.</p></body></html>"""

PNG_URI = 'data:image/png;base64,' + base64.b64encode(b'\x89PNG\r\n\x1a\nfake').decode()


def http_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ----------------- web content -----------------

def test_extract_text_drops_markup_and_scripts():
    text = extract_text(PAGE)

    assert 'Solar power' in text
    assert 'Panels turn sunlight into electricity.' in text
    assert 'Costs fell & adoption grew.' in text
    assert 'tracking' not in text
    assert 'color' not in text
    assert 'ignored' not in text


@pytest.mark.parametrize('url', ['', 'not a url', 'ftp://example.com/file', '/relative/path', 'https://'])
def test_invalid_urls_are_rejected(url):
    with pytest.raises(FlowInputError):
        validate_url(url)


def test_valid_url_passes():
    assert validate_url(' https://example.com/a?b=1 ') == 'https://example.com/a?b=1'


# ----------------- summarize -----------------

async def test_summarize_fetches_extracts_and_summarizes():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, html=PAGE)

    llm = RecordingLLM("Solar got cheaper and more popular.")
    async with http_client(handler) as http:
        flow = build_summarize_flow(llm, http)
        result = await summarize_web_content(flow, {'url': 'https://example.com/solar'})

    assert result == {'summary': "Solar got cheaper and more popular."}
    assert seen == ['https://example.com/solar']
    prompt = llm.calls[0][-1].content
    assert prompt.startswith('Web page content: ')
    assert 'Panels turn sunlight into electricity.' in prompt
    assert 'tracking' not in prompt


async def test_summarize_truncates_long_pages():
    def handler(request):
        return httpx.Response(200, text='a' * 5000, headers={'content-type': 'text/plain'})

    llm = RecordingLLM("short")
    async with http_client(handler) as http:
        flow = build_summarize_flow(llm, http, max_chars=1000)
        await summarize_web_content(flow, {'url': 'https://example.com/long'})

    assert llm.calls[0][-1].content == 'Web page content: ' + 'a' * 1000


async def test_summarize_rejects_bad_url_without_fetching():
    def handler(request):
        raise AssertionError('should not fetch')

    llm = RecordingLLM()
    async with http_client(handler) as http:
        flow = build_summarize_flow(llm, http)
        with pytest.raises(FlowInputError):
            await summarize_web_content(flow, {'url': 'example dot com'})
    assert llm.calls == []


@pytest.mark.parametrize('response', [
    httpx.Response(404, text='missing'),
    httpx.Response(200, html='<html><script>only()</script></html>'),
    httpx.Response(200, content=b'%PDF-1.7', headers={'content-type': 'application/pdf'}),
])
async def test_unreadable_pages_are_fetch_errors(response):
    async with http_client(lambda request: response) as http:
        flow = build_summarize_flow(RecordingLLM(), http)
        with pytest.raises(ContentFetchError):
            await summarize_web_content(flow, {'url': 'https://example.com/x'})


async def test_summarize_model_failure_is_a_generation_error():
    async with http_client(lambda request: httpx.Response(200, html=PAGE)) as http:
        flow = build_summarize_flow(RecordingLLM(error=RuntimeError('rate limited')), http)
        with pytest.raises(GenerationError, match='rate limited'):
            await summarize_web_content(flow, {'url': 'https://example.com/solar'})


# ----------------- visual question answering -----------------

async def test_visual_question_sends_text_and_image():
    llm = RecordingLLM("A red bicycle.")
    flow = build_visual_qa_flow(llm)

    result = await visual_question_answer(flow, {'question': 'What is this?', 'photoDataUri': PNG_URI})

    assert result == {'answer': 'A red bicycle.'}
    blocks = llm.calls[0][0].content
    assert blocks[0]['type'] == 'text' and 'Question: What is this?' in blocks[0]['text']
    assert blocks[1] == {'type': 'image_url', 'image_url': {'url': PNG_URI}}


@pytest.mark.parametrize('request_', [
    {'question': 'What is this?', 'photoDataUri': 'https://example.com/cat.png'},
    {'question': 'What is this?', 'photoDataUri': 'data:image/png,notbase64'},
    {'question': 'What is this?', 'photoDataUri': 'data:audio/wav;base64,UklGRg=='},
    {'question': '   ', 'photoDataUri': PNG_URI},
])
async def test_visual_question_validates_input(request_):
    llm = RecordingLLM()
    with pytest.raises(FlowInputError):
        await visual_question_answer(build_visual_qa_flow(llm), request_)
    assert llm.calls == []


async def test_visual_question_backend_failure():
    flow = build_visual_qa_flow(RecordingLLM(error=ConnectionError('offline')))
    with pytest.raises(GenerationError):
        await visual_question_answer(flow, {'question': 'What?', 'photoDataUri': PNG_URI})


# ----------------- side flows facade -----------------

async def test_side_flows_read_image_files(tmp_path):
    image = tmp_path / 'photo.png'
    image.write_bytes(b'\x89PNG\r\n\x1a\nfake')
    llm = RecordingLLM("A photo.")
    async with http_client(lambda request: httpx.Response(200, html=PAGE)) as http:
        side = SideFlows(build_summarize_flow(RecordingLLM("sum"), http), build_visual_qa_flow(llm))

        assert await side.ask_about_image(str(image), 'What is it?') == "A photo."
        assert await side.summarize('https://example.com') == "sum"

    assert llm.calls[0][0].content[1]['image_url']['url'] == PNG_URI


def test_non_image_files_are_rejected(tmp_path):
    notes = tmp_path / 'notes.txt'
    notes.write_text('hello')
    with pytest.raises(FlowInputError):
        image_data_uri(notes)
    with pytest.raises(FlowInputError):
        image_data_uri(tmp_path / 'missing.png')
