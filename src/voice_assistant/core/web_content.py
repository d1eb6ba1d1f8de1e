"""
Fetch a web page and pull its readable text out of the HTML.
"""
import logging
import re
from html.parser import HTMLParser

import httpx

from voice_assistant.core.errors import ContentFetchError, FlowInputError

log = logging.getLogger("voice_assistant.web_content")

_SKIPPED_TAGS = {'script', 'style', 'noscript', 'template', 'svg', 'head'}
_BLOCK_TAGS = {'p', 'div', 'br', 'li', 'tr', 'section', 'article', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6'}
_WS_RE = re.compile(r'[ \t\r\f\v]+')
_ANY_WS_RE = re.compile(r'\s+')
_BLANK_LINES_RE = re.compile(r'\n\s*\n+')


def validate_url(url: str) -> str:
    """Return the URL if it is an absolute http(s) URL with a host."""
    url = (url or '').strip()
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise FlowInputError(f'invalid URL {url!r}: {exc}') from exc
    if parsed.scheme not in ('http', 'https') or not parsed.host:
        raise FlowInputError(f'invalid URL {url!r}: expected an absolute http(s) URL')
    return url


class _TextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._skip_depth = 0
        self.chunks: list[str] = []

    def handle_starttag(self, tag, attrs):
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag in _BLOCK_TAGS:
            self.chunks.append('\n')

    def handle_endtag(self, tag):
        if tag in _SKIPPED_TAGS and self._skip_depth:
            self._skip_depth -= 1
        elif tag in _BLOCK_TAGS:
            self.chunks.append('\n')

    def handle_data(self, data):
        if not self._skip_depth:
            # line breaks inside text are layout, not structure
            self.chunks.append(_ANY_WS_RE.sub(' ', data))


def extract_text(html: str) -> str:
    parser = _TextExtractor()
    parser.feed(html)
    parser.close()
    text = _WS_RE.sub(' ', ''.join(parser.chunks))
    text = '\n'.join(line.strip() for line in text.split('\n'))
    return _BLANK_LINES_RE.sub('\n\n', text).strip()


async def fetch_page_text(client: httpx.AsyncClient, url: str, *, max_chars: int = 20000) -> str:
    try:
        resp = await client.get(url, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        raise ContentFetchError(f'could not fetch {url}: {exc}') from exc

    ctype = resp.headers.get('content-type', '')
    if 'html' in ctype or not ctype:
        text = extract_text(resp.text)
    elif ctype.startswith('text/'):
        text = resp.text.strip()
    else:
        raise ContentFetchError(f'unsupported content type {ctype!r} at {url}')

    if not text:
        raise ContentFetchError(f'no readable text at {url}')

    log.info("event=page_fetched url=%s chars=%d truncated=%s", url, len(text), len(text) > max_chars)
    return text[:max_chars]
