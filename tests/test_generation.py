import asyncio
import json

import aiohttp
import pytest

from doctor_helper.core.generation import (
    GenerationClient,
    GenerationError,
    build_content_parts,
    extract_text,
    format_stream_chunk,
    parse_image_data_url,
)
from factories import run


def test_parse_image_data_url():
    assert parse_image_data_url("data:image/png;base64,iVBOR") == ("image/png", "iVBOR")
    with pytest.raises(ValueError):
        parse_image_data_url("https://example.com/x.png")


def test_document_is_appended_to_message():
    parts = build_content_parts(message="Explain this", document="Hemoglobin 11.2")
    assert parts == [{"text": "Explain this\n\nDocument content:\nHemoglobin 11.2"}]

    only_document = build_content_parts(document="Hemoglobin 11.2")
    assert only_document == [{"text": "Document content:\nHemoglobin 11.2"}]


def test_image_only_request_has_no_text_part():
    parts = build_content_parts(image="data:image/png;base64,AAAA")
    assert parts == [{"inlineData": {"mimeType": "image/png", "data": "AAAA"}}]


def test_extract_text_joins_first_candidate_parts():
    payload = {"candidates": [{"content": {"parts": [{"text": "Hello"}, {"text": " world"}]}}]}
    assert extract_text(payload) == "Hello world"
    assert extract_text({}) == ""


def test_format_stream_chunk_escapes_text():
    line = format_stream_chunk('He said "rest"\n')
    assert line.startswith("0:")
    assert line.endswith("\n")
    assert json.loads(line[2:]) == 'He said "rest"\n'


def test_client_without_key_fails_before_any_request():
    generator = GenerationClient(api_key="", api_url="http://127.0.0.1:9")

    with pytest.raises(GenerationError):
        run(generator.generate([{"text": "hi"}]))


class _FakeResponse:
    status = 200

    def __init__(self, lines):
        self.content = _iterate(lines)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


async def _iterate(lines):
    for line in lines:
        yield line


async def _collect(generator, parts):
    return [chunk async for chunk in generator.stream(parts)]


def _serve_lines(monkeypatch, lines):
    monkeypatch.setattr(aiohttp.ClientSession, "post", lambda self, *args, **kwargs: _FakeResponse(lines))


def test_stream_reads_sse_data_lines(monkeypatch):
    chunk = json.dumps({"candidates": [{"content": {"parts": [{"text": "Hi"}]}}]})
    _serve_lines(monkeypatch, [b": keep-alive\n", f"data: {chunk}\n".encode(), b"\n", b"data:\n"])

    assert run(_collect(GenerationClient(api_key="k"), [{"text": "hi"}])) == ["Hi"]


def test_malformed_stream_line_becomes_generation_error(monkeypatch):
    _serve_lines(monkeypatch, [b"data: {not json\n"])

    with pytest.raises(GenerationError):
        run(_collect(GenerationClient(api_key="k"), [{"text": "hi"}]))


def test_timeout_becomes_generation_error(monkeypatch):
    def timing_out(self, *args, **kwargs):
        raise asyncio.TimeoutError()

    monkeypatch.setattr(aiohttp.ClientSession, "post", timing_out)
    generator = GenerationClient(api_key="k", timeout_seconds=1)

    with pytest.raises(GenerationError):
        run(generator.generate([{"text": "hi"}]))
    with pytest.raises(GenerationError):
        run(_collect(generator, [{"text": "hi"}]))
