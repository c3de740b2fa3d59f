import json

import httpx
import pytest

from catcore.memory.compress import (
    COMPRESSION_SYSTEM,
    CompressionError,
    LlmCompressor,
    format_for_compression,
)
from catcore.memory.tier import Message, Role


def _compressor(handler, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return LlmCompressor(
        api_key="placeholder",
        base_url=kwargs.pop("base_url", "http://llm.example.com/v1"),
        model="test-model",
        extra_options=kwargs.pop("extra_options", None),
        client=client,
    )


def _reply(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def test_format_skips_tool_and_empty_messages():
    msgs = [
        Message.user("hello"),
        Message(Role.TOOL, "tool output"),
        Message.assistant(""),
        Message.assistant("hi"),
    ]
    assert format_for_compression(msgs) == "[User]\nhello\n\n[Assistant]\nhi"


def test_format_of_only_tool_messages_is_empty():
    assert format_for_compression([Message(Role.TOOL, "x")]) == ""


def test_empty_input_makes_no_request():
    calls = []

    def handler(request):
        calls.append(request)
        return _reply("unused")

    comp = _compressor(handler)
    assert comp.compress([]) == ""
    assert comp.compress([Message(Role.TOOL, "noise")]) == ""
    assert calls == []


def test_compress_returns_model_summary_and_sends_request():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return _reply("summary text")

    comp = _compressor(handler, extra_options={"temperature": 0.3})
    result = comp.compress([Message.user("remember the meeting")])

    assert result == "summary text"
    assert seen["url"] == "http://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer placeholder"
    body = seen["body"]
    assert body["model"] == "test-model"
    assert body["temperature"] == 0.3
    assert body["messages"][0] == {"role": "system", "content": COMPRESSION_SYSTEM}
    assert "remember the meeting" in body["messages"][1]["content"]


def test_empty_summary_raises():
    comp = _compressor(lambda request: _reply(""))
    with pytest.raises(CompressionError):
        comp.compress([Message.user("hi")])


def test_http_error_raises():
    comp = _compressor(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(CompressionError):
        comp.compress([Message.user("hi")])


def test_invalid_json_raises():
    comp = _compressor(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(CompressionError):
        comp.compress([Message.user("hi")])