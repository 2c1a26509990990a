"""
Tests for neetprep_api/prompt_flow.py.

A toy flow is driven through FakeOpenAI so every failure path of a model
call can be scripted.
"""
import asyncio
from typing import Optional

import openai
import pytest
from pydantic import BaseModel, Field, ValidationError

from neetprep_api.prompt_flow import PromptFlow, strip_code_fences, complete_text
from conftest import FakeOpenAI


class EchoInput(BaseModel):
    text: str = Field(min_length=1)
    level: int = Field(default=1, ge=1, le=5)


class EchoOutput(BaseModel):
    reply: str
    note: Optional[str] = None


FALLBACK = EchoOutput(reply="fallback")


def make_flow(**kwargs):
    options = dict(
        name="echo",
        input_model=EchoInput,
        output_model=EchoOutput,
        template=lambda data: f"Echo: {data.text}",
        fallback=FALLBACK,
    )
    options.update(kwargs)
    return PromptFlow(**options)


def run(flow, payload, client=None):
    return asyncio.run(flow.run(payload, client))


# ── strip_code_fences ────────────────────────────────────────

class TestStripCodeFences:
    def test_plain_json_untouched(self):
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_json_fence_removed(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence_removed(self):
        assert strip_code_fences('  ```\n{"a": 1}\n```  ') == '{"a": 1}'


# ── PromptFlow.run ───────────────────────────────────────────

class TestRun:
    def test_valid_output_returned(self):
        client = FakeOpenAI({"reply": "hello", "note": "n"})
        result = run(make_flow(), {"text": "hi"}, client)
        assert result == EchoOutput(reply="hello", note="n")

    def test_fenced_output_parsed(self):
        client = FakeOpenAI('```json\n{"reply": "fenced"}\n```')
        assert run(make_flow(), {"text": "hi"}, client).reply == "fenced"

    def test_invalid_input_raises_before_calling_model(self):
        client = FakeOpenAI({"reply": "never"})
        with pytest.raises(ValidationError):
            run(make_flow(), {"text": "", "level": 9}, client)
        assert client.completions.calls == []

    def test_no_client_returns_fallback(self):
        assert run(make_flow(), {"text": "hi"}).reply == "fallback"

    def test_upstream_error_returns_fallback(self):
        client = FakeOpenAI(openai.OpenAIError("rate limited"))
        assert run(make_flow(), {"text": "hi"}, client).reply == "fallback"

    def test_empty_content_returns_fallback(self):
        client = FakeOpenAI("")
        assert run(make_flow(), {"text": "hi"}, client).reply == "fallback"

    def test_unparsable_json_returns_fallback(self):
        client = FakeOpenAI("not json at all")
        assert run(make_flow(), {"text": "hi"}, client).reply == "fallback"

    def test_schema_mismatch_returns_fallback(self):
        client = FakeOpenAI({"wrong": "shape"})
        assert run(make_flow(), {"text": "hi"}, client).reply == "fallback"

    def test_fallback_is_a_copy(self):
        result = run(make_flow(), {"text": "hi"})
        result.reply = "mutated"
        assert FALLBACK.reply == "fallback"

    def test_callable_fallback_sees_input(self):
        flow = make_flow(fallback=lambda data: EchoOutput(reply=f"sorry {data.text}"))
        assert run(flow, {"text": "bob"}).reply == "sorry bob"

    def test_is_empty_triggers_fallback(self):
        client = FakeOpenAI({"reply": "   "})
        flow = make_flow(is_empty=lambda data, out: not out.reply.strip())
        assert run(flow, {"text": "hi"}, client).reply == "fallback"

    def test_postprocess_applied(self):
        client = FakeOpenAI({"reply": "hello"})
        flow = make_flow(postprocess=lambda data, out: EchoOutput(reply=out.reply.upper()))
        assert run(flow, {"text": "hi"}, client).reply == "HELLO"

    def test_accepts_model_instance(self):
        client = FakeOpenAI({"reply": "ok"})
        assert run(make_flow(), EchoInput(text="hi"), client).reply == "ok"


# ── Request shape ────────────────────────────────────────────

class TestRequest:
    def test_prompt_and_schema_sent(self):
        client = FakeOpenAI({"reply": "ok"})
        run(make_flow(), {"text": "photosynthesis"}, client)
        call = client.completions.calls[0]
        assert call["response_format"] == {"type": "json_object"}
        system, user = call["messages"]
        assert "reply" in system["content"]
        assert user["content"] == "Echo: photosynthesis"

    def test_image_field_sent_as_image_part(self):
        client = FakeOpenAI({"reply": "ok"})
        flow = make_flow(image_field="text")
        run(flow, {"text": "data:image/png;base64,AAAA"}, client)
        content = client.completions.calls[0]["messages"][1]["content"]
        assert content[0]["type"] == "text"
        assert content[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}

    def test_invoke_returns_none_without_fallback(self):
        flow = make_flow(fallback=None)
        client = FakeOpenAI("garbage")
        assert asyncio.run(flow.invoke(EchoInput(text="hi"), client)) is None


class TestCompleteText:
    def test_returns_stripped_text(self):
        client = FakeOpenAI("  CORRECT \n")
        assert asyncio.run(complete_text("grade this", client)) == "CORRECT"

    def test_upstream_error_returns_none(self):
        client = FakeOpenAI(openai.OpenAIError("down"))
        assert asyncio.run(complete_text("grade this", client)) is None

    def test_no_client_returns_none(self):
        assert asyncio.run(complete_text("grade this")) is None
