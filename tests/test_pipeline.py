import json

import httpx
import pytest

from sitechat_server.llm.client import GenerationError
from sitechat_server.llm.providers import OpenAICompatibleProvider
from sitechat_server.pipeline import QueryOutcome
from sitechat_server.prompts import (
    INSUFFICIENT_CONTENT_ANSWER,
    NO_PROVIDER_ANSWER,
    NOT_INDEXED_ANSWER,
)
from sitechat_server.streaming import LineStreamDecoder, SourcesEvent, TextEvent

from conftest import EXAMPLE_NAMESPACE, ScriptedSearchIndex, StubProvider, make_hit, make_pipeline

QUERY = "Hvad er depositum?"


async def collect_lines(pipeline, query, namespace):
    return [line async for line in pipeline.stream(query, namespace)]


def decode(lines):
    decoder = LineStreamDecoder()
    events = []
    for line in lines:
        events += decoder.feed(line)
    return events + decoder.finish()


@pytest.mark.asyncio
async def test_example_site_answers_with_its_source(fake_index, stub_provider):
    pipeline = make_pipeline(fake_index, stub_provider)

    result = await pipeline.answer(QUERY, EXAMPLE_NAMESPACE)

    assert result.outcome is QueryOutcome.ANSWERED
    assert result.answer
    assert [s.url for s in result.sources] == ["https://example.com/lejebetingelser"]
    # Only the target namespace reaches the model
    user_prompt = stub_provider.calls[0][1]["content"]
    assert "udlejning@example.com" in user_prompt
    assert "other.org" not in user_prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["Hvad er depositum?", "hello", "x"])
async def test_unknown_namespace_is_not_indexed(fake_index, stub_provider, query):
    pipeline = make_pipeline(fake_index, stub_provider)

    result = await pipeline.answer(query, "empty-ns")

    assert result.outcome is QueryOutcome.NO_CONTENT
    assert result.answer == NOT_INDEXED_ANSWER
    assert result.sources == []
    assert stub_provider.calls == []


@pytest.mark.asyncio
async def test_missing_provider_keeps_sources(fake_index):
    pipeline = make_pipeline(fake_index, StubProvider(available=False))

    result = await pipeline.answer(QUERY, EXAMPLE_NAMESPACE)

    assert result.outcome is QueryOutcome.UNCONFIGURED
    assert result.answer == NO_PROVIDER_ANSWER
    assert len(result.sources) == 1


@pytest.mark.asyncio
async def test_degraded_context_answer(stub_provider):
    index = ScriptedSearchIndex({
        f"{QUERY} ns": [make_hit("ns", "kort", title="t", url="https://example.com/t")],
    })
    pipeline = make_pipeline(index, stub_provider)

    result = await pipeline.answer(QUERY, "ns")

    assert result.outcome is QueryOutcome.DEGRADED_CONTEXT
    assert result.answer == INSUFFICIENT_CONTENT_ANSWER
    assert [s.url for s in result.sources] == ["https://example.com/t"]
    assert stub_provider.calls == []


@pytest.mark.asyncio
async def test_generation_failure_is_absorbed_into_answer(fake_index):
    provider = StubProvider(error=GenerationError("upstream exploded", status_code=500))
    pipeline = make_pipeline(fake_index, provider)

    result = await pipeline.answer(QUERY, EXAMPLE_NAMESPACE)

    assert result.outcome is QueryOutcome.GENERATION_FAILED
    assert "upstream exploded" in result.answer
    assert result.error == "upstream exploded"
    assert len(result.sources) == 1


@pytest.mark.asyncio
async def test_stream_fragments_equal_blocking_answer(fake_index, stub_provider):
    pipeline = make_pipeline(fake_index, stub_provider)

    blocking = await pipeline.answer(QUERY, EXAMPLE_NAMESPACE)
    events = decode(await collect_lines(pipeline, QUERY, EXAMPLE_NAMESPACE))

    texts = [e.text for e in events if isinstance(e, TextEvent)]
    assert len(texts) == len(stub_provider.fragments)
    assert "".join(texts) == blocking.answer


@pytest.mark.asyncio
@pytest.mark.parametrize("namespace", [EXAMPLE_NAMESPACE, "empty-ns"])
async def test_sources_line_comes_first_and_once(fake_index, stub_provider, namespace):
    pipeline = make_pipeline(fake_index, stub_provider)

    lines = await collect_lines(pipeline, QUERY, namespace)

    assert lines[0].startswith("8:")
    assert sum(line.startswith("8:") for line in lines) == 1
    assert all(line.startswith("0:") for line in lines[1:])
    assert all(line.endswith("\n") for line in lines)


@pytest.mark.asyncio
async def test_stream_for_empty_namespace(fake_index, stub_provider):
    pipeline = make_pipeline(fake_index, stub_provider)

    lines = await collect_lines(pipeline, QUERY, "empty-ns")

    assert lines == [
        '8:{"sources":[]}\n',
        "0:" + json.dumps(NOT_INDEXED_ANSWER, ensure_ascii=False) + "\n",
    ]


@pytest.mark.asyncio
async def test_stream_sources_match_blocking_sources(fake_index, stub_provider):
    pipeline = make_pipeline(fake_index, stub_provider)

    blocking = await pipeline.answer(QUERY, EXAMPLE_NAMESPACE)
    events = decode(await collect_lines(pipeline, QUERY, EXAMPLE_NAMESPACE))

    assert events[0] == SourcesEvent([s.model_dump() for s in blocking.sources])


@pytest.mark.asyncio
async def test_mid_stream_failure_appends_error_text(fake_index):
    provider = StubProvider(error=GenerationError("connection reset"), fail_after=1)
    pipeline = make_pipeline(fake_index, provider)

    events = decode(await collect_lines(pipeline, QUERY, EXAMPLE_NAMESPACE))
    texts = [e.text for e in events if isinstance(e, TextEvent)]

    assert texts[0] == provider.fragments[0]
    assert texts[-1].startswith("\n\n")
    assert "connection reset" in texts[-1]


@pytest.mark.asyncio
async def test_gateway_html_from_provider_is_a_generation_failure(fake_index):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    provider = OpenAICompatibleProvider(
        "openai", "sk", "gpt", "https://api.openai.com/v1",
        transport=httpx.MockTransport(handler),
    )
    pipeline = make_pipeline(fake_index, provider)

    result = await pipeline.answer(QUERY, EXAMPLE_NAMESPACE)

    assert result.outcome is QueryOutcome.GENERATION_FAILED
    assert "non-JSON" in result.answer
    assert len(result.sources) == 1
