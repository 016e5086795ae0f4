import asyncio
import json

import pytest

from app.core.errors import InvalidCredentials, MalformedResponse, NoProviderConfigured, RateLimited, UpstreamUnavailable
from app.models.schemas import InvalidSummary, SourceFile, ValidSummary
from app.models.schemas import TestSummary as Summary
from app.repositories.interfaces.ai_service import IAIProvider
from app.services.ai_service import AIService


SUMMARIES_JSON = json.dumps([
    {"id": "a", "title": "adds", "description": "adds two numbers", "type": "unit", "file": "src/sum.js", "priority": "high"},
    {"title": "handles NaN", "description": "returns NaN for bad input", "type": "unit", "file": "src/sum.js"},
    {"id": "c", "title": "smoke", "description": "runs", "type": "smoke", "file": "src/sum.js"},
])

SOURCE = [SourceFile(path="src/sum.js", content="export const sum = (a, b) => a + b;")]


class SlowProvider(IAIProvider):
    name = "slow"

    async def complete(self, prompt: str, system_prompt: str) -> str:
        await asyncio.sleep(1)
        return "[]"


@pytest.mark.asyncio
async def test_summaries_fill_defaults_and_flag_invalid(make_provider):
    service = AIService([make_provider("openai", responses=[SUMMARIES_JSON])])

    results = await service.generate_test_case_summaries(SOURCE)

    assert len(results) == 3
    first, second, third = results
    assert isinstance(first, ValidSummary)
    assert first.summary.priority.value == "high"
    assert isinstance(second, ValidSummary)
    assert second.summary.id == "test-2"
    assert second.summary.priority.value == "medium"
    assert second.summary.complexity.value == "medium"
    assert isinstance(third, InvalidSummary)


@pytest.mark.asyncio
async def test_prompt_contains_file_path_and_content(make_provider):
    provider = make_provider("openai", responses=["[]"])
    service = AIService([provider])

    await service.generate_test_case_summaries(SOURCE)

    assert "File: src/sum.js" in provider.prompts[0]
    assert "export const sum" in provider.prompts[0]


@pytest.mark.asyncio
async def test_falls_back_when_primary_is_rate_limited(make_provider):
    primary = make_provider("openai", error=RateLimited("OpenAI API rate limit exceeded"))
    secondary = make_provider("gemini", responses=[SUMMARIES_JSON])
    service = AIService([primary, secondary])

    results = await service.generate_test_case_summaries(SOURCE)

    assert len(results) == 3
    assert len(primary.prompts) == 1
    assert len(secondary.prompts) == 1


@pytest.mark.asyncio
async def test_falls_back_on_unparseable_response(make_provider):
    primary = make_provider("openai", responses=["I cannot help with that."])
    secondary = make_provider("gemini", responses=[SUMMARIES_JSON])
    service = AIService([primary, secondary])

    results = await service.generate_test_case_summaries(SOURCE)

    assert len(results) == 3


@pytest.mark.asyncio
async def test_surfaces_last_error_when_all_providers_fail(make_provider):
    primary = make_provider("openai", error=RateLimited("OpenAI API rate limit exceeded"))
    secondary = make_provider("gemini", error=InvalidCredentials("Invalid Gemini API key"))
    service = AIService([primary, secondary])

    with pytest.raises(InvalidCredentials):
        await service.generate_test_case_summaries(SOURCE)


@pytest.mark.asyncio
async def test_single_provider_malformed_response():
    class ChattyProvider(IAIProvider):
        name = "openai"

        async def complete(self, prompt: str, system_prompt: str) -> str:
            return "Here are some ideas, no JSON though."

    service = AIService([ChattyProvider()])

    with pytest.raises(MalformedResponse):
        await service.generate_test_case_summaries(SOURCE)


@pytest.mark.asyncio
async def test_no_provider_configured():
    service = AIService([])

    with pytest.raises(NoProviderConfigured):
        await service.generate_test_case_summaries(SOURCE)


@pytest.mark.asyncio
async def test_timeout_budget_is_enforced():
    service = AIService([SlowProvider()], timeout_budget=0.05)

    with pytest.raises(UpstreamUnavailable):
        await service.generate_test_case_summaries(SOURCE)


@pytest.mark.asyncio
async def test_generate_test_code_extracts_fenced_block(make_provider):
    reply = "Sure!\n```python\ndef test_sum():\n    assert sum([1, 2]) == 3\n```\nGood luck."
    service = AIService([make_provider("openai", responses=[reply])])
    summary = Summary(id="1", title="sums", description="sums a list", type="unit", file="app/math.py")

    generated = await service.generate_test_code(summary, "def total(xs): return sum(xs)", "pytest")

    assert generated.file_name == "test_math.py"
    assert generated.content == "def test_sum():\n    assert sum([1, 2]) == 3"
    assert generated.source_file == "app/math.py"


@pytest.mark.asyncio
async def test_generate_test_code_without_fence_uses_whole_text(make_provider):
    service = AIService([make_provider("openai", responses=["test('a', () => {});"])])
    summary = Summary(id="1", title="a", description="a", type="unit", file="src/a.ts")

    generated = await service.generate_test_code(summary, "export const a = 1;", "vitest")

    assert generated.file_name == "a.test.ts"
    assert generated.content == "test('a', () => {});"


def test_extract_json_array_from_fenced_text():
    service = AIService([])
    content = 'Here you go:\n```json\n[{"id": "1"}]\n```'

    assert service._extract_json_array(content) == [{"id": "1"}]


def test_extract_json_array_from_wrapping_object():
    service = AIService([])
    content = '{"testCases": [{"id": "1"}, {"id": "2"}]}'

    assert service._extract_json_array(content) == [{"id": "1"}, {"id": "2"}]


def test_extract_json_array_returns_none_without_json():
    assert AIService([])._extract_json_array("nothing to see") is None


class HangingProvider(IAIProvider):
    name = "openai"

    def __init__(self):
        self.calls = 0

    async def complete(self, prompt: str, system_prompt: str) -> str:
        self.calls += 1
        await asyncio.sleep(5)
        return "[]"


class BrokenProvider(IAIProvider):
    name = "openai"

    async def complete(self, prompt: str, system_prompt: str) -> str:
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_hung_primary_leaves_budget_for_fallback(make_provider):
    primary = HangingProvider()
    secondary = make_provider("gemini", responses=[SUMMARIES_JSON])
    service = AIService([primary, secondary], timeout_budget=0.2)

    results = await service.generate_test_case_summaries(SOURCE)

    assert len(results) == 3
    assert primary.calls == 1
    assert len(secondary.prompts) == 1


@pytest.mark.asyncio
async def test_unexpected_provider_exception_falls_back(make_provider):
    secondary = make_provider("gemini", responses=[SUMMARIES_JSON])
    service = AIService([BrokenProvider(), secondary])

    results = await service.generate_test_case_summaries(SOURCE)

    assert len(results) == 3
    assert len(secondary.prompts) == 1


@pytest.mark.asyncio
async def test_unexpected_exception_from_only_provider_is_upstream_unavailable():
    service = AIService([BrokenProvider()])

    with pytest.raises(UpstreamUnavailable):
        await service.generate_test_case_summaries(SOURCE)
