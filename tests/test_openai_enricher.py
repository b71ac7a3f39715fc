from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from adapters.openai_enricher import OpenAICommitEnricher, build_prompt, parse_summary
from core.config import AnalysisConfig
from core.errors import EnrichmentError
from core.models import Commit, CommitFile

CONFIG = AnalysisConfig(enabled=True, model="test-model", timeout_seconds=5)


def _commit() -> Commit:
    return Commit(
        sha="abc1234def",
        message="Add caching layer",
        author_name="Mona",
        author_date=None,
        url="https://github.com/octocat/hello/commit/abc1234def",
        files=(CommitFile("cache.py", "added", 80, 0, 80),),
    )


class FakeCompletions:
    def __init__(self, content) -> None:
        self.content = content
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeClient:
    def __init__(self, content) -> None:
        self.chat = SimpleNamespace(completions=FakeCompletions(content))


def test_parse_json_answer() -> None:
    summary = parse_summary(
        '```json\n{"summary": "Adds a cache", "impact": "Medium", "categories": ["perf", ""]}\n```'
    )
    assert summary.text == "Adds a cache"
    assert summary.impact == "medium"
    assert summary.categories == ("perf",)


def test_parse_plain_text_answer() -> None:
    assert parse_summary("Adds a cache.").text == "Adds a cache."


def test_parse_rejects_unknown_impact_and_empty_answers() -> None:
    assert parse_summary('{"summary": "x", "impact": "huge"}').impact is None
    with pytest.raises(EnrichmentError):
        parse_summary("   ")
    with pytest.raises(EnrichmentError):
        parse_summary('{"impact": "low"}')


def test_prompt_lists_files() -> None:
    prompt = build_prompt(_commit())
    assert "Add caching layer" in prompt
    assert "cache.py (added, +80/-0)" in prompt


def test_summarize_uses_configured_model() -> None:
    client = FakeClient('{"summary": "Adds a cache", "impact": "low"}')
    enricher = OpenAICommitEnricher("key", CONFIG, client=client)

    summary = asyncio.run(enricher.summarize(_commit()))

    assert summary.text == "Adds a cache"
    assert client.chat.completions.kwargs["model"] == "test-model"


def test_empty_response_raises() -> None:
    enricher = OpenAICommitEnricher("key", CONFIG, client=FakeClient(None))
    with pytest.raises(EnrichmentError):
        asyncio.run(enricher.summarize(_commit()))


def test_parse_single_category_string() -> None:
    summary = parse_summary('{"summary": "Fixes a crash", "categories": "bugfix"}')
    assert summary.categories == ("bugfix",)
