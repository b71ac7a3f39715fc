"""OpenAI commit summary enricher.

Optional collaborator: produces a short structured summary for a commit.
Every failure is raised as EnrichmentError; the core notifier then sends the
notification without a summary.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from core.config import AnalysisConfig
from core.errors import EnrichmentError
from core.models import Commit, CommitSummary

LOGGER = logging.getLogger(__name__)

MAX_PROMPT_FILES = 10
IMPACT_LEVELS = ("low", "medium", "high")

SYSTEM_PROMPT = (
    "You review git commits. Answer with a JSON object only: "
    '{"summary": "one or two sentences", "impact": "low|medium|high", '
    '"categories": ["short", "labels"]}'
)


def build_prompt(commit: Commit) -> str:
    lines = [
        f"Commit message: {commit.message.strip()}",
        f"Author: {commit.author_name or 'unknown'}",
        f"Files changed: {len(commit.files)}",
    ]
    if commit.stats:
        lines.append(f"Lines: +{commit.stats.additions} -{commit.stats.deletions}")
    for index, entry in enumerate(commit.files[:MAX_PROMPT_FILES], start=1):
        lines.append(f"{index}. {entry.filename} ({entry.status}, +{entry.additions}/-{entry.deletions})")
    return "\n".join(lines)


def parse_summary(raw: str) -> CommitSummary:
    """Parse the model answer, tolerating fenced code blocks and plain text."""

    text = raw.strip()
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        if not text:
            raise EnrichmentError("Empty summary from model")
        return CommitSummary(text=text)

    try:
        payload: Any = json.loads(match.group(0))
    except ValueError:
        return CommitSummary(text=text)

    summary = str(payload.get("summary") or "").strip()
    if not summary:
        raise EnrichmentError("Model answer has no summary")
    impact = str(payload.get("impact") or "").lower() or None
    if impact not in IMPACT_LEVELS:
        impact = None
    raw_categories = payload.get("categories") or ()
    if isinstance(raw_categories, str):
        raw_categories = (raw_categories,)
    elif not isinstance(raw_categories, (list, tuple)):
        raw_categories = ()
    categories = tuple(str(item).strip() for item in raw_categories if str(item).strip())
    return CommitSummary(text=summary, impact=impact, categories=categories)


class OpenAICommitEnricher:
    """Enricher adapter backed by the OpenAI chat completions API."""

    def __init__(self, api_key: str, config: AnalysisConfig, client: "AsyncOpenAI | None" = None) -> None:
        self._model = config.model
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=config.timeout_seconds, max_retries=0)

    async def close(self) -> None:
        await self._client.close()

    async def summarize(self, commit: Commit) -> CommitSummary:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(commit)},
                ],
                temperature=0.3,
                max_tokens=400,
            )
        except OpenAIError as exc:
            raise EnrichmentError(f"OpenAI request failed for {commit.short_sha}: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise EnrichmentError(f"Empty OpenAI response for {commit.short_sha}")
        return parse_summary(content)
