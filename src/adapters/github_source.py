"""GitHub commit source adapter.

Implements the core CommitSourcePort over the GitHub REST API. Results are
always newest first. HTTP failures are mapped onto the core collaborator
errors so the scheduler can skip a subscription for one cycle.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from adapters.timestamps import parse_timestamp
from core.config import GitHubConfig
from core.errors import AccessDeniedError, CollaboratorError, NotFoundError, TransientError
from core.models import Commit, CommitFile, CommitStats

LOGGER = logging.getLogger(__name__)

API_URL = "https://api.github.com"


def _parse_optional_timestamp(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return parse_timestamp(raw)
    except ValueError:
        return None


def commit_from_api(payload: dict[str, Any], repository: Optional[str] = None) -> Commit:
    """Map a GitHub commit object onto the core Commit model."""

    details = payload.get("commit") or {}
    author = details.get("author") or {}

    stats = None
    raw_stats = payload.get("stats")
    if raw_stats:
        stats = CommitStats(
            additions=int(raw_stats.get("additions", 0)),
            deletions=int(raw_stats.get("deletions", 0)),
            total=int(raw_stats.get("total", 0)),
        )

    files = tuple(
        CommitFile(
            filename=entry.get("filename", ""),
            status=entry.get("status", "modified"),
            additions=int(entry.get("additions", 0)),
            deletions=int(entry.get("deletions", 0)),
            changes=int(entry.get("changes", 0)),
        )
        for entry in payload.get("files") or []
    )

    return Commit(
        sha=payload["sha"],
        message=details.get("message", ""),
        author_name=author.get("name"),
        author_date=_parse_optional_timestamp(author.get("date")),
        url=payload.get("html_url", ""),
        repository=repository or repository_from_url(payload.get("html_url", "")),
        stats=stats,
        files=files,
    )


def repository_from_url(url: str) -> Optional[str]:
    """Extract the repository name from a github.com commit URL."""

    marker = "github.com/"
    if marker not in url or "/commit/" not in url:
        return None
    path = url.split(marker, 1)[1]
    parts = path.split("/")
    if len(parts) < 3 or not parts[1]:
        return None
    return parts[1]


class GitHubCommitSource:
    """Fetch recent commits for an account or a single repository."""

    def __init__(
        self,
        config: GitHubConfig,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "commitscope",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=API_URL,
            headers=headers,
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise TransientError(f"GitHub request {path} failed: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError(f"GitHub resource not found: {path}")
        if response.status_code in (401, 403):
            raise AccessDeniedError(f"GitHub denied access to {path} ({response.status_code})")
        if response.status_code >= 400:
            raise TransientError(f"GitHub API error {response.status_code} for {path}")
        try:
            return response.json()
        except ValueError as exc:
            raise TransientError(f"GitHub returned invalid JSON for {path}") from exc

    async def fetch_recent(self, username: str, repo: Optional[str] = None) -> list[Commit]:
        if repo:
            payload = await self._get(
                f"/repos/{username}/{repo}/commits",
                params={"per_page": self._config.per_page},
            )
            return [commit_from_api(item, repository=repo) for item in payload]
        return await self._fetch_account(username)

    async def _fetch_account(self, username: str) -> list[Commit]:
        """Latest commit of each recently active repository.

        Repositories keep the listing order, most recently pushed first. Author
        dates are not push order, so the heads are never re-sorted by date.
        """

        repos = await self._get(
            f"/users/{username}/repos",
            params={"per_page": self._config.max_repos, "sort": "pushed"},
        )
        cutoff = datetime.now(timezone.utc) - timedelta(days=self._config.active_days)

        active = []
        for repository in repos:
            if repository.get("fork") or not repository.get("size"):
                continue
            updated_at = _parse_optional_timestamp(repository.get("updated_at"))
            if updated_at is None or updated_at < cutoff:
                continue
            active.append(repository["name"])

        if not active:
            LOGGER.info("No active repositories found for %s", username)
            return []

        commits: list[Commit] = []
        for name in active:
            try:
                payload = await self._get(f"/repos/{username}/{name}/commits", params={"per_page": 1})
            except CollaboratorError as exc:
                # 409 (empty), or the repository vanished or was blocked after listing.
                LOGGER.warning("Skipping %s/%s: %s", username, name, exc)
                continue
            if payload:
                commits.append(commit_from_api(payload[0], repository=name))

        return commits

    async def fetch_details(self, username: str, sha: str, repo: Optional[str] = None) -> Commit:
        if not repo:
            raise NotFoundError(f"Repository unknown for commit {sha}")
        payload = await self._get(f"/repos/{username}/{repo}/commits/{sha}")
        return commit_from_api(payload, repository=repo)
