"""New-commit detection (core domain).

Compares a freshly fetched, newest-first commit list against the
subscription's high-water mark and returns what has not been seen yet.
"""

from __future__ import annotations

from typing import Optional, Sequence

from core.models import Commit


def find_new_commits(last_commit_sha: Optional[str], commits: Sequence[Commit]) -> list[Commit]:
    """Return the commits newer than ``last_commit_sha``, newest first.

    Rules:
    - An empty fetch never yields anything.
    - Without a high-water mark only the newest commit is new, so a fresh
      subscription is not flooded with the account's recent history.
    - A mark found at index ``i`` yields the ``i`` commits in front of it.
    - A mark that is not in the list yields the whole list. History was
      rewritten or too much happened to overlap the fetched window; the two
      cases cannot be told apart, so everything visible is resent.
    """

    if not commits:
        return []

    if last_commit_sha is None:
        return [commits[0]]

    for index, commit in enumerate(commits):
        if commit.sha == last_commit_sha:
            return list(commits[:index])

    return list(commits)


def next_high_water_mark(new_commits: Sequence[Commit]) -> Optional[str]:
    """Return the id to persist after notifying ``new_commits``."""

    if not new_commits:
        return None
    return new_commits[0].sha
