from __future__ import annotations

from core.detector import find_new_commits, next_high_water_mark
from core.models import Commit


def _commit(sha: str) -> Commit:
    return Commit(
        sha=sha,
        message=f"commit {sha}",
        author_name="octocat",
        author_date=None,
        url=f"https://github.com/octocat/hello/commit/{sha}",
    )


def _commits(*shas: str) -> list[Commit]:
    return [_commit(sha) for sha in shas]


def _shas(commits: list[Commit]) -> list[str]:
    return [commit.sha for commit in commits]


def test_empty_list_yields_nothing() -> None:
    assert find_new_commits(None, []) == []
    assert find_new_commits("c1", []) == []


def test_first_check_returns_only_newest() -> None:
    for shas in (["c1"], ["c3", "c2", "c1"], ["c9", "c8", "c7", "c6", "c5"]):
        result = find_new_commits(None, _commits(*shas))
        assert _shas(result) == [shas[0]]


def test_known_mark_returns_prefix() -> None:
    commits = _commits("c5", "c4", "c3", "c2", "c1")
    for index, commit in enumerate(commits):
        result = find_new_commits(commit.sha, commits)
        assert len(result) == index
        assert result == commits[:index]


def test_mark_on_newest_commit_yields_nothing() -> None:
    assert find_new_commits("c3", _commits("c3", "c2", "c1")) == []


def test_scenario_one_new_commit() -> None:
    result = find_new_commits("c2", _commits("c3", "c2", "c1"))
    assert _shas(result) == ["c3"]
    assert next_high_water_mark(result) == "c3"


def test_unknown_mark_resends_everything() -> None:
    commits = _commits("c5", "c4", "c3")
    result = find_new_commits("c9", commits)
    assert _shas(result) == ["c5", "c4", "c3"]


def test_duplicates_resolve_by_first_occurrence() -> None:
    commits = _commits("c4", "c2", "c3", "c2", "c1")
    assert _shas(find_new_commits("c2", commits)) == ["c4"]


def test_second_run_with_unchanged_list_is_empty() -> None:
    commits = _commits("c3", "c2", "c1")
    first = find_new_commits(None, commits)
    mark = next_high_water_mark(first)
    assert find_new_commits(mark, commits) == []


def test_result_is_a_new_list() -> None:
    commits = _commits("c2", "c1")
    result = find_new_commits("c9", commits)
    result.pop()
    assert len(commits) == 2


def test_next_high_water_mark_empty() -> None:
    assert next_high_water_mark([]) is None
