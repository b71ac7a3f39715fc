"""Validation helpers for GitHub targets supplied through chat commands."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

_USERNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,37}[A-Za-z0-9])?$")
_REPO_RE = re.compile(r"^[A-Za-z0-9._-]{1,100}$")


def sanitize_input(value: str) -> str:
    return value.replace("<", "").replace(">", "").strip()


def is_valid_username(username: str) -> bool:
    """GitHub logins: alphanumerics and inner hyphens, 1-39 characters."""

    return bool(_USERNAME_RE.match(username))


def is_valid_repo(repo: str) -> bool:
    return bool(_REPO_RE.match(repo)) and not repo.startswith(".") and not repo.endswith(".")


@dataclass
class TargetInfo:
    username: Optional[str]
    repo: Optional[str]
    error: Optional[str] = None


def parse_target_args(args: Sequence[str]) -> TargetInfo:
    """Parse ``<username> [repo]`` command arguments.

    ``owner/repo`` in the first argument is accepted as a shorthand.
    """

    cleaned = [sanitize_input(arg) for arg in args if sanitize_input(arg)]
    if not cleaned:
        return TargetInfo(None, None, "Please specify a GitHub username.")

    username = cleaned[0]
    repo = cleaned[1] if len(cleaned) > 1 else None
    if repo is None and "/" in username:
        username, _, repo = username.partition("/")
        repo = repo or None

    if not is_valid_username(username):
        return TargetInfo(None, None, "Invalid GitHub username.")
    if repo is not None and not is_valid_repo(repo):
        return TargetInfo(username, None, "Invalid repository name.")
    return TargetInfo(username, repo)
