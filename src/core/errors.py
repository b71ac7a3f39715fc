"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations


class CommitScopeError(Exception):
    """Base class for every error raised by commitscope."""


class StorageError(CommitScopeError):
    """The durable subscription record could not be read or written."""


class AlreadySubscribedError(CommitScopeError):
    """An active subscription already exists for the requested target."""

    def __init__(self, user_id: int, target: str) -> None:
        super().__init__(f"User {user_id} is already subscribed to {target}")
        self.user_id = user_id
        self.target = target


class CollaboratorError(CommitScopeError):
    """Any failure reported by an external collaborator.

    The scheduler catches these at its per-subscription and per-notification
    boundaries; the next cycle is the retry.
    """


class NotFoundError(CollaboratorError):
    """The watched account or repository does not exist."""


class AccessDeniedError(CollaboratorError):
    """The provider refused access (private repository, rate limit, bad token)."""


class TransientError(CollaboratorError):
    """Network failures, timeouts and unexpected provider responses."""


class NotificationError(CollaboratorError):
    """The notification sink failed to deliver a message."""


class EnrichmentError(CollaboratorError):
    """The optional analysis enricher failed for a commit."""
