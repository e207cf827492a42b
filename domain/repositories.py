from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from .models import ProfileStats


GROUPS = "groups"
ACCOUNTS = "accounts"
USERS = "users"


class DocumentStore(Protocol):
    """
    Abstraction over a collection/key document store.

    Implementations are responsible for:
    - Serializing plain dict documents.
    - Hiding any SQL / driver details from the application layer.

    Keys are normalized by the caller before they reach the store.
    """

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Return the document stored under `key`, or None if absent."""

        ...

    def set(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        """Create or overwrite the document under `key`."""

        ...

    def update(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        """
        Merge `fields` into an existing document.

        Raises `NotFound` if there is no document to merge into.
        """

        ...

    def delete(self, collection: str, key: str) -> None:
        """Remove the document under `key`; a missing document is not an error."""

        ...


class StatisticsProvider(Protocol):
    """
    Read-only source of public profile statistics.

    A handle that does not exist upstream raises `UpstreamNotFound`;
    transport or payload problems raise `UpstreamUnavailable`.
    """

    async def fetch_profile(self, handle: str) -> ProfileStats:
        ...


class ContentModerator(Protocol):
    """Decides whether user-supplied group text is acceptable."""

    def is_appropriate(self, name: str, secret: str) -> bool:
        """Return True only for a clear positive verdict."""

        ...
