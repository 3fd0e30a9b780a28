"""Storage and audit protocols injected into the share service.

Concrete implementations: in-memory (``calendar_share.inmemory``) for local
development and tests, Supabase (``calendar_share.db``) everywhere else.
The app factory accepts anything that satisfies these protocols.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from calendar_share.sharing.audit import ShareAuditEvent


@runtime_checkable
class ContentStore(Protocol):
    """Calendar content: organizations, posts, comments, reviews.

    Post mutations always take the organization id as a separate argument
    and must filter on it at the storage layer.
    """

    async def get_organization(self, organization_id: str) -> dict[str, Any] | None: ...

    async def get_snapshot(self, organization_id: str) -> dict[str, Any] | None:
        """``{'organization': ..., 'posts': [...]}`` read in one operation.

        Posts are newest first and each carries ``comments`` and ``reviews``.
        None when the organization does not exist.
        """
        ...

    async def get_post(self, organization_id: str, post_id: str) -> dict[str, Any] | None: ...
    async def create_post(self, organization_id: str, data: dict[str, Any]) -> dict[str, Any]: ...
    async def update_post(
        self, organization_id: str, post_id: str, data: dict[str, Any],
    ) -> dict[str, Any] | None: ...
    async def delete_post(self, organization_id: str, post_id: str) -> bool: ...
    async def add_comment(self, data: dict[str, Any]) -> dict[str, Any]: ...
    async def add_review(self, data: dict[str, Any]) -> dict[str, Any]: ...


@runtime_checkable
class AuditEmitter(Protocol):
    """Audit event sink for share operations."""

    async def emit(self, event: ShareAuditEvent) -> None: ...
