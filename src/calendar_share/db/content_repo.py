"""Supabase-backed ContentStore for the calendar tables.

Tables: ``organizations``, ``posts``, ``post_comments``, ``post_reviews``.

Post writes always carry an ``organization_id`` equality filter in addition
to the row id, so a request scoped to one organization cannot touch another
organization's rows even if it names their ids.
"""

from __future__ import annotations

from typing import Any

from .supabase_client import SupabaseClient

_COMMENT_COLUMNS = 'id,post_id,content,created_by,created_at'
_REVIEW_COLUMNS = 'id,post_id,status,reviewed_by,review_notes,created_at'

# One embedded select returns the organization, its posts and their feedback
# together, so readers never see a post without its comments/reviews.
_SNAPSHOT_COLUMNS = (
    '*,posts(*,'
    f'comments:post_comments({_COMMENT_COLUMNS}),'
    f'reviews:post_reviews({_REVIEW_COLUMNS}))'
)


def _by_created(rows: list[dict[str, Any]], *, newest_first: bool) -> list[dict[str, Any]]:
    return sorted(rows, key=lambda r: r.get('created_at') or '', reverse=newest_first)


class SupabaseContentStore:
    ORGANIZATIONS = 'organizations'
    POSTS = 'posts'
    COMMENTS = 'post_comments'
    REVIEWS = 'post_reviews'

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get_organization(self, organization_id: str) -> dict[str, Any] | None:
        rows = await self._client.select(
            self.ORGANIZATIONS, filters={'id': ('eq', organization_id)}, limit=1,
        )
        return rows[0] if rows else None

    async def get_snapshot(self, organization_id: str) -> dict[str, Any] | None:
        rows = await self._client.select(
            self.ORGANIZATIONS,
            filters={'id': ('eq', organization_id)},
            columns=_SNAPSHOT_COLUMNS,
            limit=1,
        )
        if not rows:
            return None
        organization = dict(rows[0])
        posts = organization.pop('posts', None) or []
        for post in posts:
            post['comments'] = _by_created(post.get('comments') or [], newest_first=False)
            post['reviews'] = _by_created(post.get('reviews') or [], newest_first=False)
        return {
            'organization': organization,
            'posts': _by_created(posts, newest_first=True),
        }

    async def get_post(self, organization_id: str, post_id: str) -> dict[str, Any] | None:
        rows = await self._client.select(
            self.POSTS,
            filters={'id': ('eq', post_id), 'organization_id': ('eq', organization_id)},
            limit=1,
        )
        return rows[0] if rows else None

    async def create_post(self, organization_id: str, data: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(self.POSTS, {**data, 'organization_id': organization_id})
        return rows[0]

    async def update_post(
        self, organization_id: str, post_id: str, data: dict[str, Any],
    ) -> dict[str, Any] | None:
        changes = {k: v for k, v in data.items() if k not in ('id', 'organization_id')}
        rows = await self._client.update(
            self.POSTS,
            filters={'id': ('eq', post_id), 'organization_id': ('eq', organization_id)},
            data=changes,
        )
        return rows[0] if rows else None

    async def delete_post(self, organization_id: str, post_id: str) -> bool:
        rows = await self._client.delete(
            self.POSTS,
            filters={'id': ('eq', post_id), 'organization_id': ('eq', organization_id)},
        )
        return len(rows) > 0

    async def add_comment(self, data: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(self.COMMENTS, data)
        return rows[0]

    async def add_review(self, data: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(self.REVIEWS, data)
        return rows[0]
