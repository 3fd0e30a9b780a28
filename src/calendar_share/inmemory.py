"""In-memory content store for local development and tests.

Used when ENVIRONMENT=local. Satisfies ``ContentStore`` but keeps
everything in dicts (no persistence across restarts). No method awaits
between reading and writing, so each call is atomic on the event loop.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryContentStore:
    def __init__(self) -> None:
        self._organizations: dict[str, dict[str, Any]] = {}
        self._posts: dict[str, dict[str, Any]] = {}
        self._comments: list[dict[str, Any]] = []
        self._reviews: list[dict[str, Any]] = []

    # ── Seeding helpers (owner-side flows live outside this service) ──

    def add_organization(self, name: str, user_id: str, organization_id: str | None = None) -> dict[str, Any]:
        org_id = organization_id or f'org_{uuid.uuid4().hex[:8]}'
        organization = {'id': org_id, 'name': name, 'user_id': user_id, 'created_at': _now()}
        self._organizations[org_id] = organization
        return copy.deepcopy(organization)

    # ── ContentStore ─────────────────────────────────────────────────

    async def get_organization(self, organization_id: str) -> dict[str, Any] | None:
        organization = self._organizations.get(organization_id)
        return copy.deepcopy(organization) if organization else None

    async def get_snapshot(self, organization_id: str) -> dict[str, Any] | None:
        organization = self._organizations.get(organization_id)
        if organization is None:
            return None
        posts = []
        for post in self._posts.values():
            if post['organization_id'] != organization_id:
                continue
            posts.append({
                **post,
                'comments': [c for c in self._comments if c['post_id'] == post['id']],
                'reviews': [r for r in self._reviews if r['post_id'] == post['id']],
            })
        posts.sort(key=lambda p: p['created_at'], reverse=True)
        return copy.deepcopy({'organization': organization, 'posts': posts})

    async def get_post(self, organization_id: str, post_id: str) -> dict[str, Any] | None:
        post = self._posts.get(post_id)
        if post is None or post['organization_id'] != organization_id:
            return None
        return copy.deepcopy(post)

    async def create_post(self, organization_id: str, data: dict[str, Any]) -> dict[str, Any]:
        now = _now()
        post = {
            'media_url': None,
            'user_id': None,
            **data,
            'id': str(uuid.uuid4()),
            'organization_id': organization_id,
            'created_at': now,
            'updated_at': now,
        }
        self._posts[post['id']] = post
        return copy.deepcopy(post)

    async def update_post(
        self, organization_id: str, post_id: str, data: dict[str, Any],
    ) -> dict[str, Any] | None:
        post = self._posts.get(post_id)
        if post is None or post['organization_id'] != organization_id:
            return None
        changes = {k: v for k, v in data.items() if k not in ('id', 'organization_id')}
        post.update({**changes, 'updated_at': _now()})
        return copy.deepcopy(post)

    async def delete_post(self, organization_id: str, post_id: str) -> bool:
        post = self._posts.get(post_id)
        if post is None or post['organization_id'] != organization_id:
            return False
        del self._posts[post_id]
        # Mirrors the ON DELETE CASCADE on post_comments/post_reviews.
        self._comments = [c for c in self._comments if c['post_id'] != post_id]
        self._reviews = [r for r in self._reviews if r['post_id'] != post_id]
        return True

    async def add_comment(self, data: dict[str, Any]) -> dict[str, Any]:
        comment = {**data, 'id': str(uuid.uuid4()), 'created_at': _now()}
        self._comments.append(comment)
        return copy.deepcopy(comment)

    async def add_review(self, data: dict[str, Any]) -> dict[str, Any]:
        review = {**data, 'id': str(uuid.uuid4()), 'created_at': _now()}
        self._reviews.append(review)
        return copy.deepcopy(review)
