"""Supabase-backed ShareGrantRepository.

Persists grants in ``share_grants`` via PostgREST. Expected schema::

    create table share_grants (
        id uuid primary key default gen_random_uuid(),
        organization_id uuid not null references organizations(id) on delete cascade,
        token_hash text not null unique,
        access_level text not null check (access_level in ('view', 'edit')),
        issued_at timestamptz not null default now(),
        expires_at timestamptz,
        active boolean not null default true,
        created_by uuid
    );

Rows are never deleted by this service, so the unique ``token_hash``
constraint also guarantees tokens are never recycled.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from calendar_share.sharing.model import ShareGrant, ShareTokenConflict, utcnow

from .errors import UNIQUE_VIOLATION, SupabaseConflictError
from .supabase_client import SupabaseClient


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        # timestamp (without time zone) columns come back naive; they hold UTC.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_grant(row: dict[str, Any]) -> ShareGrant:
    return ShareGrant(
        id=str(row['id']),
        organization_id=str(row['organization_id']),
        token_hash=row['token_hash'],
        access_level=row['access_level'],
        expires_at=_parse_ts(row.get('expires_at')),
        active=bool(row.get('active', True)),
        created_by=str(row.get('created_by') or ''),
        issued_at=_parse_ts(row.get('issued_at')) or utcnow(),
    )


class SupabaseShareGrantRepository:
    """ShareGrantRepository backed by ``share_grants``."""

    TABLE = 'share_grants'

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def create(self, grant: ShareGrant) -> ShareGrant:
        row = {
            'organization_id': grant.organization_id,
            'token_hash': grant.token_hash,
            'access_level': grant.access_level,
            'issued_at': grant.issued_at.isoformat(),
            'expires_at': grant.expires_at.isoformat() if grant.expires_at else None,
            'active': grant.active,
            'created_by': grant.created_by or None,
        }
        try:
            rows = await self._client.insert(self.TABLE, row)
        except SupabaseConflictError as exc:
            if exc.code in (None, UNIQUE_VIOLATION):
                raise ShareTokenConflict(grant.token_hash[:8]) from exc
            raise
        return _row_to_grant(rows[0])

    async def get_by_token_hash(self, token_hash: str) -> ShareGrant | None:
        rows = await self._client.select(
            self.TABLE,
            filters={'token_hash': ('eq', token_hash)},
            limit=1,
        )
        return _row_to_grant(rows[0]) if rows else None

    async def list_for_organization(
        self,
        organization_id: str,
        *,
        active_only: bool = True,
    ) -> list[ShareGrant]:
        filters: dict[str, Any] = {'organization_id': ('eq', organization_id)}
        if active_only:
            filters['active'] = ('is', True)
        rows = await self._client.select(self.TABLE, filters=filters, order='issued_at.desc')
        return [_row_to_grant(r) for r in rows]

    async def deactivate(self, grant_id: str, organization_id: str) -> ShareGrant | None:
        rows = await self._client.update(
            self.TABLE,
            filters={
                'id': ('eq', grant_id),
                'organization_id': ('eq', organization_id),
            },
            data={'active': False},
        )
        return _row_to_grant(rows[0]) if rows else None
