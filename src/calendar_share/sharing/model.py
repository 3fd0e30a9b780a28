"""Share-grant domain model with token-hash persistence.

A share grant delegates revocable, time-bounded access to one organization's
calendar. The bearer token is the only credential:

  - Only ``token_hash`` (SHA-256) is persisted; the plaintext token is
    returned to the issuing owner once and never stored.
  - A grant is *live* iff ``active`` and not past ``expires_at``
    (``expires_at=None`` never expires). Expiry is evaluated lazily.
  - Token hashes are unique across all grants, including revoked and
    expired ones, so a token is never recycled.

This module provides:
  1. ``ShareGrant`` — domain object matching the ``share_grants`` table.
  2. ``ShareGrantRepository`` — storage protocol.
  3. ``InMemoryShareGrantRepository`` — local/test implementation.
  4. ``generate_share_token`` / ``hash_token`` — token helpers.
  5. Domain exceptions raised by validation and storage.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

# ── Constants ─────────────────────────────────────────────────────────

TOKEN_BYTES = 32  # 256-bit tokens.
DEFAULT_TTL = timedelta(days=30)

ACCESS_VIEW = 'view'
ACCESS_EDIT = 'edit'
VALID_ACCESS_LEVELS = frozenset({ACCESS_VIEW, ACCESS_EDIT})


# ── Token operations ──────────────────────────────────────────────────


def generate_share_token() -> str:
    """Generate a cryptographically random URL-safe share token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(plaintext: str) -> str:
    """SHA-256 hex digest of a plaintext token (the persisted value)."""
    return hashlib.sha256(plaintext.encode('utf-8')).hexdigest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Domain exceptions ─────────────────────────────────────────────────


class ShareGrantNotFound(Exception):
    """No live-able grant matches the token (unknown or revoked).

    ``reason`` is for server-side logs only; callers never see it.
    """

    def __init__(self, reason: str = 'unknown', grant_id: str | None = None) -> None:
        self.reason = reason
        self.grant_id = grant_id
        super().__init__(f'share grant not found ({reason})')


class ShareGrantExpired(Exception):
    """Grant is active but has passed its expiry time."""

    def __init__(self, grant_id: str, expired_at: datetime) -> None:
        self.grant_id = grant_id
        self.expired_at = expired_at
        super().__init__(f'Share grant {grant_id} expired at {expired_at}')


class ShareTokenConflict(Exception):
    """Storage rejected a grant because its token hash already exists."""


# ── Domain model ──────────────────────────────────────────────────────


@dataclass
class ShareGrant:
    """Share grant matching the ``share_grants`` table.

    Attributes:
        id: Storage-assigned identity.
        organization_id: The scoped tenant.
        token_hash: SHA-256 hash of the plaintext bearer token.
        access_level: ``view`` or ``edit``.
        issued_at: Issuance timestamp.
        expires_at: Expiry; None means the grant never expires.
        active: False once revoked.
        created_by: Owner user id that issued the grant.
    """

    id: str
    organization_id: str
    token_hash: str
    access_level: str
    expires_at: datetime | None
    active: bool = True
    created_by: str = ''
    issued_at: datetime = field(default_factory=utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) >= self.expires_at

    def is_live(self, now: datetime | None = None) -> bool:
        return self.active and not self.is_expired(now)

    def to_public_dict(self) -> dict[str, Any]:
        """Owner-facing view of the grant. Never includes the token."""
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'access_level': self.access_level,
            'issued_at': self.issued_at.isoformat(),
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'active': self.active,
            'is_expired': self.is_expired(),
            'created_by': self.created_by,
        }


# ── Repository protocol ──────────────────────────────────────────────


class ShareGrantRepository(Protocol):
    """Abstract share-grant storage.

    Implementations: InMemoryShareGrantRepository (local/testing),
    SupabaseShareGrantRepository (production).
    """

    async def create(self, grant: ShareGrant) -> ShareGrant:
        """Persist a new grant.

        Raises:
            ShareTokenConflict: ``token_hash`` already exists.
        """
        ...

    async def get_by_token_hash(self, token_hash: str) -> ShareGrant | None: ...

    async def list_for_organization(
        self, organization_id: str, *, active_only: bool = True,
    ) -> list[ShareGrant]: ...

    async def deactivate(
        self, grant_id: str, organization_id: str,
    ) -> ShareGrant | None: ...


# ── In-memory implementation ─────────────────────────────────────────


class InMemoryShareGrantRepository:
    """In-memory share grant store for local development and tests."""

    def __init__(self) -> None:
        self._grants: dict[str, ShareGrant] = {}
        self._by_hash: dict[str, str] = {}
        self._next_id: int = 1

    async def create(self, grant: ShareGrant) -> ShareGrant:
        if grant.token_hash in self._by_hash:
            raise ShareTokenConflict(grant.token_hash[:8])
        stored = replace(grant, id=f'grant_{self._next_id}')
        self._next_id += 1
        self._grants[stored.id] = stored
        self._by_hash[stored.token_hash] = stored.id
        return replace(stored)

    async def get_by_token_hash(self, token_hash: str) -> ShareGrant | None:
        grant_id = self._by_hash.get(token_hash)
        if grant_id is None:
            return None
        return replace(self._grants[grant_id])

    async def list_for_organization(
        self,
        organization_id: str,
        *,
        active_only: bool = True,
    ) -> list[ShareGrant]:
        result = [
            replace(g) for g in self._grants.values()
            if g.organization_id == organization_id and (g.active or not active_only)
        ]
        # Reversed insertion order breaks issued_at ties newest-first.
        return sorted(reversed(result), key=lambda g: g.issued_at, reverse=True)

    async def deactivate(
        self, grant_id: str, organization_id: str,
    ) -> ShareGrant | None:
        grant = self._grants.get(grant_id)
        if grant is None or grant.organization_id != organization_id:
            return None
        grant.active = False
        return replace(grant)
