"""Bearer-token resolution for anonymous share requests.

``ShareTokenValidator.resolve`` maps a presented token to a live grant:

  - No matching hash            → ShareGrantNotFound(reason='unknown')
  - Matching but revoked        → ShareGrantNotFound(reason='revoked')
  - Active but past expires_at  → ShareGrantExpired

Every call hashes the token and performs exactly one lookup regardless of
outcome, so unknown, revoked and expired tokens take the same path. The
gateway collapses all three into one ``invalid_token`` response.
"""

from __future__ import annotations

import hmac
from datetime import datetime

from .model import (
    ShareGrant,
    ShareGrantExpired,
    ShareGrantNotFound,
    ShareGrantRepository,
    hash_token,
    utcnow,
)

# Compared against when no row matched, so a miss still does a digest compare.
_NULL_HASH = '0' * 64


class ShareTokenValidator:
    """Resolves bearer tokens against a ShareGrantRepository. Stateless."""

    def __init__(self, grant_repo: ShareGrantRepository) -> None:
        self._grant_repo = grant_repo

    async def resolve(self, token: str, *, now: datetime | None = None) -> ShareGrant:
        presented = hash_token(token or '')
        grant = await self._grant_repo.get_by_token_hash(presented)

        stored = grant.token_hash if grant is not None else _NULL_HASH
        matched = hmac.compare_digest(stored, presented)

        if grant is None or not matched:
            raise ShareGrantNotFound('unknown')
        if not grant.active:
            raise ShareGrantNotFound('revoked', grant.id)
        if grant.is_expired(now or utcnow()):
            raise ShareGrantExpired(grant.id, grant.expires_at)  # type: ignore[arg-type]
        return grant
