"""Issuance, revocation and listing of share grants.

Callers are responsible for proving the caller owns the organization
(see ``calendar_share.sharing.routes``); this manager only talks to the
grant store and the audit sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from calendar_share.observability.logging import get_logger

from .audit import ShareEventType, record_share_event
from .model import (
    DEFAULT_TTL,
    VALID_ACCESS_LEVELS,
    ShareGrant,
    ShareGrantRepository,
    ShareTokenConflict,
    generate_share_token,
    hash_token,
    utcnow,
)

if TYPE_CHECKING:
    from calendar_share.protocols import AuditEmitter

logger = get_logger(__name__)

MAX_ISSUE_ATTEMPTS = 3

_UNSET = object()


@dataclass(frozen=True)
class IssuedGrant:
    """A freshly issued grant plus its plaintext token (shown once)."""

    grant: ShareGrant
    token: str


class ShareGrantManager:
    def __init__(self, grant_repo: ShareGrantRepository, audit_emitter: AuditEmitter) -> None:
        self._grant_repo = grant_repo
        self._audit = audit_emitter

    async def issue(
        self,
        organization_id: str,
        access_level: str,
        ttl: timedelta | None | object = _UNSET,
        *,
        created_by: str = '',
    ) -> IssuedGrant:
        """Mint a new grant.

        ``ttl`` defaults to 30 days; pass ``None`` for a grant that never
        expires. A token-hash collision regenerates the token rather than
        overwriting the existing grant.

        Raises:
            ValueError: unknown access level or non-positive ttl.
            ShareTokenConflict: every attempt collided.
        """
        if access_level not in VALID_ACCESS_LEVELS:
            raise ValueError(
                f'access_level must be one of {sorted(VALID_ACCESS_LEVELS)}, got {access_level!r}'
            )
        if ttl is _UNSET:
            ttl = DEFAULT_TTL
        if ttl is not None and ttl <= timedelta(0):  # type: ignore[operator]
            raise ValueError('ttl must be positive')

        for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
            token = generate_share_token()
            now = utcnow()
            candidate = ShareGrant(
                id='',  # Assigned by repository.
                organization_id=organization_id,
                token_hash=hash_token(token),
                access_level=access_level,
                expires_at=now + ttl if ttl is not None else None,  # type: ignore[operator]
                active=True,
                created_by=created_by,
                issued_at=now,
            )
            try:
                grant = await self._grant_repo.create(candidate)
            except ShareTokenConflict:
                logger.warning('share_token_collision', attempt=attempt, organization_id=organization_id)
                continue

            await record_share_event(
                self._audit,
                ShareEventType.ISSUED,
                token=token,
                organization_id=organization_id,
                grant_id=grant.id,
                access_level=access_level,
                actor_user_id=created_by,
            )
            logger.info(
                'share_issued',
                grant_id=grant.id,
                organization_id=organization_id,
                access_level=access_level,
            )
            return IssuedGrant(grant=grant, token=token)

        raise ShareTokenConflict(f'no unique token after {MAX_ISSUE_ATTEMPTS} attempts')

    async def revoke(
        self,
        grant_id: str,
        organization_id: str,
        *,
        revoked_by: str = '',
    ) -> ShareGrant | None:
        """Deactivate a grant. Idempotent; None if not in this organization."""
        grant = await self._grant_repo.deactivate(grant_id, organization_id)
        if grant is None:
            return None
        await record_share_event(
            self._audit,
            ShareEventType.REVOKED,
            organization_id=organization_id,
            grant_id=grant.id,
            access_level=grant.access_level,
            actor_user_id=revoked_by,
        )
        logger.info('share_revoked', grant_id=grant.id, organization_id=organization_id)
        return grant

    async def list_active(self, organization_id: str) -> list[ShareGrant]:
        """Active grants, newest first. Expired-but-active grants included."""
        return await self._grant_repo.list_for_organization(organization_id, active_only=True)
