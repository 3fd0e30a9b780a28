"""Owner-only share-grant management endpoints.

  POST   /api/v1/organizations/{organization_id}/shares             → issue grant
  GET    /api/v1/organizations/{organization_id}/shares             → list active grants
  DELETE /api/v1/organizations/{organization_id}/shares/{grant_id}  → revoke grant

Auth contract:
  - Requires a verified owner identity (see ``calendar_share.security``).
  - The caller must be the organization's owner (``organizations.user_id``).
  - Unknown organization → 404; someone else's organization → 403.

Token security:
  - The plaintext token is returned exactly once, in the issue response.
  - Listing never returns tokens.

Store failures:
  - Supabase errors → 503 ``store_unavailable`` (detail logged only).
  - Token collisions on every issue attempt → 500 ``token_generation_failed``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Literal

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from calendar_share.db.errors import SupabaseError
from calendar_share.observability.logging import get_logger
from calendar_share.security.auth_guard import get_owner_identity
from calendar_share.security.token_verify import OwnerIdentity

from .audit import redact_string
from .lifecycle import ShareGrantManager
from .model import ShareTokenConflict

logger = get_logger(__name__)

MIN_EXPIRY_DAYS = 1
MAX_EXPIRY_DAYS = 365


class IssueShareRequest(BaseModel):
    """Request body for grant issuance.

    ``expires_in_days=None`` issues a grant that never expires; omitting it
    uses the configured default.
    """

    access_level: Literal['view', 'edit'] = 'view'
    expires_in_days: int | None = Field(
        default=None,
        description='Days until expiry; null for no expiry; omit for the default',
    )


async def _check_owner(content_store, organization_id: str, user_id: str) -> JSONResponse | None:
    """Return an error response unless ``user_id`` owns the organization."""
    organization = await content_store.get_organization(organization_id)
    if organization is None:
        return JSONResponse(
            status_code=404,
            content={'error': 'organization_not_found', 'detail': 'Organization not found.'},
        )
    if organization.get('user_id') != user_id:
        return JSONResponse(
            status_code=403,
            content={'error': 'forbidden', 'detail': 'Only the organization owner can manage share links.'},
        )
    return None


def _store_unavailable(exc: SupabaseError, organization_id: str) -> JSONResponse:
    logger.error(
        'share_management_store_error',
        organization_id=organization_id,
        status_code=exc.status_code,
        error=redact_string(str(exc)),
    )
    return JSONResponse(
        status_code=503,
        content={'error': 'store_unavailable', 'detail': 'Share storage is unavailable. Try again later.'},
    )


def create_share_router(
    manager: ShareGrantManager,
    content_store,
    *,
    default_ttl: timedelta = timedelta(days=30),
) -> APIRouter:
    """Create the owner share-management router.

    Args:
        manager: Grant lifecycle manager.
        content_store: Used to look up organization ownership.
        default_ttl: Expiry applied when the request omits one.
    """
    router = APIRouter(prefix='/api/v1/organizations/{organization_id}/shares', tags=['share-grants'])

    @router.post('', status_code=201)
    async def issue_share(
        organization_id: str,
        body: IssueShareRequest,
        identity: OwnerIdentity = Depends(get_owner_identity),
    ):
        try:
            deny = await _check_owner(content_store, organization_id, identity.user_id)
        except SupabaseError as exc:
            return _store_unavailable(exc, organization_id)
        if deny:
            return deny

        if 'expires_in_days' not in body.model_fields_set:
            ttl = default_ttl
        elif body.expires_in_days is None:
            ttl = None
        elif MIN_EXPIRY_DAYS <= body.expires_in_days <= MAX_EXPIRY_DAYS:
            ttl = timedelta(days=body.expires_in_days)
        else:
            return JSONResponse(
                status_code=400,
                content={
                    'error': 'invalid_expiry',
                    'detail': f'expires_in_days must be between {MIN_EXPIRY_DAYS} and {MAX_EXPIRY_DAYS}.',
                },
            )

        try:
            issued = await manager.issue(
                organization_id, body.access_level, ttl, created_by=identity.user_id,
            )
        except SupabaseError as exc:
            return _store_unavailable(exc, organization_id)
        except ShareTokenConflict:
            logger.error('share_token_generation_failed', organization_id=organization_id)
            return JSONResponse(
                status_code=500,
                content={'error': 'token_generation_failed', 'detail': 'Could not generate a share link. Try again.'},
            )
        return {**issued.grant.to_public_dict(), 'token': issued.token}

    @router.get('')
    async def list_shares(
        organization_id: str,
        identity: OwnerIdentity = Depends(get_owner_identity),
    ):
        try:
            deny = await _check_owner(content_store, organization_id, identity.user_id)
            if deny:
                return deny
            grants = await manager.list_active(organization_id)
        except SupabaseError as exc:
            return _store_unavailable(exc, organization_id)
        return {'shares': [g.to_public_dict() for g in grants]}

    @router.delete('/{grant_id}')
    async def revoke_share(
        organization_id: str,
        grant_id: str,
        identity: OwnerIdentity = Depends(get_owner_identity),
    ):
        """Revoke a grant. Idempotent."""
        try:
            deny = await _check_owner(content_store, organization_id, identity.user_id)
            if deny:
                return deny
            grant = await manager.revoke(grant_id, organization_id, revoked_by=identity.user_id)
        except SupabaseError as exc:
            return _store_unavailable(exc, organization_id)
        if grant is None:
            return JSONResponse(
                status_code=404,
                content={'error': 'share_not_found', 'detail': f'Share {grant_id} not found in organization.'},
            )
        return grant.to_public_dict()

    return router
