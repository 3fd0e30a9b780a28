"""Request pipeline for anonymous share access.

One request runs through::

    Received → Validating ─┬→ Rejected
                           ├→ StoreError
                           └→ Authorizing ─┬→ Forbidden
                                           └→ Dispatching ─┬→ Applied
                                                           └→ StoreError

``Rejected`` also covers malformed requests (missing token, unknown action,
bad payload, missing target post). Every outcome except Applied is
recorded as a ``share.denied`` audit event. Nothing is retried here; the caller
decides whether to retry, since creates are not idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from calendar_share.db.errors import SupabaseError
from calendar_share.observability.logging import get_logger

from .audit import ShareEventType, record_share_event, redact_string, redact_token
from .dispatcher import ShareActionDispatcher
from .errors import (
    Forbidden,
    InvalidToken,
    MissingToken,
    ShareAccessError,
    StoreFailure,
)
from .model import ShareGrantExpired, ShareGrantNotFound
from .permissions import check_permission, parse_action
from .validator import ShareTokenValidator

if TYPE_CHECKING:
    from calendar_share.protocols import AuditEmitter

logger = get_logger(__name__)


class ShareOutcome(str, Enum):
    APPLIED = 'applied'
    REJECTED = 'rejected'
    FORBIDDEN = 'forbidden'
    STORE_ERROR = 'store_error'


@dataclass(frozen=True)
class ShareResult:
    outcome: ShareOutcome
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return self.outcome is ShareOutcome.APPLIED


class ShareGateway:
    """Validates, authorizes and dispatches one share request."""

    def __init__(
        self,
        validator: ShareTokenValidator,
        dispatcher: ShareActionDispatcher,
        audit_emitter: AuditEmitter,
    ) -> None:
        self._validator = validator
        self._dispatcher = dispatcher
        self._audit = audit_emitter

    async def handle(
        self,
        token: str | None,
        action: str | None,
        payload: dict[str, Any] | None = None,
    ) -> ShareResult:
        log = logger.bind(token=redact_token(token), action=action)

        # Validating
        if not token:
            return await self._reject(MissingToken(), log, token, action)
        try:
            grant = await self._validator.resolve(token)
        except ShareGrantNotFound as exc:
            return await self._reject(InvalidToken(), log, token, action, reason=exc.reason)
        except ShareGrantExpired as exc:
            return await self._reject(
                InvalidToken(), log, token, action, reason='expired', grant_id=exc.grant_id,
            )
        except SupabaseError as exc:
            log.error(
                'share_grant_lookup_failed',
                status_code=exc.status_code,
                error=redact_string(str(exc)),
            )
            return await self._store_error(StoreFailure(), log, token, action)

        log = log.bind(grant_id=grant.id, organization_id=grant.organization_id)

        # Authorizing
        try:
            share_action = parse_action(action)
            check_permission(grant, share_action)
        except ShareAccessError as exc:
            return await self._reject(
                exc, log, token, action,
                organization_id=grant.organization_id, grant_id=grant.id,
            )

        # Dispatching
        try:
            result = await self._dispatcher.dispatch(grant, share_action, payload)
        except StoreFailure as exc:
            return await self._store_error(
                exc, log, token, action,
                organization_id=grant.organization_id, grant_id=grant.id,
            )
        except ShareAccessError as exc:
            return await self._reject(
                exc, log, token, action,
                organization_id=grant.organization_id, grant_id=grant.id,
            )

        await record_share_event(
            self._audit,
            ShareEventType.ACCESSED,
            token=token,
            organization_id=grant.organization_id,
            grant_id=grant.id,
            action=share_action.value,
            access_level=grant.access_level,
        )
        log.info('share_applied', access_level=grant.access_level)
        return ShareResult(ShareOutcome.APPLIED, 200, result)

    async def _reject(
        self,
        error: ShareAccessError,
        log,
        token: str | None,
        action: str | None,
        *,
        reason: str | None = None,
        organization_id: str = '',
        grant_id: str | None = None,
    ) -> ShareResult:
        detail = reason or error.code.value
        outcome = ShareOutcome.FORBIDDEN if isinstance(error, Forbidden) else ShareOutcome.REJECTED
        log.info('share_denied', outcome=outcome.value, reason=detail)
        await record_share_event(
            self._audit,
            ShareEventType.DENIED,
            token=token,
            action=action or '',
            detail=detail,
            organization_id=organization_id,
            grant_id=grant_id,
        )
        return ShareResult(outcome, error.status_code, error.to_dict())

    async def _store_error(
        self,
        error: StoreFailure,
        log,
        token: str | None,
        action: str | None,
        *,
        organization_id: str = '',
        grant_id: str | None = None,
    ) -> ShareResult:
        log.error('share_store_error')
        await record_share_event(
            self._audit,
            ShareEventType.DENIED,
            token=token,
            action=action or '',
            detail=error.code.value,
            organization_id=organization_id,
            grant_id=grant_id,
        )
        return ShareResult(ShareOutcome.STORE_ERROR, error.status_code, error.to_dict())
