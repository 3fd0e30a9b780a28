"""Executes authorized share actions against the content store.

Each action has one entry in the dispatch table: the pydantic model its
payload must satisfy and the coroutine that performs it. The dispatcher
assumes the grant has already been validated and permission-checked.

Tenant scoping:
  Every read and write uses ``grant.organization_id``. Any
  ``organization_id`` in the payload is dropped before validation.
  Update/delete additionally filter on the organization in the store, and
  comments/reviews are only accepted for posts inside the organization.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from calendar_share.db.errors import SupabaseError, is_invalid_input
from calendar_share.observability.logging import get_logger

from .audit import redact_string
from .errors import InvalidPayload, ResourceNotFound, StoreFailure
from .model import ShareGrant
from .permissions import ShareAction

if TYPE_CHECKING:
    from calendar_share.protocols import ContentStore

logger = get_logger(__name__)

ANONYMOUS = 'Anonymous'

PostStatus = Literal['process', 'scheduled', 'posted']


# ── Payload schemas ──────────────────────────────────────────────────


class _Payload(BaseModel):
    model_config = ConfigDict(extra='ignore')


class EmptyPayload(_Payload):
    pass


class CreatePostPayload(_Payload):
    date: dt.date = Field(..., description='Calendar date (YYYY-MM-DD)')
    content: str = ''
    media_url: str | None = None
    status: PostStatus = 'process'


class UpdatePostPayload(_Payload):
    id: str = Field(..., min_length=1)
    date: dt.date | None = None
    content: str | None = None
    media_url: str | None = None
    status: PostStatus | None = None

    @field_validator('date', 'content', 'status')
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; only media_url may be cleared.
        if value is None:
            raise ValueError('may not be null')
        return value


class DeletePostPayload(_Payload):
    id: str = Field(..., min_length=1)


class AddCommentPayload(_Payload):
    post_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    created_by: str | None = None


class AddReviewPayload(_Payload):
    post_id: str = Field(..., min_length=1)
    status: Literal['approved', 'rejected']
    review_notes: str | None = None
    reviewed_by: str | None = None


def _author(name: str | None) -> str:
    """Display label for anonymous feedback; never used for authorization."""
    if name is None or not name.strip():
        return ANONYMOUS
    return name.strip()


Handler = Callable[[ShareGrant, Any], Awaitable[Any]]


@dataclass(frozen=True)
class _Route:
    payload_model: type[BaseModel]
    handler: Handler


# ── Dispatcher ───────────────────────────────────────────────────────


class ShareActionDispatcher:
    """Runs one authorized action and returns its JSON-ready result.

    Raises:
        InvalidPayload: payload fails its schema, or the store rejects one of
            its values (malformed uuid, NULL in a required column).
        ResourceNotFound: target post is absent from the grant's organization.
        StoreFailure: the content store failed; detail is logged only.
    """

    def __init__(self, content_store: ContentStore) -> None:
        self._store = content_store
        self._routes: dict[ShareAction, _Route] = {
            ShareAction.VERIFY: _Route(EmptyPayload, self._verify),
            ShareAction.GET_DATA: _Route(EmptyPayload, self._get_data),
            ShareAction.CREATE_POST: _Route(CreatePostPayload, self._create_post),
            ShareAction.UPDATE_POST: _Route(UpdatePostPayload, self._update_post),
            ShareAction.DELETE_POST: _Route(DeletePostPayload, self._delete_post),
            ShareAction.ADD_COMMENT: _Route(AddCommentPayload, self._add_comment),
            ShareAction.ADD_REVIEW: _Route(AddReviewPayload, self._add_review),
        }

    async def dispatch(
        self,
        grant: ShareGrant,
        action: ShareAction,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        route = self._routes[action]
        body = {k: v for k, v in (payload or {}).items() if k != 'organization_id'}
        try:
            parsed = route.payload_model.model_validate(body)
        except ValidationError as exc:
            fields = sorted({'.'.join(str(p) for p in e['loc']) for e in exc.errors()})
            raise InvalidPayload(f'Invalid request payload: {", ".join(fields)}') from None

        try:
            return await route.handler(grant, parsed)
        except SupabaseError as exc:
            if is_invalid_input(exc):
                logger.info(
                    'share_payload_rejected_by_store',
                    action=action.value,
                    organization_id=grant.organization_id,
                    code=exc.code,
                )
                raise InvalidPayload() from None
            logger.error(
                'share_store_failure',
                action=action.value,
                organization_id=grant.organization_id,
                status_code=exc.status_code,
                error=redact_string(str(exc)),
                transient=exc.is_transient,
            )
            raise StoreFailure() from exc

    # ── Handlers ────────────────────────────────────────────────────

    async def _verify(self, grant: ShareGrant, _: EmptyPayload) -> dict[str, Any]:
        return {
            'valid': True,
            'organization_id': grant.organization_id,
            'access_level': grant.access_level,
        }

    async def _get_data(self, grant: ShareGrant, _: EmptyPayload) -> dict[str, Any]:
        snapshot = await self._store.get_snapshot(grant.organization_id)
        if snapshot is None:
            raise ResourceNotFound('Organization not found')
        return snapshot

    async def _create_post(self, grant: ShareGrant, body: CreatePostPayload) -> dict[str, Any]:
        data = body.model_dump(mode='json')
        # Posts created through a link are attributed to the owner who shared it.
        data['user_id'] = grant.created_by or None
        return await self._store.create_post(grant.organization_id, data)

    async def _update_post(self, grant: ShareGrant, body: UpdatePostPayload) -> dict[str, Any]:
        changes = body.model_dump(mode='json', exclude={'id'}, exclude_unset=True)
        if not changes:
            raise InvalidPayload('Nothing to update')
        updated = await self._store.update_post(grant.organization_id, body.id, changes)
        if updated is None:
            raise ResourceNotFound()
        return updated

    async def _delete_post(self, grant: ShareGrant, body: DeletePostPayload) -> dict[str, Any]:
        if not await self._store.delete_post(grant.organization_id, body.id):
            raise ResourceNotFound()
        return {'success': True}

    async def _require_post(self, grant: ShareGrant, post_id: str) -> None:
        if await self._store.get_post(grant.organization_id, post_id) is None:
            raise ResourceNotFound()

    async def _add_comment(self, grant: ShareGrant, body: AddCommentPayload) -> dict[str, Any]:
        await self._require_post(grant, body.post_id)
        return await self._store.add_comment({
            'post_id': body.post_id,
            'content': body.content,
            'created_by': _author(body.created_by),
        })

    async def _add_review(self, grant: ShareGrant, body: AddReviewPayload) -> dict[str, Any]:
        await self._require_post(grant, body.post_id)
        return await self._store.add_review({
            'post_id': body.post_id,
            'status': body.status,
            'review_notes': body.review_notes,
            'reviewed_by': _author(body.reviewed_by),
        })
