"""Externally visible share-access errors.

Every failure on the anonymous share path is one of these. Each carries a
stable machine code, an HTTP status and a short human-readable message that
is safe to show an untrusted caller. Internal detail (which token failed,
store error text) goes to logs, never into these messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ShareErrorCode(str, Enum):
    MISSING_TOKEN = 'missing_token'
    INVALID_TOKEN = 'invalid_token'
    FORBIDDEN = 'forbidden'
    UNKNOWN_ACTION = 'unknown_action'
    INVALID_PAYLOAD = 'invalid_payload'
    NOT_FOUND = 'not_found'
    STORE_FAILURE = 'store_failure'


class ShareAccessError(Exception):
    """Base class for share-path failures."""

    code: ShareErrorCode = ShareErrorCode.STORE_FAILURE
    status_code: int = 500
    message: str = 'Share request failed'

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {'error': self.code.value, 'detail': self.message}


class MissingToken(ShareAccessError):
    code = ShareErrorCode.MISSING_TOKEN
    status_code = 400
    message = 'Token is required'


class InvalidToken(ShareAccessError):
    """Unknown, revoked and expired tokens all collapse into this."""

    code = ShareErrorCode.INVALID_TOKEN
    status_code = 401
    message = 'Invalid or expired token'


class Forbidden(ShareAccessError):
    code = ShareErrorCode.FORBIDDEN
    status_code = 403
    message = 'Edit access required'


class UnknownAction(ShareAccessError):
    code = ShareErrorCode.UNKNOWN_ACTION
    status_code = 400
    message = 'Invalid action'


class InvalidPayload(ShareAccessError):
    code = ShareErrorCode.INVALID_PAYLOAD
    status_code = 400
    message = 'Invalid request payload'


class ResourceNotFound(ShareAccessError):
    code = ShareErrorCode.NOT_FOUND
    status_code = 404
    message = 'Post not found'


class StoreFailure(ShareAccessError):
    code = ShareErrorCode.STORE_FAILURE
    status_code = 500
    message = 'Share request failed'
