"""Link-based sharing: bearer-token grants scoped to one organization."""

from .audit import (
    InMemoryShareAuditEmitter,
    LoggingShareAuditEmitter,
    ShareAuditEvent,
    ShareEventType,
    record_share_event,
    redact_string,
    redact_token,
)
from .model import (
    ACCESS_EDIT,
    ACCESS_VIEW,
    DEFAULT_TTL,
    InMemoryShareGrantRepository,
    ShareGrant,
    ShareGrantExpired,
    ShareGrantNotFound,
    ShareGrantRepository,
    ShareTokenConflict,
    generate_share_token,
    hash_token,
)
from .errors import (
    Forbidden,
    InvalidPayload,
    InvalidToken,
    MissingToken,
    ResourceNotFound,
    ShareAccessError,
    ShareErrorCode,
    StoreFailure,
    UnknownAction,
)
from .permissions import REQUIRED_ACCESS, ShareAction, check_permission, is_allowed
from .validator import ShareTokenValidator
from .dispatcher import ShareActionDispatcher
from .gateway import ShareGateway, ShareOutcome, ShareResult
from .lifecycle import IssuedGrant, ShareGrantManager
from .access import create_share_access_router
from .routes import IssueShareRequest, create_share_router

__all__ = [
    'ACCESS_EDIT',
    'ACCESS_VIEW',
    'DEFAULT_TTL',
    'Forbidden',
    'InMemoryShareAuditEmitter',
    'InMemoryShareGrantRepository',
    'InvalidPayload',
    'InvalidToken',
    'IssueShareRequest',
    'IssuedGrant',
    'LoggingShareAuditEmitter',
    'MissingToken',
    'REQUIRED_ACCESS',
    'ResourceNotFound',
    'ShareAccessError',
    'ShareAction',
    'ShareActionDispatcher',
    'ShareAuditEvent',
    'ShareErrorCode',
    'ShareEventType',
    'ShareGateway',
    'ShareGrant',
    'ShareGrantExpired',
    'ShareGrantManager',
    'ShareGrantNotFound',
    'ShareGrantRepository',
    'ShareOutcome',
    'ShareResult',
    'ShareTokenConflict',
    'ShareTokenValidator',
    'StoreFailure',
    'UnknownAction',
    'check_permission',
    'create_share_access_router',
    'create_share_router',
    'generate_share_token',
    'hash_token',
    'is_allowed',
    'record_share_event',
    'redact_string',
    'redact_token',
]
