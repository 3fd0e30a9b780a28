"""Owner authentication for the share-management API."""

from .auth_guard import AuthGuardMiddleware, get_owner_identity
from .token_verify import (
    OwnerIdentity,
    TokenVerificationError,
    TokenVerifier,
    create_token_verifier,
    extract_bearer_token,
)

__all__ = [
    'AuthGuardMiddleware',
    'OwnerIdentity',
    'TokenVerificationError',
    'TokenVerifier',
    'create_token_verifier',
    'extract_bearer_token',
    'get_owner_identity',
]
