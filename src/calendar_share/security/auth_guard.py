"""Owner auth guard.

Verifies ``Authorization: Bearer <supabase_access_token>`` on owner routes
and sets ``request.state.owner_identity``. The anonymous share endpoint and
health check are exempt: share tokens are validated by the share pipeline,
not here.
"""

from __future__ import annotations

from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .token_verify import (
    OwnerIdentity,
    TokenVerificationError,
    TokenVerifier,
    extract_bearer_token,
)

DEFAULT_EXEMPT_PATHS: tuple[str, ...] = (
    '/health',
    '/api/v1/share',
    '/docs',
    '/openapi.json',
)


def _unauthorized(code: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={'error': 'unauthorized', 'code': code, 'detail': detail},
        headers={'WWW-Authenticate': 'Bearer'},
    )


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Rejects owner-route requests without a valid owner JWT.

    Args:
        app: The ASGI application.
        token_verifier: Verifier for Supabase access tokens.
        exempt_paths: Exact paths that skip verification.
    """

    def __init__(
        self,
        app,
        token_verifier: TokenVerifier,
        exempt_paths: tuple[str, ...] = DEFAULT_EXEMPT_PATHS,
    ) -> None:
        super().__init__(app)
        self._verifier = token_verifier
        self._exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.owner_identity = None

        if request.method == 'OPTIONS' or request.url.path in self._exempt_paths:
            return await call_next(request)

        token = extract_bearer_token(request)
        if not token:
            return _unauthorized('no_credentials', 'Authentication required')

        try:
            request.state.owner_identity = self._verifier.verify(token)
        except TokenVerificationError as exc:
            return _unauthorized(exc.code, 'Invalid access token')
        return await call_next(request)


def get_owner_identity(request: Request) -> OwnerIdentity:
    """FastAPI dependency returning the verified owner.

    Raises:
        HTTPException: 401 when no identity was set by the guard.
    """
    identity: OwnerIdentity | None = getattr(request.state, 'owner_identity', None)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={'error': 'unauthorized', 'code': 'no_credentials', 'detail': 'Authentication required'},
            headers={'WWW-Authenticate': 'Bearer'},
        )
    return identity
