"""Owner access-token verification.

Owners sign in through Supabase Auth; this module only verifies the JWT
Supabase issued and turns it into an ``OwnerIdentity``:

  - JWKS (RS256) from ``<SUPABASE_URL>/auth/v1/.well-known/jwks.json`` when a
    project URL is configured.
  - A static HS256 secret (``SUPABASE_JWT_SECRET``) otherwise, for local dev.

Share tokens are *not* JWTs and never pass through here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import jwt
from jwt import PyJWKClient, PyJWKClientError
from starlette.requests import Request

DEFAULT_AUDIENCE = 'authenticated'
JWKS_CACHE_TTL_SECONDS = 300
REQUIRED_CLAIMS = ('sub', 'exp', 'aud')


@dataclass(frozen=True, slots=True)
class OwnerIdentity:
    """Verified Supabase user that may own organizations.

    Attributes:
        user_id: ``sub`` claim; compared with ``organizations.user_id``.
        email: Lower-cased, '' when the token has none.
        role: Supabase role claim.
        raw_claims: Full decoded payload.
    """

    user_id: str
    email: str = ''
    role: str = DEFAULT_AUDIENCE
    raw_claims: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> OwnerIdentity:
        return cls(
            user_id=str(claims['sub']),
            email=(claims.get('email') or '').lower(),
            role=claims.get('role') or DEFAULT_AUDIENCE,
            raw_claims=claims,
        )


class TokenVerificationError(Exception):
    """Owner token rejected. ``code`` is returned to the client as-is."""

    def __init__(self, code: str, detail: str = '') -> None:
        self.code = code
        self.detail = detail
        super().__init__(f'{code}: {detail}' if detail else code)


class KeyProvider(Protocol):
    def get_signing_key(self, token: str) -> Any: ...


class JWKSKeyProvider:
    """Looks up the token's ``kid`` in the project JWKS (cached by PyJWKClient)."""

    def __init__(self, jwks_url: str, cache_ttl: int = JWKS_CACHE_TTL_SECONDS) -> None:
        self.jwks_url = jwks_url
        self._client = PyJWKClient(jwks_url, cache_jwk_set=True, lifespan=cache_ttl)

    def get_signing_key(self, token: str) -> Any:
        try:
            return self._client.get_signing_key_from_jwt(token).key
        except PyJWKClientError as exc:
            raise TokenVerificationError('jwks_fetch_error', str(exc)) from exc
        except jwt.DecodeError as exc:
            raise TokenVerificationError('invalid_token', str(exc)) from exc


class StaticKeyProvider:
    def __init__(self, secret: str) -> None:
        self._secret = secret

    def get_signing_key(self, token: str) -> str:
        return self._secret


class TokenVerifier:
    def __init__(
        self,
        key_provider: KeyProvider,
        audience: str = DEFAULT_AUDIENCE,
        algorithms: list[str] | None = None,
    ) -> None:
        self._key_provider = key_provider
        self._audience = audience
        self._algorithms = list(algorithms or ['RS256'])

    def verify(self, token: str) -> OwnerIdentity:
        """Decode and validate ``token``.

        Raises:
            TokenVerificationError: with code ``empty_token``,
                ``token_expired``, ``invalid_audience``, ``missing_sub_claim``
                or ``invalid_token``.
        """
        if not token or not token.strip():
            raise TokenVerificationError('empty_token')

        try:
            claims = jwt.decode(
                token,
                self._key_provider.get_signing_key(token),
                algorithms=self._algorithms,
                audience=self._audience,
                options={'require': list(REQUIRED_CLAIMS)},
            )
        except jwt.ExpiredSignatureError:
            raise TokenVerificationError('token_expired') from None
        except jwt.InvalidAudienceError:
            raise TokenVerificationError('invalid_audience', f'expected {self._audience}') from None
        except jwt.MissingRequiredClaimError as exc:
            code = 'missing_sub_claim' if exc.claim == 'sub' else 'invalid_token'
            raise TokenVerificationError(code, str(exc)) from None
        except jwt.InvalidTokenError as exc:
            raise TokenVerificationError('invalid_token', str(exc)) from None

        if not claims.get('sub'):
            raise TokenVerificationError('missing_sub_claim')
        return OwnerIdentity.from_claims(claims)


def extract_bearer_token(request: Request) -> str | None:
    scheme, _, credentials = request.headers.get('authorization', '').partition(' ')
    if scheme.lower() != 'bearer':
        return None
    return credentials.strip() or None


def create_token_verifier(
    supabase_url: str | None = None,
    jwt_secret: str | None = None,
    audience: str = DEFAULT_AUDIENCE,
) -> TokenVerifier:
    """HS256 verifier when ``jwt_secret`` is set, JWKS verifier otherwise.

    Raises:
        ValueError: neither a URL nor a secret is configured.
    """
    if jwt_secret:
        return TokenVerifier(StaticKeyProvider(jwt_secret), audience, ['HS256'])
    if supabase_url:
        jwks_url = supabase_url.rstrip('/') + '/auth/v1/.well-known/jwks.json'
        return TokenVerifier(JWKSKeyProvider(jwks_url), audience, ['RS256'])
    raise ValueError('Either supabase_url (for JWKS) or jwt_secret (for HS256) is required')
