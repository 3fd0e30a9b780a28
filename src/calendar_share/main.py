"""Calendar share FastAPI application factory.

create_app() builds the ASGI application: it wires middleware (request-ID,
owner auth guard, CORS), the anonymous share endpoint and the owner
share-management routes, and injects stores via dependency injection.

Usage:
    # Local development (in-memory stores)
    from calendar_share import create_app
    app = create_app()

    # Deployed (Supabase stores built from settings)
    app = create_app(CalendarShareSettings.from_env())

    # Testing (full DI control)
    app = create_app(settings, grant_repo=repo, content_store=store, ...)
"""

from __future__ import annotations

import secrets
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from .db import SupabaseClient, SupabaseContentStore, SupabaseShareGrantRepository
from .inmemory import InMemoryContentStore
from .observability.logging import configure_logging, get_logger, request_id_ctx
from .protocols import AuditEmitter, ContentStore
from .security import AuthGuardMiddleware, TokenVerifier, create_token_verifier
from .settings import CalendarShareSettings
from .sharing import (
    InMemoryShareAuditEmitter,
    InMemoryShareGrantRepository,
    LoggingShareAuditEmitter,
    ShareActionDispatcher,
    ShareGateway,
    ShareGrantManager,
    ShareGrantRepository,
    ShareTokenValidator,
    create_share_access_router,
    create_share_router,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class AppDependencies:
    """Injected stores and services, stored on ``app.state.deps``."""

    grant_repo: ShareGrantRepository
    content_store: ContentStore
    audit_emitter: AuditEmitter
    token_verifier: TokenVerifier
    supabase_client: SupabaseClient | None = None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Generate or propagate X-Request-ID and bind it for log correlation."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


def _build_verifier(settings: CalendarShareSettings) -> TokenVerifier:
    if settings.supabase_jwt_secret or settings.supabase_url:
        return create_token_verifier(
            supabase_url=settings.supabase_url or None,
            jwt_secret=settings.supabase_jwt_secret or None,
        )
    # Local mode without auth config: owner routes reject every token.
    logger.warning("owner_auth_unconfigured", hint="set SUPABASE_JWT_SECRET to use owner routes")
    return create_token_verifier(jwt_secret=secrets.token_urlsafe(32))


def _build_deps(
    settings: CalendarShareSettings,
    *,
    grant_repo: ShareGrantRepository | None,
    content_store: ContentStore | None,
    audit_emitter: AuditEmitter | None,
    token_verifier: TokenVerifier | None,
) -> AppDependencies:
    verifier = token_verifier or _build_verifier(settings)

    if settings.is_local:
        return AppDependencies(
            grant_repo=grant_repo or InMemoryShareGrantRepository(),
            content_store=content_store or InMemoryContentStore(),
            audit_emitter=audit_emitter or InMemoryShareAuditEmitter(),
            token_verifier=verifier,
        )

    client = None
    if grant_repo is None or content_store is None:
        client = SupabaseClient(
            supabase_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
        )
    return AppDependencies(
        grant_repo=grant_repo or SupabaseShareGrantRepository(client),  # type: ignore[arg-type]
        content_store=content_store or SupabaseContentStore(client),  # type: ignore[arg-type]
        audit_emitter=audit_emitter or LoggingShareAuditEmitter(),
        token_verifier=verifier,
        supabase_client=client,
    )


def create_app(
    settings: CalendarShareSettings | None = None,
    *,
    grant_repo: ShareGrantRepository | None = None,
    content_store: ContentStore | None = None,
    audit_emitter: AuditEmitter | None = None,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create a configured share-service FastAPI application.

    Args:
        settings: Application settings. Defaults to local-dev settings.
        grant_repo..token_verifier: Overrides. When None, local mode uses
            in-memory implementations and other modes use Supabase.

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = CalendarShareSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Calendar share settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    configure_logging(level=settings.log_level, json_output=settings.log_format == "json")

    deps = _build_deps(
        settings,
        grant_repo=grant_repo,
        content_store=content_store,
        audit_emitter=audit_emitter,
        token_verifier=token_verifier,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("share_service_startup", environment=settings.environment)
        yield
        if deps.supabase_client is not None:
            await deps.supabase_client.aclose()
        logger.info("share_service_shutdown")

    app = FastAPI(
        title="Calendar Share",
        description="Link-based sharing for content calendars",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.state.settings = settings

    # Execution order: RequestID -> CORS -> AuthGuard -> route handler.
    # CORS wraps the guard: 401 responses carry CORS headers too.
    app.add_middleware(AuthGuardMiddleware, token_verifier=deps.token_verifier)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    async def health():
        return {"status": "ok", "environment": settings.environment}

    gateway = ShareGateway(
        ShareTokenValidator(deps.grant_repo),
        ShareActionDispatcher(deps.content_store),
        deps.audit_emitter,
    )
    manager = ShareGrantManager(deps.grant_repo, deps.audit_emitter)

    app.include_router(create_share_access_router(gateway))
    app.include_router(
        create_share_router(manager, deps.content_store, default_ttl=settings.default_share_ttl)
    )
    return app


# For uvicorn, use --factory:
#   uvicorn calendar_share.main:create_app --factory
