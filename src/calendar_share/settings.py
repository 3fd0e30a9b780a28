"""Service configuration.

CalendarShareSettings is the single configuration object accepted by
create_app(). It is a plain dataclass (not env-coupled) so tests can inject
config without touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class CalendarShareSettings:
    """Configuration for the share service.

    Defaults suit local development (in-memory stores). Non-local
    environments must supply a Supabase URL and service-role key.
    """

    environment: str = "local"
    """One of: local, staging, production."""

    supabase_url: str = ""
    """Supabase project URL (e.g. https://xyz.supabase.co)."""

    supabase_service_role_key: str = ""
    """Service-role key for PostgREST calls. Never log this."""

    supabase_jwt_secret: str = ""
    """HS256 secret for owner JWTs. When empty, JWKS from supabase_url is used."""

    default_share_ttl_days: int = 30

    cors_origins: tuple[str, ...] = (
        "http://localhost:8080",
        "http://localhost:5173",
    )

    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    @property
    def default_share_ttl(self) -> timedelta:
        return timedelta(days=self.default_share_ttl_days)

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.default_share_ttl_days < 1:
            errors.append("default_share_ttl_days must be >= 1")
        if self.log_format not in ("json", "console"):
            errors.append(f"log_format must be json or console, got {self.log_format!r}")
        if not self.is_local:
            if not self.supabase_url:
                errors.append(f"{self.environment}: supabase_url is required")
            if not self.supabase_service_role_key:
                errors.append(f"{self.environment}: supabase_service_role_key is required")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> CalendarShareSettings:
        """Build settings from environment variables.

        Tests should construct CalendarShareSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = (
            tuple(o.strip() for o in cors_raw.split(",") if o.strip())
            if cors_raw
            else cls.__dataclass_fields__["cors_origins"].default
        )

        ttl_raw = env.get("SHARE_TTL_DAYS", "").strip()
        try:
            ttl_days = int(ttl_raw) if ttl_raw else 30
        except ValueError:
            raise ValueError(f"SHARE_TTL_DAYS must be an integer, got {ttl_raw!r}") from None

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            supabase_jwt_secret=env.get("SUPABASE_JWT_SECRET", ""),
            default_share_ttl_days=ttl_days,
            cors_origins=cors,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "json"),
        )
