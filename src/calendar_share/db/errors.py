"""Supabase store error hierarchy.

Errors stay small and dependency-free so repositories can raise them without
leaking httpx.Response objects (or service-role keys) to callers.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SupabaseError(Exception):
    """Base error for a failed PostgREST request."""

    status_code: int
    message: str
    code: str | None = None
    details: str | None = None
    hint: str | None = None

    def __str__(self) -> str:
        bits: list[str] = [f"{type(self).__name__}(status={self.status_code})", self.message]
        if self.code:
            bits.append(f"code={self.code}")
        if self.details:
            bits.append(f"details={self.details}")
        return " ".join(bits)

    @property
    def is_transient(self) -> bool:
        """True for failures a caller may reasonably retry (reads only)."""
        return self.status_code >= 500 or self.status_code == 429


class SupabaseAuthError(SupabaseError):
    """401/403 (bad service key, RLS denial)."""


class SupabaseNotFoundError(SupabaseError):
    """404 (missing table/view/route)."""


class SupabaseConflictError(SupabaseError):
    """409 unique/foreign-key violations."""


# Postgres SQLSTATE for unique_violation; PostgREST forwards it as ``code``.
UNIQUE_VIOLATION = "23505"

# SQLSTATEs PostgREST returns (as 400) when a column rejects client input:
# not_null_violation, invalid_text_representation (bad uuid),
# invalid_datetime_format, datetime_field_overflow.
INVALID_INPUT_CODES = frozenset({"23502", "22P02", "22007", "22008"})


def is_invalid_input(exc: SupabaseError) -> bool:
    """True when the store refused a value the caller supplied."""
    return exc.code in INVALID_INPUT_CODES
