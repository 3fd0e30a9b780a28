"""Supabase (PostgREST) persistence for grants and calendar content."""

from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
)
from .supabase_client import PostgrestFilter, SupabaseClient
from .grant_repo import SupabaseShareGrantRepository
from .content_repo import SupabaseContentStore

__all__ = [
    "PostgrestFilter",
    "SupabaseAuthError",
    "SupabaseClient",
    "SupabaseConflictError",
    "SupabaseContentStore",
    "SupabaseError",
    "SupabaseNotFoundError",
    "SupabaseShareGrantRepository",
]
