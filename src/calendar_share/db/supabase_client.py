"""Async PostgREST client for the calendar's Supabase project.

This is the single point of Supabase HTTP interaction for the share service.
Every request uses the service-role key, so callers are responsible for
scoping rows (the share layer always filters by the grant's organization).

Filters are given either as ``PostgrestFilter`` objects or as a mapping of
``column -> (op, value)``; a bare value means ``eq``::

    await client.select("posts", {"organization_id": org_id, "status": ("in", ["posted"])})
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

import httpx

from calendar_share.observability.logging import get_logger

from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
)

logger = get_logger(__name__)

_ERROR_CLASSES: dict[int, type[SupabaseError]] = {
    401: SupabaseAuthError,
    403: SupabaseAuthError,
    404: SupabaseNotFoundError,
    409: SupabaseConflictError,
}

_IS_LITERALS = {None: "null", True: "true", False: "false"}


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True, slots=True)
class PostgrestFilter:
    column: str
    op: str
    value: Any

    def encoded(self) -> str:
        """Query-string value, e.g. ``eq.abc`` or ``in.("a","b")``."""
        if self.op == "is":
            if self.value is None or isinstance(self.value, bool):
                return f"is.{_IS_LITERALS[self.value]}"
            return f"is.{self.value}"

        if self.op == "in":
            if not isinstance(self.value, (list, tuple, set, frozenset)):
                raise ValueError("in operator requires an iterable of values")
            # Strings are quoted so commas inside values survive.
            items = ",".join(
                json.dumps(v) if isinstance(v, str) else "null" if v is None else _literal(v)
                for v in self.value
            )
            return f"in.({items})"

        if self.value is None:
            raise ValueError(f"{self.op} does not support None; use op='is' with value=None")
        return f"{self.op}.{_literal(self.value)}"


Filters = Optional[Union[Sequence[PostgrestFilter], Mapping[str, Any]]]


def _as_filters(filters: Filters) -> list[PostgrestFilter]:
    if not filters:
        return []
    if not isinstance(filters, Mapping):
        return list(filters)
    result = []
    for column, spec in filters.items():
        op, value = spec if isinstance(spec, tuple) and len(spec) == 2 else ("eq", spec)
        result.append(PostgrestFilter(str(column), str(op), value))
    return result


def _filters_to_params(filters: Filters) -> dict[str, str]:
    return {f.column: f.encoded() for f in _as_filters(filters)}


def _error_from_response(resp: httpx.Response) -> SupabaseError:
    """Build the typed error for a >= 400 PostgREST response."""
    body: dict[str, Any] = {}
    try:
        parsed = resp.json()
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        body = parsed

    error_cls = _ERROR_CLASSES.get(resp.status_code, SupabaseError)
    return error_cls(
        status_code=resp.status_code,
        message=body.get("message") or resp.text,
        code=body.get("code"),
        details=body.get("details"),
        hint=body.get("hint"),
    )


class SupabaseClient:
    """Service-role PostgREST client. Every call returns a list of row dicts."""

    def __init__(
        self,
        *,
        supabase_url: str,
        service_role_key: str,
        schema: str = "public",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not supabase_url:
            raise ValueError("supabase_url is required")
        if not service_role_key:
            raise ValueError("service_role_key is required")

        self._rest_url = f"{supabase_url.rstrip('/')}/rest/v1"
        self._service_role_key = service_role_key
        self._schema = schema or "public"
        self._timeout = float(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    @property
    def base_rest_url(self) -> str:
        return self._rest_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, method: str) -> dict[str, str]:
        # Carries the service-role key; never log.
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Accept-Profile": self._schema,
        }
        if method != "GET":
            headers["Content-Profile"] = self._schema
            headers["Prefer"] = "return=representation"
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> list[dict[str, Any]]:
        try:
            resp = await self._client.request(
                method,
                f"{self._rest_url}/{table}",
                params=params or None,
                json=json_body,
                headers=self._headers(method),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("supabase_transport_error", method=method, table=table, error=str(exc))
            raise SupabaseError(status_code=503, message=f"transport error: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            error = _error_from_response(resp)
            logger.info(
                "supabase_request_failed",
                method=method,
                table=table,
                status_code=error.status_code,
                code=error.code,
            )
            raise error

        rows = resp.json()
        if not isinstance(rows, list):
            raise SupabaseError(status_code=500, message=f"expected list response from {method} {table}")
        return rows

    async def select(
        self,
        table: str,
        filters: Filters = None,
        *,
        columns: str = "*",
        limit: int | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        params = _filters_to_params(filters)
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(int(limit))
        if order:
            params["order"] = order
        return await self._request("GET", table, params=params)

    async def insert(
        self,
        table: str,
        data: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        return await self._request("POST", table, json_body=data)

    async def update(self, table: str, filters: Filters, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        """PATCH matching rows. Refuses to run without filters."""
        if not filters:
            raise ValueError("update requires at least one filter")
        return await self._request("PATCH", table, params=_filters_to_params(filters), json_body=data)

    async def delete(self, table: str, filters: Filters) -> list[dict[str, Any]]:
        """DELETE matching rows. Refuses to run without filters."""
        if not filters:
            raise ValueError("delete requires at least one filter")
        return await self._request("DELETE", table, params=_filters_to_params(filters))
