"""Anonymous share-access endpoint.

  GET  /api/v1/share?token=...&action=...
  POST /api/v1/share   {"token": ..., "action": ..., "payload": {...}}

``token`` and ``action`` may come from the query string or the JSON body;
the query string wins when both are present. The payload is the body's
``payload`` object, or (for older clients that post action fields flat) the
rest of the body.

No owner authentication applies here: the bearer token is the credential.
Errors render as ``{"error": code, "detail": message}`` with the status
taken from the error taxonomy; invalid, revoked and expired tokens all
produce the same 401 body.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from .gateway import ShareGateway

_ENVELOPE_KEYS = frozenset({'token', 'action', 'payload'})


async def _read_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _extract_payload(body: dict[str, Any]) -> dict[str, Any]:
    payload = body.get('payload')
    if isinstance(payload, dict):
        return payload
    return {k: v for k, v in body.items() if k not in _ENVELOPE_KEYS}


def create_share_access_router(gateway: ShareGateway) -> APIRouter:
    """Create the token-authenticated share router.

    Args:
        gateway: Request pipeline (validator, permission gate, dispatcher).
    """
    router = APIRouter(tags=['share-access'])

    @router.api_route('/api/v1/share', methods=['GET', 'POST'])
    async def share_request(request: Request):
        body = await _read_body(request) if request.method == 'POST' else {}
        token = request.query_params.get('token') or body.get('token')
        action = request.query_params.get('action') or body.get('action')

        result = await gateway.handle(
            token if isinstance(token, str) else None,
            action if isinstance(action, str) else None,
            _extract_payload(body),
        )
        return JSONResponse(status_code=result.status_code, content=result.body)

    return router
