"""Tests for the anonymous share endpoint.

Validates:
  - token/action accepted from the query string or the JSON body.
  - Query string wins when both are present.
  - Payload taken from ``payload`` or, failing that, the flat body.
  - Error bodies use the {error, detail} shape with taxonomy statuses.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from calendar_share.sharing.access import _extract_payload, create_share_access_router


def _make_app(gateway) -> FastAPI:
    app = FastAPI()
    app.include_router(create_share_access_router(gateway))
    return app


@pytest.fixture
def client_factory(gateway):
    def _factory():
        transport = ASGITransport(app=_make_app(gateway))
        return AsyncClient(transport=transport, base_url='http://test')
    return _factory


class TestExtractPayload:

    def test_nested_payload_preferred(self):
        body = {'token': 't', 'action': 'a', 'payload': {'id': 'p1'}, 'id': 'ignored'}
        assert _extract_payload(body) == {'id': 'p1'}

    def test_flat_body_without_envelope_keys(self):
        body = {'token': 't', 'action': 'a', 'id': 'p1', 'status': 'posted'}
        assert _extract_payload(body) == {'id': 'p1', 'status': 'posted'}

    def test_non_object_payload_falls_back_to_flat(self):
        assert _extract_payload({'payload': 'nope', 'id': 'p1'}) == {'id': 'p1'}


class TestShareEndpoint:

    @pytest.mark.asyncio
    async def test_get_verify_with_query_params(self, manager, client_factory):
        issued = await manager.issue('O1', 'view')
        async with client_factory() as c:
            r = await c.get('/api/v1/share', params={'token': issued.token, 'action': 'verify'})
        assert r.status_code == 200
        assert r.json() == {'valid': True, 'organization_id': 'O1', 'access_level': 'view'}

    @pytest.mark.asyncio
    async def test_post_body_envelope(self, manager, client_factory):
        issued = await manager.issue('O1', 'edit')
        async with client_factory() as c:
            r = await c.post('/api/v1/share', json={
                'token': issued.token,
                'action': 'create_post',
                'payload': {'date': '2024-06-01', 'content': 'Launch'},
            })
        assert r.status_code == 200
        assert r.json()['content'] == 'Launch'
        assert r.json()['organization_id'] == 'O1'

    @pytest.mark.asyncio
    async def test_post_flat_payload(self, manager, client_factory, content_store):
        post = await content_store.create_post('O1', {'date': '2024-06-01', 'content': 'x'})
        issued = await manager.issue('O1', 'view')
        async with client_factory() as c:
            r = await c.post('/api/v1/share', json={
                'token': issued.token,
                'action': 'add_comment',
                'post_id': post['id'],
                'content': 'Flat comment',
            })
        assert r.status_code == 200
        assert r.json()['created_by'] == 'Anonymous'

    @pytest.mark.asyncio
    async def test_query_params_take_precedence(self, manager, client_factory):
        view = await manager.issue('O1', 'view')
        edit = await manager.issue('O1', 'edit')
        async with client_factory() as c:
            r = await c.post(
                '/api/v1/share',
                params={'token': view.token, 'action': 'verify'},
                json={'token': edit.token, 'action': 'get_data'},
            )
        assert r.status_code == 200
        assert r.json()['access_level'] == 'view'

    @pytest.mark.asyncio
    async def test_view_token_forbidden_for_writes(self, manager, client_factory):
        issued = await manager.issue('O1', 'view')
        async with client_factory() as c:
            r = await c.post('/api/v1/share', json={
                'token': issued.token,
                'action': 'delete_post',
                'payload': {'id': 'p1'},
            })
        assert r.status_code == 403
        assert r.json() == {'error': 'forbidden', 'detail': 'Edit access required'}

    @pytest.mark.asyncio
    async def test_missing_token_is_400(self, client_factory):
        async with client_factory() as c:
            r = await c.get('/api/v1/share', params={'action': 'verify'})
        assert r.status_code == 400
        assert r.json()['error'] == 'missing_token'

    @pytest.mark.asyncio
    async def test_unknown_token_is_401(self, client_factory):
        async with client_factory() as c:
            r = await c.get('/api/v1/share', params={'token': 'made-up', 'action': 'get_data'})
        assert r.status_code == 401
        assert r.json() == {'error': 'invalid_token', 'detail': 'Invalid or expired token'}

    @pytest.mark.asyncio
    async def test_unknown_action_is_400(self, manager, client_factory):
        issued = await manager.issue('O1', 'edit')
        async with client_factory() as c:
            r = await c.get('/api/v1/share', params={'token': issued.token, 'action': 'purge'})
        assert r.status_code == 400
        assert r.json()['error'] == 'unknown_action'

    @pytest.mark.asyncio
    async def test_malformed_json_body_treated_as_empty(self, client_factory):
        async with client_factory() as c:
            r = await c.post(
                '/api/v1/share',
                content=b'{not json',
                headers={'content-type': 'application/json'},
            )
        assert r.status_code == 400
        assert r.json()['error'] == 'missing_token'

    @pytest.mark.asyncio
    async def test_non_string_token_ignored(self, client_factory):
        async with client_factory() as c:
            r = await c.post('/api/v1/share', json={'token': 12345, 'action': 'verify'})
        assert r.status_code == 400
