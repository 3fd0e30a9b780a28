"""Tests for the Supabase-backed grant and content stores.

PostgREST is faked with httpx.MockTransport; assertions focus on the
filters sent (organization scoping) and on row parsing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
import pytest_asyncio

from calendar_share.db.content_repo import SupabaseContentStore
from calendar_share.db.errors import SupabaseConflictError
from calendar_share.db.grant_repo import SupabaseShareGrantRepository
from calendar_share.db.supabase_client import SupabaseClient
from calendar_share.sharing.model import ShareGrant, ShareTokenConflict


class FakePostgrest:
    """Records requests and answers with queued responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []

    def queue(self, status: int = 200, json: Any = None) -> None:
        self.responses.append(httpx.Response(status, json=json if json is not None else []))

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def params(self, index: int = -1) -> dict[str, str]:
        query = parse_qs(urlsplit(str(self.requests[index].url)).query)
        return {k: v[0] for k, v in query.items()}


@pytest.fixture
def fake():
    return FakePostgrest()


@pytest_asyncio.fixture
async def client(fake):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake.handler)) as http_client:
        yield SupabaseClient(
            supabase_url='https://example.supabase.co',
            service_role_key='svc-key',
            http_client=http_client,
        )


def _grant_row(**overrides) -> dict[str, Any]:
    row = {
        'id': 'a1b2',
        'organization_id': 'org_1',
        'token_hash': 'f' * 64,
        'access_level': 'edit',
        'issued_at': '2024-06-01T12:00:00+00:00',
        'expires_at': '2024-07-01T12:00:00Z',
        'active': True,
        'created_by': 'user_owner',
    }
    row.update(overrides)
    return row


class TestGrantRepo:

    @pytest.mark.asyncio
    async def test_create_inserts_hash_only(self, fake, client):
        fake.queue(201, [_grant_row()])
        repo = SupabaseShareGrantRepository(client)
        now = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
        grant = await repo.create(ShareGrant(
            id='',
            organization_id='org_1',
            token_hash='f' * 64,
            access_level='edit',
            expires_at=now + timedelta(days=30),
            created_by='user_owner',
            issued_at=now,
        ))

        request = fake.requests[0]
        assert request.method == 'POST'
        assert request.url.path == '/rest/v1/share_grants'
        assert b'"token_hash"' in request.content
        assert b'"token"' not in request.content
        assert grant.id == 'a1b2'
        assert grant.expires_at == datetime(2024, 7, 1, 12, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_unique_violation_becomes_token_conflict(self, fake, client):
        fake.queue(409, {'message': 'duplicate key', 'code': '23505'})
        repo = SupabaseShareGrantRepository(client)
        with pytest.raises(ShareTokenConflict):
            await repo.create(ShareGrant(
                id='', organization_id='org_1', token_hash='f' * 64,
                access_level='view', expires_at=None,
            ))

    @pytest.mark.asyncio
    async def test_foreign_key_violation_propagates(self, fake, client):
        fake.queue(409, {'message': 'violates foreign key', 'code': '23503'})
        repo = SupabaseShareGrantRepository(client)
        with pytest.raises(SupabaseConflictError):
            await repo.create(ShareGrant(
                id='', organization_id='missing', token_hash='f' * 64,
                access_level='view', expires_at=None,
            ))

    @pytest.mark.asyncio
    async def test_get_by_token_hash(self, fake, client):
        fake.queue(200, [_grant_row(expires_at=None, created_by=None)])
        grant = await SupabaseShareGrantRepository(client).get_by_token_hash('f' * 64)
        assert fake.params()['token_hash'] == 'eq.' + 'f' * 64
        assert fake.params()['limit'] == '1'
        assert grant.expires_at is None
        assert grant.created_by == ''

    @pytest.mark.asyncio
    async def test_get_by_token_hash_missing(self, fake, client):
        fake.queue(200, [])
        assert await SupabaseShareGrantRepository(client).get_by_token_hash('x') is None

    @pytest.mark.asyncio
    async def test_naive_timestamps_read_as_utc(self, fake, client):
        fake.queue(200, [_grant_row(expires_at='2024-07-01T12:00:00')])
        grant = await SupabaseShareGrantRepository(client).get_by_token_hash('f' * 64)
        assert grant.expires_at.tzinfo is not None
        assert grant.expires_at == datetime(2024, 7, 1, 12, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_list_filters_active_and_orders_newest_first(self, fake, client):
        fake.queue(200, [_grant_row(id='g2'), _grant_row(id='g1')])
        grants = await SupabaseShareGrantRepository(client).list_for_organization('org_1')
        params = fake.params()
        assert params['organization_id'] == 'eq.org_1'
        assert params['active'] == 'is.true'
        assert params['order'] == 'issued_at.desc'
        assert [g.id for g in grants] == ['g2', 'g1']

    @pytest.mark.asyncio
    async def test_deactivate_scoped_to_organization(self, fake, client):
        fake.queue(200, [_grant_row(active=False)])
        grant = await SupabaseShareGrantRepository(client).deactivate('a1b2', 'org_1')
        request = fake.requests[0]
        assert request.method == 'PATCH'
        assert fake.params() == {'id': 'eq.a1b2', 'organization_id': 'eq.org_1'}
        assert grant.active is False

    @pytest.mark.asyncio
    async def test_deactivate_no_match_returns_none(self, fake, client):
        fake.queue(200, [])
        assert await SupabaseShareGrantRepository(client).deactivate('a1b2', 'org_2') is None


class TestContentStore:

    @pytest.mark.asyncio
    async def test_snapshot_uses_single_embedded_select(self, fake, client):
        fake.queue(200, [{
            'id': 'org_1',
            'name': 'Acme',
            'user_id': 'user_owner',
            'posts': [
                {
                    'id': 'p_old', 'created_at': '2024-05-01T00:00:00Z',
                    'comments': [
                        {'id': 'c2', 'created_at': '2024-05-03T00:00:00Z'},
                        {'id': 'c1', 'created_at': '2024-05-02T00:00:00Z'},
                    ],
                    'reviews': None,
                },
                {'id': 'p_new', 'created_at': '2024-06-01T00:00:00Z', 'comments': [], 'reviews': []},
            ],
        }])
        snapshot = await SupabaseContentStore(client).get_snapshot('org_1')

        assert len(fake.requests) == 1
        params = fake.params()
        assert fake.requests[0].url.path == '/rest/v1/organizations'
        assert params['id'] == 'eq.org_1'
        assert 'posts(' in params['select']
        assert 'post_comments(' in params['select']
        assert 'post_reviews(' in params['select']

        assert snapshot['organization'] == {'id': 'org_1', 'name': 'Acme', 'user_id': 'user_owner'}
        assert [p['id'] for p in snapshot['posts']] == ['p_new', 'p_old']
        old = snapshot['posts'][1]
        assert [c['id'] for c in old['comments']] == ['c1', 'c2']
        assert old['reviews'] == []

    @pytest.mark.asyncio
    async def test_snapshot_unknown_org(self, fake, client):
        fake.queue(200, [])
        assert await SupabaseContentStore(client).get_snapshot('nope') is None

    @pytest.mark.asyncio
    async def test_create_post_forces_organization(self, fake, client):
        fake.queue(201, [{'id': 'p1', 'organization_id': 'org_1'}])
        await SupabaseContentStore(client).create_post('org_1', {'date': '2024-06-01'})
        assert b'"organization_id":"org_1"' in fake.requests[0].content.replace(b' ', b'')

    @pytest.mark.asyncio
    async def test_update_filters_by_id_and_organization(self, fake, client):
        fake.queue(200, [])
        result = await SupabaseContentStore(client).update_post(
            'org_1', 'p_foreign', {'content': 'x', 'organization_id': 'org_2'},
        )
        assert result is None
        assert fake.params() == {'id': 'eq.p_foreign', 'organization_id': 'eq.org_1'}
        assert b'org_2' not in fake.requests[0].content

    @pytest.mark.asyncio
    async def test_delete_reports_whether_a_row_matched(self, fake, client):
        fake.queue(200, [{'id': 'p1'}])
        fake.queue(200, [])
        store = SupabaseContentStore(client)
        assert await store.delete_post('org_1', 'p1') is True
        assert await store.delete_post('org_1', 'p1') is False
        assert fake.requests[0].method == 'DELETE'
        assert fake.params(0) == {'id': 'eq.p1', 'organization_id': 'eq.org_1'}

    @pytest.mark.asyncio
    async def test_get_post_scoped(self, fake, client):
        fake.queue(200, [])
        assert await SupabaseContentStore(client).get_post('org_1', 'p2') is None
        params = fake.params()
        assert params['id'] == 'eq.p2'
        assert params['organization_id'] == 'eq.org_1'
