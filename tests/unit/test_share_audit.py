"""Tests for share audit events and token redaction.

Validates:
  - Tokens are reduced to an 8-char prefix in every event.
  - redact_string scrubs token-like substrings from free text.
  - The in-memory emitter filters by type and organization.
"""

from __future__ import annotations

import pytest

from calendar_share.sharing.audit import (
    InMemoryShareAuditEmitter,
    LoggingShareAuditEmitter,
    ShareAuditEvent,
    ShareEventType,
    record_share_event,
    redact_string,
    redact_token,
)
from calendar_share.sharing.model import generate_share_token


class TestRedaction:

    def test_long_token_keeps_prefix(self):
        token = generate_share_token()
        assert redact_token(token) == token[:8] + '...'

    @pytest.mark.parametrize('token', [None, '', 'short'])
    def test_short_or_missing_token_fully_redacted(self, token):
        assert redact_token(token) == '<redacted>'

    def test_redact_string_scrubs_embedded_tokens(self):
        token = generate_share_token()
        text = f'GET /api/v1/share?token={token}&action=get_data'
        redacted = redact_string(text)
        assert token not in redacted
        assert token[:8] + '...' in redacted
        assert 'action=get_data' in redacted


class TestRecordShareEvent:

    @pytest.mark.asyncio
    async def test_accessed_event_fields(self):
        emitter = InMemoryShareAuditEmitter()
        token = generate_share_token()
        await record_share_event(
            emitter,
            ShareEventType.ACCESSED,
            token=token,
            organization_id='O1',
            grant_id='grant_1',
            action='get_data',
            access_level='view',
        )
        [event] = emitter.find('share.accessed', organization_id='O1')
        data = event.to_dict()
        assert data['grant_id'] == 'grant_1'
        assert data['action'] == 'get_data'
        assert data['token_prefix'] == token[:8] + '...'
        assert token not in str(data)
        assert isinstance(data['timestamp'], str)

    @pytest.mark.asyncio
    async def test_denied_without_token(self):
        emitter = InMemoryShareAuditEmitter()
        event = await record_share_event(emitter, ShareEventType.DENIED, detail='missing_token')
        assert event.token_prefix == '<redacted>'
        assert event.organization_id == ''
        assert emitter.find('share.accessed') == []

    @pytest.mark.asyncio
    async def test_find_filters(self):
        emitter = InMemoryShareAuditEmitter()
        await record_share_event(emitter, ShareEventType.ISSUED, organization_id='O1')
        await record_share_event(emitter, ShareEventType.ISSUED, organization_id='O2')
        await record_share_event(emitter, ShareEventType.REVOKED, organization_id='O1')
        assert len(emitter.find()) == 3
        assert len(emitter.find('share.issued')) == 2
        assert len(emitter.find(organization_id='O1')) == 2

    @pytest.mark.asyncio
    async def test_logging_emitter_accepts_events(self):
        await LoggingShareAuditEmitter().emit(ShareAuditEvent(
            event_type='share.denied',
            token_prefix=redact_token(generate_share_token()),
            detail='expired',
        ))
