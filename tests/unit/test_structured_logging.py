"""Tests for the structlog processors used by the share service."""

from __future__ import annotations

from calendar_share.observability.logging import (
    _add_request_id,
    _mask_credentials,
    get_logger,
    request_id_ctx,
)


def test_request_id_added_from_context():
    token = request_id_ctx.set('req-42')
    try:
        event = _add_request_id(None, 'info', {'event': 'share_applied'})
    finally:
        request_id_ctx.reset(token)
    assert event['request_id'] == 'req-42'


def test_no_request_id_outside_request():
    assert 'request_id' not in _add_request_id(None, 'info', {'event': 'startup'})


def test_credentials_masked():
    event = _mask_credentials(None, 'info', {
        'event': 'supabase_call',
        'apikey': 'svc-key',
        'authorization': 'Bearer abc',
        'token_hash': 'f' * 64,
        'table': 'posts',
    })
    assert event['apikey'] == '<redacted>'
    assert event['authorization'] == '<redacted>'
    assert event['token_hash'] == '<redacted>'
    assert event['table'] == 'posts'


def test_get_logger_binds():
    log = get_logger('calendar_share.test').bind(action='verify')
    log.info('share_applied')
