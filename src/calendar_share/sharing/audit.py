"""Share audit trail.

Grant issuance and revocation, every applied share request and every
denial is recorded as a ``ShareAuditEvent``. Plaintext tokens never reach
an event: ``record_share_event`` reduces them to an 8-character prefix,
which is enough to correlate a link with its grant in support requests.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from calendar_share.observability.logging import get_logger

TOKEN_PREFIX_LENGTH = 8
REDACTED = '<redacted>'

# token_urlsafe output and hex digests.
_TOKEN_LIKE = re.compile(r'[A-Za-z0-9_-]{20,}')


class ShareEventType(str, Enum):
    ISSUED = 'share.issued'
    REVOKED = 'share.revoked'
    ACCESSED = 'share.accessed'
    DENIED = 'share.denied'


def redact_token(token: str | None) -> str:
    if not token or len(token) < TOKEN_PREFIX_LENGTH:
        return REDACTED
    return token[:TOKEN_PREFIX_LENGTH] + '...'


def redact_string(text: str) -> str:
    """Shorten every token-like run in free text (error messages, URLs)."""
    return _TOKEN_LIKE.sub(lambda m: redact_token(m.group(0)), text)


@dataclass(frozen=True, slots=True)
class ShareAuditEvent:
    """One audit record.

    ``organization_id`` is '' for denials where the token never resolved.
    ``actor_user_id`` is the owner for issue/revoke and '' for anonymous
    share requests. ``detail`` holds the denial reason.
    """

    event_type: str
    organization_id: str = ''
    grant_id: str | None = None
    token_prefix: str = REDACTED
    action: str = ''
    access_level: str = ''
    actor_user_id: str = ''
    detail: str = ''
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data


class InMemoryShareAuditEmitter:
    """Keeps events in a list; used in local mode and tests."""

    def __init__(self) -> None:
        self.events: list[ShareAuditEvent] = []

    async def emit(self, event: ShareAuditEvent) -> None:
        self.events.append(event)

    def find(self, event_type: str | None = None, organization_id: str | None = None) -> list[ShareAuditEvent]:
        return [
            e for e in self.events
            if (not event_type or e.event_type == event_type)
            and (not organization_id or e.organization_id == organization_id)
        ]


class LoggingShareAuditEmitter:
    """Writes each event as one ``share_audit`` line on ``calendar_share.audit``."""

    def __init__(self) -> None:
        self._logger = get_logger('calendar_share.audit')

    async def emit(self, event: ShareAuditEvent) -> None:
        self._logger.info('share_audit', **event.to_dict())


async def record_share_event(
    emitter,
    event_type: ShareEventType,
    *,
    token: str | None = None,
    **fields: Any,
) -> ShareAuditEvent:
    """Build an event (token reduced to its prefix) and hand it to ``emitter``."""
    event = ShareAuditEvent(
        event_type=event_type.value,
        token_prefix=redact_token(token),
        **fields,
    )
    await emitter.emit(event)
    return event
