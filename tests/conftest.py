"""Pytest configuration for calendar-share tests."""
import sys
from pathlib import Path

# src-layout imports when the package is not installed.
_SRC = Path(__file__).parent.parent / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from calendar_share.inmemory import InMemoryContentStore
from calendar_share.sharing.audit import InMemoryShareAuditEmitter
from calendar_share.sharing.dispatcher import ShareActionDispatcher
from calendar_share.sharing.gateway import ShareGateway
from calendar_share.sharing.lifecycle import ShareGrantManager
from calendar_share.sharing.model import InMemoryShareGrantRepository
from calendar_share.sharing.validator import ShareTokenValidator

OWNER_ID = 'user_owner'
OTHER_OWNER_ID = 'user_other'


@pytest.fixture
def content_store():
    store = InMemoryContentStore()
    store.add_organization('Acme Social', OWNER_ID, organization_id='O1')
    store.add_organization('Globex', OTHER_OWNER_ID, organization_id='O2')
    return store


@pytest.fixture
def grant_repo():
    return InMemoryShareGrantRepository()


@pytest.fixture
def audit():
    return InMemoryShareAuditEmitter()


@pytest.fixture
def manager(grant_repo, audit):
    return ShareGrantManager(grant_repo, audit)


@pytest.fixture
def gateway(grant_repo, content_store, audit):
    return ShareGateway(
        ShareTokenValidator(grant_repo),
        ShareActionDispatcher(content_store),
        audit,
    )
