"""Permission gate: which access level each share action requires.

``edit`` satisfies everything ``view`` does. Comments are gated at ``view``
so read-only reviewers can leave feedback; approve/reject and any post
mutation require ``edit``. Anything not in the table is denied.
"""

from __future__ import annotations

from enum import Enum

from .errors import Forbidden, UnknownAction
from .model import ACCESS_EDIT, ACCESS_VIEW, ShareGrant


class ShareAction(str, Enum):
    VERIFY = 'verify'
    GET_DATA = 'get_data'
    CREATE_POST = 'create_post'
    UPDATE_POST = 'update_post'
    DELETE_POST = 'delete_post'
    ADD_COMMENT = 'add_comment'
    ADD_REVIEW = 'add_review'


REQUIRED_ACCESS: dict[ShareAction, str] = {
    ShareAction.VERIFY: ACCESS_VIEW,
    ShareAction.GET_DATA: ACCESS_VIEW,
    ShareAction.CREATE_POST: ACCESS_EDIT,
    ShareAction.UPDATE_POST: ACCESS_EDIT,
    ShareAction.DELETE_POST: ACCESS_EDIT,
    ShareAction.ADD_COMMENT: ACCESS_VIEW,
    ShareAction.ADD_REVIEW: ACCESS_EDIT,
}

_ACCESS_RANK = {ACCESS_VIEW: 1, ACCESS_EDIT: 2}


def parse_action(raw: str | None) -> ShareAction:
    """Map a wire action name to a ShareAction.

    Raises:
        UnknownAction: name is missing or not part of the vocabulary.
    """
    try:
        return ShareAction(raw)
    except ValueError:
        raise UnknownAction() from None


def is_allowed(access_level: str, action: ShareAction | str) -> bool:
    try:
        required = REQUIRED_ACCESS[ShareAction(action)]
    except (KeyError, ValueError):
        return False
    held = _ACCESS_RANK.get(access_level, 0)
    return held > 0 and held >= _ACCESS_RANK[required]


def check_permission(grant: ShareGrant, action: ShareAction | str) -> None:
    """Raise Forbidden unless the grant's access level covers ``action``."""
    if not is_allowed(grant.access_level, action):
        raise Forbidden()
