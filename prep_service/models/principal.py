from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Read-only identity of the current user.

    Built from a validated JWT by ``require_user`` and passed explicitly to
    anything that needs to know who is acting (attempt sessions, analytics).
    There is no process-wide "current user".

        user_id: subject from JWT
        roles: platform roles (student, admin)
    """

    user_id: str
    roles: frozenset[str]

