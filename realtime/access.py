"""Room access control + the room fan-out rule.

A user may join, post to and read exactly two rooms: ``general`` and their own
school. Note the live fan-out rule is looser than ``can_read``: members of
``general`` also observe school-room traffic as it happens.
"""

from __future__ import annotations

from constants import GENERAL_ROOM
from realtime.schemas import User


def normalize_room(name) -> str:
    if not isinstance(name, str):
        return ""
    return name.strip().lower()


def allowed_rooms(user: User) -> frozenset[str]:
    return frozenset({GENERAL_ROOM, user.school})


def can_join(user: User, room) -> bool:
    return normalize_room(room) in allowed_rooms(user)


def can_post_to(user: User, room) -> bool:
    return normalize_room(room) in allowed_rooms(user)


def can_read(user: User, room) -> bool:
    return normalize_room(room) in allowed_rooms(user)


def audience_rooms(room: str) -> list[str] | None:
    """Socket.IO rooms that receive an event about a post in ``room``.

    ``None`` means every connected socket (authenticated or not).
    """
    room = normalize_room(room)
    if room == GENERAL_ROOM:
        return None
    return [room, GENERAL_ROOM]
