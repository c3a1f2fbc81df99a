"""Connection registry: Socket.IO sid <-> authenticated username.

At most one sid is *current* for a username. Rebinding a username to a new
sid only forgets the stale sid's forward mapping; the stale socket itself is
left open. A late disconnect of a stale sid must never evict a newer binding.
"""

from __future__ import annotations

from constants import normalize_username
from realtime.errors import UnknownIdentity
from realtime.identity import IdentityDirectory


class ConnectionRegistry:
    def __init__(self, directory: IdentityDirectory) -> None:
        self._directory = directory
        self._sid_to_user: dict[str, str] = {}
        self._user_to_sid: dict[str, str] = {}

    def bind(self, sid: str, username) -> str | None:
        """Bind ``sid`` to ``username``. Returns the previously current sid, if any."""
        username = normalize_username(username)
        if not username or not self._directory.contains(username):
            raise UnknownIdentity()

        old_sid = self._user_to_sid.get(username)
        if old_sid and old_sid != sid:
            self._sid_to_user.pop(old_sid, None)

        # A sid re-authenticating as somebody else releases its old identity.
        previous_user = self._sid_to_user.get(sid)
        if previous_user and previous_user != username and self._user_to_sid.get(previous_user) == sid:
            del self._user_to_sid[previous_user]

        self._sid_to_user[sid] = username
        self._user_to_sid[username] = sid
        return old_sid if old_sid != sid else None

    def resolve(self, sid: str) -> str | None:
        return self._sid_to_user.get(sid)

    def current_sid(self, username) -> str | None:
        return self._user_to_sid.get(normalize_username(username))

    def unbind(self, sid: str) -> str | None:
        """Forget ``sid``. Returns the username it was bound to (or None)."""
        username = self._sid_to_user.pop(sid, None)
        if username and self._user_to_sid.get(username) == sid:
            del self._user_to_sid[username]
        return username

    def __len__(self) -> int:
        return len(self._user_to_sid)
