"""Identity directory: username -> User profile (process lifetime only)."""

from __future__ import annotations

from constants import normalize_username
from realtime.schemas import User


class IdentityDirectory:
    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    def lookup(self, username) -> User | None:
        return self._users.get(normalize_username(username))

    def contains(self, username) -> bool:
        return normalize_username(username) in self._users

    def put(self, user: User) -> User:
        user.username = normalize_username(user.username)
        self._users[user.username] = user
        return user

    def update_avatar(self, username, url: str | None) -> str | None:
        """Swap the avatar reference. Returns the previous one (or None)."""
        user = self.lookup(username)
        if user is None:
            raise KeyError(username)
        previous = user.avatar
        user.avatar = url
        return previous

    def avatar_urls(self) -> list[str]:
        return [u.avatar for u in self._users.values() if u.avatar]

    def __len__(self) -> int:
        return len(self._users)
