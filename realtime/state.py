"""Runtime state for the CampusFeed Socket.IO handlers.

One ``FeedState`` is built per app by ``server_init.create_app`` and handed to
the route and handler modules, so nothing here is a module global. State is
volatile: a restart starts from an empty directory and an empty feed.

Handlers hold ``lock`` for their whole body. That serializes events the same
way a single event loop would, whatever async mode Flask-SocketIO runs in.
"""

from __future__ import annotations

import threading

from constants import ALLOWED_IMAGE_EXTENSIONS, DEFAULT_SCHOOLS, DEFAULT_UPLOAD_DIR, MAX_UPLOAD_BYTES
from realtime.identity import IdentityDirectory
from realtime.media import MediaStore
from realtime.registry import ConnectionRegistry
from realtime.store import PostStore


class FeedState:
    def __init__(self, settings: dict | None = None) -> None:
        settings = settings or {}
        self.schools: list[str] = [
            str(s).strip().lower() for s in (settings.get("schools") or DEFAULT_SCHOOLS) if str(s).strip()
        ]
        self.directory = IdentityDirectory()
        self.registry = ConnectionRegistry(self.directory)
        self.posts = PostStore()
        self.media = MediaStore(
            settings.get("upload_dir") or DEFAULT_UPLOAD_DIR,
            allowed_extensions=settings.get("allowed_image_extensions") or ALLOWED_IMAGE_EXTENSIONS,
            max_bytes=int(settings.get("max_upload_bytes") or MAX_UPLOAD_BYTES),
        )
        self.lock = threading.RLock()

    def is_valid_school(self, school) -> bool:
        return isinstance(school, str) and school.strip().lower() in self.schools

    def referenced_media(self) -> set[str]:
        """Every upload reference still in use (posts, replies, avatars)."""
        with self.lock:
            return set(self.posts.image_urls()) | set(self.directory.avatar_urls())

    def counts(self) -> dict:
        with self.lock:
            return {
                "users": len(self.directory),
                "connections": len(self.registry),
                "posts": len(self.posts),
            }
