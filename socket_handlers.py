#!/usr/bin/env python3
"""
socket_handlers.py

Socket.IO event handlers for the CampusFeed server.
Shared helpers live here; the handlers themselves are split into
realtime/session.py and realtime/feed.py.
"""

import logging
from types import SimpleNamespace

from realtime.broadcast import Broadcaster
from realtime.errors import NotAuthenticated, UnknownIdentity
from realtime.schemas import Post, User
from realtime.state import FeedState


def register_socketio_handlers(socketio, settings, state: FeedState):
    """
    Registers all Socket.IO event handlers against one FeedState.
    """
    broadcast = Broadcaster(socketio)

    def _bound_user(sid: str) -> User | None:
        """The user bound to ``sid``, or None if the socket is not authenticated."""
        username = state.registry.resolve(sid)
        if not username:
            return None
        return state.directory.lookup(username)

    def _require_user(sid: str) -> User:
        username = state.registry.resolve(sid)
        if not username:
            raise NotAuthenticated()
        user = state.directory.lookup(username)
        if user is None:
            raise UnknownIdentity("User not found")
        return user

    def _cleanup_media(post: Post) -> None:
        if not post.image_urls():
            return
        if bool(settings.get("media_cleanup_async", True)):
            socketio.start_background_task(state.media.discard_post, post)
        else:
            state.media.discard_post(post)

    ctx = SimpleNamespace(
        state=state,
        broadcast=broadcast,
        bound_user=_bound_user,
        require_user=_require_user,
        cleanup_media=_cleanup_media,
    )

    # ───────────────────────────────────────────────────────────────────
    # Register split handler modules (see realtime/*.py)
    # ───────────────────────────────────────────────────────────────────
    from realtime import feed, session
    session.register(socketio, settings, ctx)
    feed.register(socketio, settings, ctx)
    logging.debug("Socket.IO handlers registered")
    return ctx
