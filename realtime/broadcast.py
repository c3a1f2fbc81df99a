"""Broadcast engine: room-scoped fan-out on top of Flask-SocketIO rooms.

- post in ``general``      -> every connected socket
- post in school room ``R`` -> sockets joined to ``R`` or to ``general``

Targets are passed to Socket.IO as one room list, so a socket joined to both
rooms still receives a single copy of the event.
"""

from __future__ import annotations

from realtime.access import audience_rooms
from realtime.errors import FeedError


class Broadcaster:
    def __init__(self, socketio) -> None:
        self.socketio = socketio

    def to_sid(self, sid: str, event: str, payload) -> None:
        self.socketio.emit(event, payload, to=sid)

    def error(self, sid: str, exc: FeedError) -> None:
        self.to_sid(sid, "error", {"message": exc.message})

    def fan_out(self, room: str, event: str, payload) -> None:
        rooms = audience_rooms(room)
        if rooms is None:
            self.socketio.emit(event, payload)
        else:
            self.socketio.emit(event, payload, to=rooms)
