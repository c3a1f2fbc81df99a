"""Socket.IO handlers: session (connect, authenticate, join_room, disconnect)."""

import logging

from flask import request
from flask_socketio import join_room, leave_room, rooms

from realtime.access import can_join, normalize_room
from realtime.errors import InvalidPayload, UnknownIdentity
from realtime.schemas import AuthenticatePayload, JoinRoomPayload, parse_payload


def register(socketio, settings, ctx):
    """Register Socket.IO event handlers for this module."""
    state = ctx.state
    broadcast = ctx.broadcast

    @socketio.on("connect")
    def handle_connect(auth=None):
        logging.info("[USER CONNECTED]: %s", request.sid)

    @socketio.on("authenticate")
    def handle_authenticate(data=None):
        sid = request.sid
        with state.lock:
            try:
                payload = parse_payload(AuthenticatePayload, data)
                old_sid = state.registry.bind(sid, payload.username)
            except (InvalidPayload, UnknownIdentity):
                broadcast.to_sid(sid, "auth_error", {"message": UnknownIdentity.message})
                logging.info("[AUTH] rejected %s", sid)
                return

            user = state.directory.lookup(payload.username)
            # A socket re-authenticating as someone else keeps only rooms the new identity may read.
            for room in list(rooms()):
                if room != sid and not can_join(user, room):
                    leave_room(room)
            broadcast.to_sid(sid, "authenticated", {"success": True})
            broadcast.to_sid(sid, "initial_posts", [p.to_wire() for p in state.posts.snapshot_for(user)])

        if old_sid:
            logging.info("[AUTH] @%s moved from %s to %s", user.username, old_sid, sid)
        else:
            logging.info("[AUTH] @%s on %s", user.username, sid)

    @socketio.on("join_room")
    def handle_join_room(data=None):
        sid = request.sid
        # Older clients send the bare room name.
        if isinstance(data, str):
            data = {"roomName": data}

        with state.lock:
            user = ctx.bound_user(sid)
            if user is None:
                return
            try:
                payload = parse_payload(JoinRoomPayload, data)
            except InvalidPayload:
                return

            room = normalize_room(payload.room_name)
            # Disallowed joins are ignored without an error event.
            if not can_join(user, room):
                logging.debug("[ROOM] @%s may not join %r", user.username, room)
                return

            join_room(room)
            broadcast.to_sid(sid, "room_joined", {"roomName": room})

    @socketio.on("disconnect")
    def handle_disconnect(*args, **kwargs):
        sid = request.sid
        with state.lock:
            username = state.registry.unbind(sid)
        if username:
            logging.info("[USER DISCONNECTED]: %s (@%s)", sid, username)
        else:
            logging.info("[USER DISCONNECTED]: %s", sid)
