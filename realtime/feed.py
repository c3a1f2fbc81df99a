"""Socket.IO handlers: feed (new_post, reply_to_post, delete_post).

Validation failures go back to the sender as an ``error`` event; successful
mutations fan out by the room of the affected post.
"""

import logging

from flask import request

from realtime.access import can_post_to, can_read, normalize_room
from realtime.errors import EmptyPost, FeedError, ForbiddenRoom, InvalidPayload, NotOwner, PostNotFound
from realtime.schemas import (
    DeletePostPayload,
    NewPostPayload,
    Post,
    Reply,
    ReplyToPostPayload,
    parse_payload,
)


def register(socketio, settings, ctx):
    """Register Socket.IO event handlers for this module."""
    state = ctx.state
    broadcast = ctx.broadcast

    @socketio.on("new_post")
    def handle_new_post(data=None):
        sid = request.sid
        with state.lock:
            try:
                user = ctx.require_user(sid)
                payload = parse_payload(NewPostPayload, data)

                room = normalize_room(payload.room)
                if not can_post_to(user, room):
                    raise ForbiddenRoom()

                content = (payload.content or "").strip()
                if not content and not payload.image_url:
                    raise EmptyPost()

                post = state.posts.append(
                    Post(
                        sender=user.username,
                        display_name=user.display_name,
                        avatar=user.avatar,
                        content=content,
                        image_url=payload.image_url,
                        room=room,
                    )
                )
            except FeedError as exc:
                broadcast.error(sid, exc)
                return

            broadcast.fan_out(post.room, "new_post", post.to_wire())

        logging.info('[NEW POST]: @%s posted to %s: "%s" (ID: %s)', post.sender, post.room, post.content, post.id)

    @socketio.on("reply_to_post")
    def handle_reply_to_post(data=None):
        sid = request.sid
        with state.lock:
            try:
                user = ctx.require_user(sid)
                payload = parse_payload(ReplyToPostPayload, data)

                post = state.posts.find_by_id(payload.post_id)
                if post is None:
                    raise PostNotFound()
                if not can_read(user, post.room):
                    raise ForbiddenRoom("You cannot reply to this post")

                reply = Reply(
                    sender=user.username,
                    display_name=user.display_name,
                    avatar=user.avatar,
                    content=payload.content or "",
                    image_url=payload.image_url,
                )
                state.posts.append_reply(post.id, reply)
            except FeedError as exc:
                broadcast.error(sid, exc)
                return

            broadcast.fan_out(post.room, "post_replied", {"postId": post.id, "reply": reply.to_wire()})

        logging.info("[NEW REPLY]: @%s replied to post %s", reply.sender, post.id)

    @socketio.on("delete_post")
    def handle_delete_post(data=None):
        sid = request.sid
        with state.lock:
            # Unauthenticated senders and unknown ids are ignored without an error event.
            user = ctx.bound_user(sid)
            if user is None:
                return
            try:
                payload = parse_payload(DeletePostPayload, data)
            except InvalidPayload as exc:
                broadcast.error(sid, exc)
                return

            if state.posts.find_by_id(payload.post_id) is None:
                return
            try:
                post = state.posts.remove(payload.post_id, user.username)
            except NotOwner as exc:
                broadcast.error(sid, exc)
                return

            broadcast.fan_out(post.room, "post_deleted", {"postId": post.id})

        logging.info("[POST DELETED]: ID %s by @%s", post.id, user.username)
        # Media goes after the broadcast and never undoes the deletion.
        ctx.cleanup_media(post)
