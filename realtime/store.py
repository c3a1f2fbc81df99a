"""Post store: insertion-ordered posts, each with insertion-ordered replies."""

from __future__ import annotations

from constants import GENERAL_ROOM
from realtime.errors import NotOwner, PostNotFound
from realtime.schemas import Post, Reply, User


class PostStore:
    def __init__(self) -> None:
        # dicts keep insertion order; the id index doubles as the canonical list.
        self._posts: dict[str, Post] = {}

    def append(self, post: Post) -> Post:
        self._posts[post.id] = post
        return post

    def find_by_id(self, post_id) -> Post | None:
        if not isinstance(post_id, str):
            return None
        return self._posts.get(post_id)

    def append_reply(self, post_id: str, reply: Reply) -> Post:
        post = self.find_by_id(post_id)
        if post is None:
            raise PostNotFound()
        post.replies.append(reply)
        return post

    def remove(self, post_id: str, requesting_username: str) -> Post:
        """Delete a post (and its replies) owned by ``requesting_username``."""
        post = self.find_by_id(post_id)
        if post is None:
            raise PostNotFound()
        if post.sender != requesting_username:
            raise NotOwner()
        del self._posts[post_id]
        return post

    def snapshot_for(self, user: User) -> list[Post]:
        return [p for p in self._posts.values() if p.room == GENERAL_ROOM or p.room == user.school]

    def image_urls(self) -> list[str]:
        urls: list[str] = []
        for post in self._posts.values():
            urls.extend(post.image_urls())
        return urls

    def __len__(self) -> int:
        return len(self._posts)

    def __iter__(self):
        return iter(list(self._posts.values()))
