"""Failure taxonomy for the realtime feed.

Every error carries the message that is emitted back to the originating
connection. None of them is ever broadcast.
"""


class FeedError(Exception):
    """Base class for failures surfaced to a single connection."""

    message = "Request failed"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


class UnknownIdentity(FeedError):
    message = "Invalid user"


class NotAuthenticated(FeedError):
    message = "Not authenticated"


class ForbiddenRoom(FeedError):
    message = "You can only post to General or your school room"


class EmptyPost(FeedError):
    message = "Post must have content or an image"


class PostNotFound(FeedError):
    message = "Post not found"


class NotOwner(FeedError):
    message = "You can only delete your own posts"


class InvalidPayload(FeedError):
    message = "Invalid payload"


class MediaCleanupFailure(FeedError):
    """Non-fatal: logged by the media lifecycle, never emitted."""

    message = "Could not delete media file"
