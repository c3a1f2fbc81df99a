"""Pydantic models for the feed's records and Socket.IO payloads.

Records (User / Post / Reply) are what the stores hold and what goes out on
the wire. Inbound payload models are validated before a handler touches any
state; anything that fails validation is rejected as ``InvalidPayload``.

All wire dicts use camelCase keys (``displayName``, ``imageUrl``, ...).
"""

from __future__ import annotations

import time
import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from realtime.errors import InvalidPayload


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


# ───────────────────────────── Records ─────────────────────────────

class User(WireModel):
    username: str
    display_name: str
    avatar: Optional[str] = None
    school: str
    created_at: int = Field(default_factory=now_ms)

    def public(self) -> dict:
        """Profile fields safe to hand to any client."""
        return self.model_dump(by_alias=True, exclude={"created_at"})


class Reply(WireModel):
    id: str = Field(default_factory=new_id)
    sender: str
    display_name: str
    avatar: Optional[str] = None
    content: str = ""
    image_url: Optional[str] = None
    timestamp: int = Field(default_factory=now_ms)


class Post(WireModel):
    id: str = Field(default_factory=new_id)
    sender: str
    display_name: str
    avatar: Optional[str] = None
    content: str = ""
    image_url: Optional[str] = None
    room: str
    timestamp: int = Field(default_factory=now_ms)
    replies: List[Reply] = Field(default_factory=list)

    def image_urls(self) -> list[str]:
        """The post's own image followed by every reply image."""
        urls = [self.image_url] if self.image_url else []
        urls.extend(r.image_url for r in self.replies if r.image_url)
        return urls


# ───────────────────────────── Inbound ─────────────────────────────

class InboundPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class AuthenticatePayload(InboundPayload):
    username: str


class JoinRoomPayload(InboundPayload):
    room_name: str


class NewPostPayload(InboundPayload):
    room: str
    content: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("image_url", mode="before")
    @classmethod
    def blank_image_is_none(cls, v):
        return _blank_to_none(v)


class ReplyToPostPayload(InboundPayload):
    post_id: str
    content: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("image_url", mode="before")
    @classmethod
    def blank_image_is_none(cls, v):
        return _blank_to_none(v)


class DeletePostPayload(InboundPayload):
    post_id: str
    # Sent by clients but never trusted: the post's own room drives fan-out.
    room: Optional[str] = None


def parse_payload(model: type[InboundPayload], data) -> InboundPayload:
    """Validate ``data`` against ``model`` or raise InvalidPayload."""
    if not isinstance(data, dict):
        raise InvalidPayload()
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidPayload() from exc
