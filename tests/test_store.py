import pytest

from realtime import access
from realtime.errors import NotOwner, PostNotFound
from realtime.schemas import Post, Reply, User
from realtime.store import PostStore

ALICE = User(username="alice", display_name="Alice", school="ashesi university")
BOB = User(username="bob", display_name="Bob", school="knust")


def _post(sender, room, content="hello", image_url=None):
    return Post(sender=sender, display_name=sender.title(), content=content, image_url=image_url, room=room)


def test_allowed_rooms():
    assert access.allowed_rooms(ALICE) == {"general", "ashesi university"}
    assert access.can_join(ALICE, " General ")
    assert access.can_post_to(ALICE, "Ashesi University")
    assert not access.can_post_to(ALICE, "knust")
    assert not access.can_read(BOB, "ashesi university")
    assert not access.can_join(ALICE, None)


def test_audience_rooms():
    assert access.audience_rooms("general") is None
    assert access.audience_rooms("knust") == ["knust", "general"]


def test_append_preserves_order_and_indexes():
    store = PostStore()
    first = store.append(_post("alice", "general", "one"))
    second = store.append(_post("bob", "knust", "two"))
    assert [p.content for p in store] == ["one", "two"]
    assert store.find_by_id(second.id) is second
    assert store.find_by_id(first.id) is first
    assert store.find_by_id("missing") is None
    assert store.find_by_id(None) is None


def test_snapshot_filters_by_general_and_own_school():
    store = PostStore()
    store.append(_post("alice", "general", "g1"))
    store.append(_post("bob", "knust", "k1"))
    store.append(_post("alice", "ashesi university", "a1"))
    store.append(_post("bob", "general", "g2"))

    assert [p.content for p in store.snapshot_for(ALICE)] == ["g1", "a1", "g2"]
    assert [p.content for p in store.snapshot_for(BOB)] == ["g1", "k1", "g2"]


def test_append_reply():
    store = PostStore()
    post = store.append(_post("alice", "general"))
    store.append_reply(post.id, Reply(sender="bob", display_name="Bob", content="first"))
    store.append_reply(post.id, Reply(sender="alice", display_name="Alice", content="second"))
    assert [r.content for r in post.replies] == ["first", "second"]

    with pytest.raises(PostNotFound):
        store.append_reply("nope", Reply(sender="bob", display_name="Bob"))


def test_remove_checks_ownership():
    store = PostStore()
    post = store.append(_post("alice", "general"))

    with pytest.raises(NotOwner):
        store.remove(post.id, "bob")
    assert store.find_by_id(post.id) is post

    removed = store.remove(post.id, "alice")
    assert removed is post
    assert store.find_by_id(post.id) is None
    assert store.snapshot_for(ALICE) == []

    with pytest.raises(PostNotFound):
        store.remove(post.id, "alice")


def test_image_urls_cover_posts_and_replies():
    store = PostStore()
    post = store.append(_post("alice", "general", image_url="/uploads/p.png"))
    store.append_reply(post.id, Reply(sender="bob", display_name="Bob", image_url="/uploads/r.png"))
    store.append_reply(post.id, Reply(sender="bob", display_name="Bob", content="text only"))
    store.append(_post("bob", "knust"))
    assert store.image_urls() == ["/uploads/p.png", "/uploads/r.png"]


def test_wire_format_is_camel_case():
    post = _post("alice", "general", image_url="/uploads/p.png")
    wire = post.to_wire()
    assert wire["displayName"] == "Alice"
    assert wire["imageUrl"] == "/uploads/p.png"
    assert wire["replies"] == []
    assert isinstance(wire["timestamp"], int)
    assert set(ALICE.public()) == {"username", "displayName", "avatar", "school"}
