import pytest

from realtime.errors import UnknownIdentity
from realtime.identity import IdentityDirectory
from realtime.registry import ConnectionRegistry
from realtime.schemas import User


@pytest.fixture
def directory():
    d = IdentityDirectory()
    d.put(User(username="alice", display_name="Alice", school="knust"))
    d.put(User(username="bob", display_name="Bob", school="upsa"))
    return d


@pytest.fixture
def registry(directory):
    return ConnectionRegistry(directory)


def test_directory_normalizes_keys(directory):
    assert directory.lookup("  ALICE ").display_name == "Alice"
    assert directory.contains("Bob")
    assert directory.lookup("carol") is None


def test_update_avatar_returns_previous(directory):
    assert directory.update_avatar("alice", "/uploads/a.png") is None
    assert directory.update_avatar("alice", "/uploads/b.png") == "/uploads/a.png"
    assert directory.lookup("alice").avatar == "/uploads/b.png"
    with pytest.raises(KeyError):
        directory.update_avatar("nobody", "/uploads/x.png")


def test_bind_unknown_identity(registry):
    with pytest.raises(UnknownIdentity):
        registry.bind("sid-1", "carol")
    with pytest.raises(UnknownIdentity):
        registry.bind("sid-1", None)
    assert registry.resolve("sid-1") is None


def test_bind_is_case_insensitive(registry):
    registry.bind("sid-1", " Alice ")
    assert registry.resolve("sid-1") == "alice"
    assert registry.current_sid("ALICE") == "sid-1"


def test_rebind_makes_old_connection_stale(registry):
    assert registry.bind("c1", "alice") is None
    assert registry.bind("c2", "alice") == "c1"

    assert registry.resolve("c2") == "alice"
    assert registry.resolve("c1") is None
    assert registry.current_sid("alice") == "c2"
    assert len(registry) == 1


def test_stale_disconnect_keeps_newer_binding(registry):
    registry.bind("c1", "alice")
    registry.bind("c2", "alice")

    # c1's forward mapping is already gone, so nothing is reported.
    assert registry.unbind("c1") is None
    assert registry.resolve("c2") == "alice"
    assert registry.current_sid("alice") == "c2"


def test_unbind_current_connection(registry):
    registry.bind("c1", "alice")
    assert registry.unbind("c1") == "alice"
    assert registry.resolve("c1") is None
    assert registry.current_sid("alice") is None
    assert registry.unbind("c1") is None


def test_same_sid_switching_identity_releases_old_one(registry):
    registry.bind("c1", "alice")
    registry.bind("c1", "bob")
    assert registry.resolve("c1") == "bob"
    assert registry.current_sid("alice") is None
    assert registry.current_sid("bob") == "c1"


def test_rebinding_same_sid_is_a_noop(registry):
    registry.bind("c1", "alice")
    assert registry.bind("c1", "alice") is None
    assert registry.resolve("c1") == "alice"
