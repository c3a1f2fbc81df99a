import os

# Must be set before server_init is imported: it picks the async mode (and
# monkey-patches for eventlet) at import time.
os.environ["CAMPUSFEED_SOCKETIO_ASYNC"] = "threading"

import pytest

from interactive_setup import get_default_settings
from server_init import create_app


@pytest.fixture
def settings(tmp_path):
    s = get_default_settings()
    s.update(
        secret_key="test-secret",
        upload_dir=str(tmp_path / "uploads"),
        document_root=str(tmp_path / "www"),
        rate_limit_enabled=False,
        janitor_enabled=False,
        media_cleanup_async=False,
        enable_health_check_endpoint=True,
    )
    return s


@pytest.fixture
def app_and_socketio(settings):
    app, socketio = create_app(settings)
    app.config["TESTING"] = True
    return app, socketio


@pytest.fixture
def app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture
def state(app):
    return app.config["CAMPUSFEED_STATE"]


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def register_user(http):
    def _register(username, school):
        resp = http.post("/api/register", json={"username": username, "school": school})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["user"]
    return _register


@pytest.fixture
def connect(app, socketio):
    """Open a Socket.IO test client, optionally authenticate + join rooms.

    Everything received during setup is drained.
    """
    clients = []

    def _connect(username=None, rooms=()):
        client = socketio.test_client(app)
        if username:
            client.emit("authenticate", {"username": username})
        for room in rooms:
            client.emit("join_room", {"roomName": room})
        client.get_received()
        clients.append(client)
        return client

    yield _connect

    for client in clients:
        if client.is_connected():
            client.disconnect()


@pytest.fixture
def received():
    def _received(client, name):
        """First argument of every ``name`` event the client got (drains the queue)."""
        return [ev["args"][0] for ev in client.get_received() if ev["name"] == name]
    return _received
