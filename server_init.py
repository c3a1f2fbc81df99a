#!/usr/bin/env python3
"""
server_init.py
Initialises and runs the CampusFeed Flask + Socket.IO application.
Builds the in-memory FeedState and hands it to every route and handler module.
"""

from __future__ import annotations

import json
import os
import logging

# Optional WebSocket support
# - Default: auto (use eventlet if available, otherwise fall back to threading/polling)
# - Override with: CAMPUSFEED_SOCKETIO_ASYNC=threading|eventlet
CAMPUSFEED_SOCKETIO_ASYNC = os.environ.get("CAMPUSFEED_SOCKETIO_ASYNC", "auto").strip().lower()
_EVENTLET_AVAILABLE = False
if CAMPUSFEED_SOCKETIO_ASYNC in {"auto", "eventlet"}:
    try:
        import eventlet  # type: ignore

        eventlet.monkey_patch()
        _EVENTLET_AVAILABLE = True
    except ImportError:
        _EVENTLET_AVAILABLE = False
import socket
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_socketio import SocketIO

from constants import APP_VERSION, MAX_UPLOAD_BYTES
from janitor import start_janitor
from realtime.state import FeedState
from routes_auth import register_auth_routes
from routes_main import register_main_routes
from secrets_policy import configured_secret_key, may_write_secret_key, new_secret_key
from socket_handlers import register_socketio_handlers


def _normalize_cors_origins(val):
    if val is None:
        return None
    if isinstance(val, str):
        raw = val.strip()
        if not raw:
            return None
        # Support comma-separated strings
        if "," in raw:
            items = [x.strip() for x in raw.split(",") if x.strip()]
            return items or None
        return raw
    if isinstance(val, (list, tuple, set)):
        items = [str(x).strip() for x in val if str(x).strip()]
        return items or None
    return None


def _lan_address() -> str:
    """Best-effort LAN IPv4 address of this host (no packets are sent)."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.connect(("10.255.255.255", 1))
        return probe.getsockname()[0]
    except OSError:
        return "localhost"
    finally:
        probe.close()


def create_app(
    settings: Dict[str, Any],
    limiter: Optional[Limiter] | None = None,
    settings_file: Optional[Path] | None = None,
    state: Optional[FeedState] | None = None,
) -> tuple[Flask, SocketIO]:
    """Create and configure the Flask + Socket.IO application.

    This function does **not** start a server. It is safe to import from a
    Gunicorn `wsgi.py` module. The FeedState is exposed as
    ``app.config["CAMPUSFEED_STATE"]``.
    """

    settings_file = Path(settings_file) if isinstance(settings_file, str) else settings_file
    state = state or FeedState(settings)

    # ───── Flask App Core ─────
    app = Flask(__name__, static_folder=None)
    app.config["CAMPUSFEED_SETTINGS_FILE"] = str(settings_file) if settings_file else None
    app.config["CAMPUSFEED_SETTINGS"] = settings
    app.config["CAMPUSFEED_STATE"] = state

    app.secret_key = _ensure_secret_key(settings, settings_file)

    # Multipart overhead on top of the per-file limit; the file itself is
    # re-checked after it is written.
    max_upload = int(settings.get("max_upload_bytes") or MAX_UPLOAD_BYTES)
    app.config.update(
        SECRET_KEY=app.secret_key,
        MAX_CONTENT_LENGTH=max_upload + 256_000,
    )

    cors_origins = _normalize_cors_origins(settings.get("cors_allowed_origins", "*"))
    if cors_origins is not None:
        CORS(app, origins=cors_origins)

    storage_uri = settings.get("rate_limit_storage_uri") or "memory://"
    if limiter is None:
        limiter = Limiter(
            key_func=get_remote_address,
            storage_uri=storage_uri,
            enabled=bool(settings.get("rate_limit_enabled", True)),
        )
    limiter.init_app(app)
    # Route decorators only hold a weak proxy, and a disabled Limiter never
    # registers itself in app.extensions; the app must own it.
    app.extensions["campusfeed_limiter"] = limiter

    logging.info("==================== CampusFeed Boot ====================")
    logging.info("CampusFeed version: %s", APP_VERSION)
    logging.info("Settings file: %s", str(settings_file) if settings_file else "<none>")
    logging.info("Upload dir: %s", state.media.upload_dir)
    logging.info("Schools: %s", ", ".join(state.schools))
    logging.info("=========================================================")

    # ───── SocketIO Setup ─────
    async_mode = "threading"
    if CAMPUSFEED_SOCKETIO_ASYNC == "eventlet" and not _EVENTLET_AVAILABLE:
        print("[socketio] CAMPUSFEED_SOCKETIO_ASYNC=eventlet but eventlet is not installed; falling back to threading")
    if (CAMPUSFEED_SOCKETIO_ASYNC in {"auto", "eventlet"}) and _EVENTLET_AVAILABLE:
        async_mode = "eventlet"
    app.config["CAMPUSFEED_SOCKETIO_ASYNC_MODE"] = async_mode

    socketio = SocketIO(
        app,
        async_mode=async_mode,
        cors_allowed_origins=cors_origins,
        logger=False,
        engineio_logger=False,
        ping_interval=int(settings.get("socketio_ping_interval") or 20),
        ping_timeout=int(settings.get("socketio_ping_timeout") or 15),
    )
    app.config["CAMPUSFEED_SOCKETIO"] = socketio

    # ───── Global Socket.IO Error Handler ─────
    # A handler bug must never take the connection (or the server) down:
    # log it and tell only the originating socket.
    @socketio.on_error_default  # applies to all namespaces
    def _socketio_default_error_handler(e):
        sid = getattr(request, "sid", None)
        app.logger.exception("Socket.IO handler error: %s", e)
        if sid:
            socketio.emit("error", {"message": "Internal server error"}, to=sid)

    # ───── Routes ─────
    register_auth_routes(app, settings, state, limiter=limiter)
    register_main_routes(app, settings, state, limiter=limiter)

    register_socketio_handlers(socketio, settings, state)

    return app, socketio


def run_web_server(
    settings: Dict[str, Any],
    limiter: Optional[Limiter] | None = None,
    settings_file: Optional[Path] | None = None,
) -> None:
    """Bootstrap the Flask-SocketIO app, attach routes & handlers, then run it."""
    app, socketio = create_app(settings, limiter=limiter, settings_file=settings_file)
    state: FeedState = app.config["CAMPUSFEED_STATE"]

    # ───── Run Server (single process; all state is in memory) ─────
    host = settings.get("host") or "0.0.0.0"
    port = int(settings.get("port") or 3000)
    debug = bool(settings.get("debug") or False)

    print("\n======================================================")
    print(f"SERVER RUNNING: Socket.IO listening on port {port} (debug={debug})")
    print("\nAccess the app from:")
    print(f"  - Local: http://localhost:{port}")
    print(f"  - Network: http://{_lan_address()}:{port}")
    print("======================================================\n")

    if bool(settings.get("janitor_enabled", True)):
        start_janitor(settings, state)

    # Reduce console spam from long-polling by filtering Werkzeug access logs for /socket.io.
    class _SocketIOAccessFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:  # type: ignore
            return "/socket.io/" not in record.getMessage()

    logging.getLogger("werkzeug").addFilter(_SocketIOAccessFilter())

    threading_mode = app.config.get("CAMPUSFEED_SOCKETIO_ASYNC_MODE") == "threading"
    run_kwargs: Dict[str, Any] = {}
    if threading_mode:
        run_kwargs["allow_unsafe_werkzeug"] = True
    socketio.run(
        app,
        host=host,
        port=port,
        debug=debug,
        # The reloader would start a second process with its own empty state.
        use_reloader=False,
        log_output=False,
        **run_kwargs,
    )


# ───── Helpers ─────
def _ensure_secret_key(
    settings: Dict[str, Any],
    settings_file: Optional[Path],
) -> str:
    key = configured_secret_key(settings)
    if key:
        return key

    key = new_secret_key()
    settings["secret_key"] = key
    persisted = _persist_generated_key(settings, settings_file)
    if persisted:
        print("✅ secret_key generated and saved to settings.")
    else:
        print("⚠️  Generated a one-off secret_key (NOT saved).")
    return key


def _persist_generated_key(settings: Dict[str, Any], settings_file: Optional[Path]) -> bool:
    # If persistence is disabled, never write secrets into server_config.json.
    if not may_write_secret_key():
        return False
    if not settings_file:
        return False
    if settings_file.suffix.lower() != ".json":
        print(f"⚠️  Unsupported settings file format: {settings_file}")
        return False

    try:
        # Only merge into the settings file if it is valid JSON or does not exist.
        existing: dict | None = None
        if settings_file.exists():
            try:
                with settings_file.open("r", encoding="utf-8") as fp:
                    existing = json.load(fp)
            except ValueError:
                existing = None

        # If the settings file exists but is invalid JSON, back it up and write a fresh JSON file.
        if existing is None and settings_file.exists():
            ts = datetime.now().strftime("%Y%m%d-%H%M%S")
            bad_path = settings_file.with_suffix(settings_file.suffix + f".bad-{ts}")
            settings_file.rename(bad_path)
            print(f"⚠️  Backed up invalid settings file to: {bad_path}")
            existing = {}

        merged = dict(existing or {})
        merged["secret_key"] = settings["secret_key"]

        settings_file.parent.mkdir(parents=True, exist_ok=True)
        with settings_file.open("w", encoding="utf-8") as fp:
            json.dump(merged, fp, indent=2)
    except OSError as exc:
        print(f"⚠️  Could not persist secret_key to {settings_file}: {exc}", file=sys.stderr)
        return False

    return True
