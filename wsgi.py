"""wsgi.py

Gunicorn entrypoint for CampusFeed.

Run (example):
  CAMPUSFEED_SOCKETIO_ASYNC=eventlet \
  gunicorn -c gunicorn_conf.py wsgi:app

Notes:
- All feed state lives in this one process. Never run more than one worker.
"""

from __future__ import annotations

import os

# ---- Ensure eventlet monkey_patch happens as early as possible ----
_async = (os.environ.get("CAMPUSFEED_SOCKETIO_ASYNC", "auto") or "auto").strip().lower()
if _async in {"auto", "eventlet"}:
    try:
        import eventlet  # type: ignore

        eventlet.monkey_patch()
    except ImportError:
        # If eventlet isn't installed, CampusFeed falls back to threading.
        pass

from pathlib import Path

from constants import CONFIG_FILE
from janitor import start_janitor
from main import load_settings, apply_env_overrides
from server_init import create_app


def _resolve_config_path() -> Path:
    # Prefer explicit env path when running under systemd.
    p = (
        os.environ.get("CAMPUSFEED_CONFIG")
        or os.environ.get("CAMPUSFEED_CONFIG_FILE")
        or CONFIG_FILE
    )
    return Path(p)


_settings_path = _resolve_config_path()
_settings = load_settings(_settings_path)
apply_env_overrides(_settings)

# Create the Flask app + Socket.IO integration.
app, socketio = create_app(_settings, limiter=None, settings_file=_settings_path)

# Single worker, so the janitor can run in-process.
if bool(_settings.get("janitor_enabled", True)):
    start_janitor(_settings, app.config["CAMPUSFEED_STATE"])

# Expose these for tooling / introspection.
app.config["CAMPUSFEED_GUNICORN"] = True
app.config["CAMPUSFEED_SETTINGS_PATH"] = str(_settings_path)
