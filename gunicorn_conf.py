"""gunicorn_conf.py

Default Gunicorn config for CampusFeed + Flask-SocketIO using Eventlet.

Environment variables:
  CAMPUSFEED_BIND=0.0.0.0:3000
  CAMPUSFEED_GUNICORN_LOGLEVEL=info
  CAMPUSFEED_GUNICORN_ACCESSLOG=-
  CAMPUSFEED_GUNICORN_ERRORLOG=-
  CAMPUSFEED_GUNICORN_TIMEOUT=60

Recommended:
  CAMPUSFEED_SOCKETIO_ASYNC=eventlet
"""

from __future__ import annotations

import os

bind = os.environ.get("CAMPUSFEED_BIND", "0.0.0.0:3000")
# Users, posts and connection bindings are held in process memory.
workers = 1
worker_class = "eventlet"

# WebSockets keep connections open; avoid overly low timeouts.
timeout = int(os.environ.get("CAMPUSFEED_GUNICORN_TIMEOUT", "60"))
keepalive = int(os.environ.get("CAMPUSFEED_GUNICORN_KEEPALIVE", "5"))

loglevel = os.environ.get("CAMPUSFEED_GUNICORN_LOGLEVEL", "info")
accesslog = os.environ.get("CAMPUSFEED_GUNICORN_ACCESSLOG", "-")
errorlog = os.environ.get("CAMPUSFEED_GUNICORN_ERRORLOG", "-")

# Important for Socket.IO upgrades through reverse proxies.
forwarded_allow_ips = os.environ.get("CAMPUSFEED_FORWARDED_ALLOW_IPS", "*")
