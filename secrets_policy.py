"""secrets_policy.py

CampusFeed has exactly one secret: the Flask ``secret_key``. This module
decides where it comes from and whether it may be written to
server_config.json.

  SECRET_KEY=...                  wins over the settings file
  CAMPUSFEED_PERSIST_SECRETS=0    keep the key out of server_config.json
"""

from __future__ import annotations

import os
import secrets
from typing import Any, Dict

SECRET_KEY_SETTING = "secret_key"
PERSIST_ENV = "CAMPUSFEED_PERSIST_SECRETS"


def may_write_secret_key() -> bool:
    """Anything but an explicit 'off' value allows writing the key to disk."""
    raw = (os.getenv(PERSIST_ENV) or "").strip().lower()
    return raw not in {"0", "false", "no", "n", "off"}


def configured_secret_key(settings: Dict[str, Any]) -> str | None:
    return settings.get(SECRET_KEY_SETTING) or os.getenv("SECRET_KEY") or None


def new_secret_key() -> str:
    return secrets.token_urlsafe(64)


def settings_for_disk(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``settings`` that is safe to save under the current policy."""
    out = dict(settings)
    if not may_write_secret_key():
        out.pop(SECRET_KEY_SETTING, None)
    return out
