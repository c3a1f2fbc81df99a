#!/usr/bin/env python3

from __future__ import annotations

import re


# Application version (semantic-ish). Used for the boot banner + packaging.
APP_VERSION = "0.4.2"

# Path to the plaintext JSON server configuration file
CONFIG_FILE = "server_config.json"

# The shared room every identity can read and post to.
GENERAL_ROOM = "general"

# Default school affiliations offered at registration. "general" is a valid
# affiliation too: such users only ever see the shared room.
DEFAULT_SCHOOLS = [
    "general",
    "central university",
    "ashesi university",
    "knust",
    "university of ghana",
    "upsa",
]

# Username rules (applied after lowercase + trim)
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
USERNAME_RE = re.compile(r"^[a-z0-9_]+$")

# Uploads
DEFAULT_UPLOAD_DIR = "uploads"
UPLOAD_URL_PREFIX = "/uploads/"
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_EXTENSIONS = ["jpeg", "jpg", "png", "gif", "webp"]


def normalize_username(username) -> str:
    """Lowercase + trim. Anything that isn't a string normalizes to ''."""
    if not isinstance(username, str):
        return ""
    return username.strip().lower()


def validate_username(username: str, min_length: int = USERNAME_MIN_LENGTH,
                      max_length: int = USERNAME_MAX_LENGTH) -> tuple[bool, str | None]:
    """Check a *normalized* username. Returns (ok, error_message)."""
    if not username or len(username) < min_length:
        return False, f"Username must be at least {min_length} characters"
    if len(username) > max_length:
        return False, f"Username must be less than {max_length} characters"
    if not USERNAME_RE.match(username):
        return False, "Username can only contain letters, numbers, and underscores"
    return True, None
