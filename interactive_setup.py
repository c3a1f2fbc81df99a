#!/usr/bin/env python3
"""interactive_setup.py

CampusFeed setup wizard.

The server only needs a handful of settings at runtime (bind host/port, the
upload directory, the list of schools, logging). The wizard keeps to those:

  • Quick setup (default): where to listen, where uploads go, which schools exist.
  • Advanced setup (optional): CORS, upload size, rate limits, janitor, logging.

It also *compacts* the saved JSON to only known CampusFeed keys, so your
server_config.json stays readable.
"""

from __future__ import annotations

from typing import Any, Dict

from constants import (
    ALLOWED_IMAGE_EXTENSIONS,
    DEFAULT_SCHOOLS,
    DEFAULT_UPLOAD_DIR,
    GENERAL_ROOM,
    MAX_UPLOAD_BYTES,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)


# ──────────────────────────────────────────────────────────────────────────────
# Defaults (compact)
# ──────────────────────────────────────────────────────────────────────────────

def get_default_settings() -> Dict[str, Any]:
    """Return the full set of CampusFeed defaults.

    Notes:
      - server_init.py will generate/persist secret_key if missing.
      - All feed state is in memory; there is no database to configure.
    """
    return {
        # ── Core server ──────────────────────────────────────────────────
        "server_name": "CampusFeed",
        "host": "0.0.0.0",
        "port": 3000,
        "debug": False,
        "document_root": "www",
        "secret_key": "",

        # ── Feed ─────────────────────────────────────────────────────────
        "schools": list(DEFAULT_SCHOOLS),
        "username_min_length": USERNAME_MIN_LENGTH,
        "username_max_length": USERNAME_MAX_LENGTH,

        # ── Uploads / media ──────────────────────────────────────────────
        "upload_dir": DEFAULT_UPLOAD_DIR,
        "max_upload_bytes": MAX_UPLOAD_BYTES,
        "allowed_image_extensions": list(ALLOWED_IMAGE_EXTENSIONS),
        # Delete post images on a Socket.IO background task (False = inline).
        "media_cleanup_async": True,

        # ── Janitor (orphaned uploads) ───────────────────────────────────
        "janitor_enabled": True,
        "janitor_interval_seconds": 300,
        "orphan_upload_ttl_minutes": 60,

        # ── Socket.IO / CORS ─────────────────────────────────────────────
        "cors_allowed_origins": "*",
        "socketio_ping_interval": 20,
        "socketio_ping_timeout": 15,

        # ── Rate limiting (Flask-Limiter) ────────────────────────────────
        "rate_limit_enabled": True,
        "rate_limit_storage_uri": "memory://",
        "rate_limit_register": "10 per minute",
        "rate_limit_upload": "20 per minute",

        # ── Logging ──────────────────────────────────────────────────────
        "log_level": "INFO",
        "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "log_file_path": "logs/server.log",

        # ── Health ───────────────────────────────────────────────────────
        "enable_health_check_endpoint": False,
        "health_check_endpoint": "/health",
    }


def _compact_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unknown keys so server_config.json stays small."""
    template = get_default_settings()
    compact: Dict[str, Any] = {}
    for k in template.keys():
        compact[k] = settings.get(k, template[k])
    return compact


# ──────────────────────────────────────────────────────────────────────────────
# Prompt helpers
# ──────────────────────────────────────────────────────────────────────────────


def _yn(prompt: str, default: bool = True) -> bool:
    suffix = "[Y/n]" if default else "[y/N]"
    while True:
        raw = (input(f"{prompt} {suffix}: ") or "").strip().lower()
        if not raw:
            return default
        if raw in ("y", "yes"):
            return True
        if raw in ("n", "no"):
            return False
        print("❌ Please answer yes or no.")


def _prompt_str(prompt: str, default: str) -> str:
    raw = input(f"{prompt} [{default}]: ")
    return raw.strip() if raw.strip() else default


def _prompt_int(prompt: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    while True:
        raw = input(f"{prompt} [{default}]: ").strip()
        if not raw:
            val = default
        else:
            try:
                val = int(raw)
            except ValueError:
                print("❌ Please enter a valid integer.")
                continue

        if min_val is not None and val < min_val:
            print(f"❌ Must be ≥ {min_val}.")
            continue
        if max_val is not None and val > max_val:
            print(f"❌ Must be ≤ {max_val}.")
            continue
        return val


def _prompt_choice(prompt: str, default: str, choices: list[str]) -> str:
    ch = {c.lower(): c for c in choices}
    choices_str = "/".join(choices)
    while True:
        raw = (input(f"{prompt} ({choices_str}) [{default}]: ") or "").strip()
        val = (raw or default).strip().lower()
        if val in ch:
            return ch[val]
        print(f"❌ Please choose one of: {choices_str}")


def _parse_schools(raw: str) -> list[str]:
    """Comma-separated school names -> normalized list that always includes general."""
    out: list[str] = []
    for item in raw.split(","):
        s = item.strip().lower()
        if s and s not in out:
            out.append(s)
    if GENERAL_ROOM not in out:
        out.insert(0, GENERAL_ROOM)
    return out


def interactive_setup(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Run the CampusFeed setup wizard and return an updated (compacted) settings dict."""

    # Start from compact defaults, but allow existing values to carry forward.
    base = get_default_settings()
    merged = {**base, **(settings or {})}

    advanced = _yn("Advanced mode? (more prompts)", default=False)

    # ── Core server ───────────────────────────────────────────────────────────
    merged["server_name"] = _prompt_str("Server name", str(merged.get("server_name") or base["server_name"]))
    merged["host"] = _prompt_str("Bind host", str(merged.get("host") or base["host"]))
    merged["port"] = _prompt_int("Bind port", int(merged.get("port") or base["port"]), 1, 65535)

    # ── Feed ──────────────────────────────────────────────────────────────────
    merged["upload_dir"] = _prompt_str("Upload directory", str(merged.get("upload_dir") or base["upload_dir"]))
    schools_default = ", ".join(merged.get("schools") or base["schools"])
    merged["schools"] = _parse_schools(_prompt_str("Schools (comma-separated)", schools_default))

    if advanced:
        cors_default = merged.get("cors_allowed_origins") or "*"
        raw = input(f"CORS allowed origins (comma-separated or * for all) [{cors_default}]: ").strip()
        if raw:
            merged["cors_allowed_origins"] = raw

        max_mb = max(1, int(merged.get("max_upload_bytes") or base["max_upload_bytes"]) // (1024 * 1024))
        merged["max_upload_bytes"] = _prompt_int("Max upload size (MB)", max_mb, 1, 100) * 1024 * 1024

        merged["rate_limit_enabled"] = _yn(
            "Rate limit registration and uploads?",
            default=bool(merged.get("rate_limit_enabled", True)),
        )
        if merged["rate_limit_enabled"]:
            merged["rate_limit_register"] = _prompt_str(
                "Registration limit", str(merged.get("rate_limit_register") or base["rate_limit_register"])
            )
            merged["rate_limit_upload"] = _prompt_str(
                "Upload limit", str(merged.get("rate_limit_upload") or base["rate_limit_upload"])
            )

        merged["janitor_enabled"] = _yn(
            "Delete uploads that were never posted?",
            default=bool(merged.get("janitor_enabled", True)),
        )
        if merged["janitor_enabled"]:
            merged["orphan_upload_ttl_minutes"] = _prompt_int(
                "Minutes before an unused upload is deleted",
                int(merged.get("orphan_upload_ttl_minutes") or base["orphan_upload_ttl_minutes"]),
                1,
                7 * 24 * 60,
            )

        merged["log_level"] = _prompt_choice(
            "Log level",
            str(merged.get("log_level") or "INFO").upper(),
            ["DEBUG", "INFO", "WARNING", "ERROR"],
        )
        merged["log_file_path"] = _prompt_str("Log file", str(merged.get("log_file_path") or base["log_file_path"]))

    return _compact_settings(merged)
