#!/usr/bin/env python3
"""main.py

CampusFeed server entrypoint.

``server_config.json`` is a *plaintext* JSON settings file. The only secret in
it is ``secret_key``; set ``SECRET_KEY`` (and ``CAMPUSFEED_PERSIST_SECRETS=0``)
to keep it out of the file.

All feed state (users, posts, connections) lives in memory and is gone after a
restart. Uploaded images stay on disk; the janitor removes the ones nothing
references any more.
"""

from __future__ import annotations

import argparse
from datetime import datetime
import json
import logging
import os
import sys
from pathlib import Path

from constants import CONFIG_FILE
from interactive_setup import get_default_settings, interactive_setup
from server_init import run_web_server
from secrets_policy import settings_for_disk


def configure_logging(settings: dict) -> None:
    """Configure file + stdout logging."""
    log_level_str = str(settings.get("log_level", "INFO")).upper()
    log_format = settings.get(
        "log_format",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    log_file_path = settings.get("log_file_path", "logs/server.log")

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    log_level = getattr(logging, log_level_str, logging.INFO)
    logging.basicConfig(level=log_level, format=log_format, filename=log_file_path, filemode="a")
    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(logging.Formatter(log_format))
    logging.getLogger().addHandler(stream)
    logging.info("Logging configured (level=%s)", log_level_str)


def load_settings(path: Path) -> dict:
    """Load settings from JSON on top of the defaults. Returns defaults if missing."""
    defaults = get_default_settings()
    if not path.exists():
        return defaults

    try:
        with path.open("r", encoding="utf-8") as fp:
            loaded = json.load(fp)
        if not isinstance(loaded, dict):
            raise ValueError("top-level value is not an object")
        return {**defaults, **loaded}
    except Exception as exc:
        print(f"⚠️  Could not parse {path} as JSON: {exc}")
        # Back up the broken file so a generated secret_key can be persisted
        # into a fresh JSON file.
        ts = datetime.now().strftime("%Y%m%d-%H%M%S")
        bad_path = path.with_suffix(path.suffix + f".bad-{ts}")
        try:
            path.rename(bad_path)
            print(f"⚠️  Backed up invalid settings file to: {bad_path}")
        except OSError as e2:
            print(f"⚠️  Could not back up invalid settings file: {e2}")
        print("⚠️  Falling back to defaults (run with --setup to rewrite config).")
        return defaults


def save_settings(path: Path, settings: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # If CAMPUSFEED_PERSIST_SECRETS=0, do not write secret_key into server_config.json.
    to_save = settings_for_disk(settings)
    with path.open("w", encoding="utf-8") as fp:
        json.dump(to_save, fp, indent=2)


def apply_env_overrides(settings: dict) -> None:
    """Apply env overrides for secrets and runtime deployment."""

    def _bool_env(*names: str) -> bool | None:
        for n in names:
            v = os.getenv(n)
            if v is None:
                continue
            v = v.strip().lower()
            if v in ("1", "true", "yes", "y", "on"):
                return True
            if v in ("0", "false", "no", "n", "off"):
                return False
        return None

    def _str_env(*names: str) -> str | None:
        for n in names:
            v = os.getenv(n)
            if v is not None and v.strip() != "":
                return v.strip()
        return None

    def _int_env(*names: str) -> int | None:
        v = _str_env(*names)
        if v is None:
            return None
        try:
            return int(v)
        except ValueError:
            return None

    secret = os.getenv("SECRET_KEY")
    if secret:
        settings["secret_key"] = secret

    host = _str_env("CAMPUSFEED_HOST", "HOST")
    if host:
        settings["host"] = host

    # PORT is the usual PaaS convention.
    port = _int_env("CAMPUSFEED_PORT", "PORT")
    if port:
        settings["port"] = port

    debug = _bool_env("CAMPUSFEED_DEBUG")
    if debug is not None:
        settings["debug"] = debug

    upload_dir = _str_env("CAMPUSFEED_UPLOAD_DIR")
    if upload_dir:
        settings["upload_dir"] = upload_dir

    schools = _str_env("CAMPUSFEED_SCHOOLS")
    if schools:
        settings["schools"] = [s.strip().lower() for s in schools.split(",") if s.strip()]

    cors = _str_env("CAMPUSFEED_CORS_ORIGINS")
    if cors:
        settings["cors_allowed_origins"] = cors

    log_level = _str_env("CAMPUSFEED_LOG_LEVEL")
    if log_level:
        settings["log_level"] = log_level.upper()

    cleanup_async = _bool_env("CAMPUSFEED_MEDIA_CLEANUP_ASYNC")
    if cleanup_async is not None:
        settings["media_cleanup_async"] = cleanup_async

    janitor = _bool_env("CAMPUSFEED_JANITOR_ENABLED")
    if janitor is not None:
        settings["janitor_enabled"] = janitor

    rate_limits = _bool_env("CAMPUSFEED_RATE_LIMIT_ENABLED")
    if rate_limits is not None:
        settings["rate_limit_enabled"] = rate_limits


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="CampusFeed server")
    p.add_argument("--setup", action="store_true", help="run the interactive setup wizard")
    p.add_argument("--config", default=CONFIG_FILE, help="path to server config JSON")
    return p.parse_args(argv)


def main() -> None:
    args = parse_args()
    settings_path = Path(args.config)

    settings = load_settings(settings_path)
    apply_env_overrides(settings)

    if args.setup or not settings_path.exists():
        print("\n=== CampusFeed Setup Wizard ===\n")
        settings = interactive_setup(settings)
        save_settings(settings_path, settings)
        print(f"✅ Saved settings to {settings_path}\n")

    configure_logging(settings)

    # Ensure document root + upload dir exist
    os.makedirs(settings.get("document_root", "www"), exist_ok=True)
    os.makedirs(settings.get("upload_dir", "uploads"), exist_ok=True)

    run_web_server(settings, limiter=None, settings_file=settings_path)


if __name__ == "__main__":
    main()
