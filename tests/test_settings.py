import json

import pytest

import interactive_setup
import secrets_policy
from interactive_setup import get_default_settings
from main import apply_env_overrides, load_settings, parse_args, save_settings


ENV_KEYS = [
    "SECRET_KEY", "CAMPUSFEED_HOST", "HOST", "CAMPUSFEED_PORT", "PORT", "CAMPUSFEED_DEBUG",
    "CAMPUSFEED_UPLOAD_DIR", "CAMPUSFEED_SCHOOLS", "CAMPUSFEED_CORS_ORIGINS", "CAMPUSFEED_LOG_LEVEL",
    "CAMPUSFEED_MEDIA_CLEANUP_ASYNC", "CAMPUSFEED_JANITOR_ENABLED", "CAMPUSFEED_RATE_LIMIT_ENABLED",
    "CAMPUSFEED_PERSIST_SECRETS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_missing_file_returns_defaults(tmp_path):
    assert load_settings(tmp_path / "nope.json") == get_default_settings()


def test_load_merges_over_defaults(tmp_path):
    path = tmp_path / "server_config.json"
    path.write_text(json.dumps({"port": 8080, "schools": ["general", "upsa"]}), encoding="utf-8")
    settings = load_settings(path)
    assert settings["port"] == 8080
    assert settings["schools"] == ["general", "upsa"]
    assert settings["upload_dir"] == "uploads"


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_load_backs_up_broken_file(tmp_path, content):
    path = tmp_path / "server_config.json"
    path.write_text(content, encoding="utf-8")
    assert load_settings(path) == get_default_settings()
    assert not path.exists()
    backups = list(tmp_path.glob("server_config.json.bad-*"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == content


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.setenv("PORT", "8000")
    monkeypatch.setenv("CAMPUSFEED_HOST", "127.0.0.1")
    monkeypatch.setenv("CAMPUSFEED_DEBUG", "yes")
    monkeypatch.setenv("CAMPUSFEED_SCHOOLS", "General, KNUST ,,upsa")
    monkeypatch.setenv("CAMPUSFEED_LOG_LEVEL", "debug")
    monkeypatch.setenv("CAMPUSFEED_MEDIA_CLEANUP_ASYNC", "0")
    monkeypatch.setenv("CAMPUSFEED_JANITOR_ENABLED", "off")

    settings = get_default_settings()
    apply_env_overrides(settings)
    assert settings["secret_key"] == "s3cret"
    assert settings["port"] == 8000
    assert settings["host"] == "127.0.0.1"
    assert settings["debug"] is True
    assert settings["schools"] == ["general", "knust", "upsa"]
    assert settings["log_level"] == "DEBUG"
    assert settings["media_cleanup_async"] is False
    assert settings["janitor_enabled"] is False
    assert settings["rate_limit_enabled"] is True


def test_env_overrides_ignore_garbage(monkeypatch):
    monkeypatch.setenv("CAMPUSFEED_PORT", "eighty")
    monkeypatch.setenv("CAMPUSFEED_DEBUG", "maybe")
    settings = get_default_settings()
    apply_env_overrides(settings)
    assert settings["port"] == 3000
    assert settings["debug"] is False


def test_save_settings_scrubs_secret_when_disabled(tmp_path, monkeypatch):
    path = tmp_path / "cfg" / "server_config.json"
    settings = {**get_default_settings(), "secret_key": "abc"}

    save_settings(path, settings)
    assert json.loads(path.read_text(encoding="utf-8"))["secret_key"] == "abc"

    monkeypatch.setenv("CAMPUSFEED_PERSIST_SECRETS", "0")
    save_settings(path, settings)
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert "secret_key" not in saved
    assert saved["port"] == 3000
    assert settings["secret_key"] == "abc"


def test_parse_args():
    args = parse_args(["--setup", "--config", "alt.json"])
    assert args.setup is True
    assert args.config == "alt.json"
    assert parse_args([]).config == "server_config.json"


def _feed_input(monkeypatch, answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(answers))


def test_quick_setup(monkeypatch):
    _feed_input(monkeypatch, [
        "",                 # advanced? -> no
        "My Campus",        # server name
        "",                 # host
        "8080",             # port
        "/srv/uploads",     # upload dir
        "KNUST, upsa, knust",
    ])
    result = interactive_setup.interactive_setup({"unknown_key": 1})
    assert result["server_name"] == "My Campus"
    assert result["host"] == "0.0.0.0"
    assert result["port"] == 8080
    assert result["upload_dir"] == "/srv/uploads"
    assert result["schools"] == ["general", "knust", "upsa"]
    assert "unknown_key" not in result
    assert set(result) == set(get_default_settings())


def test_advanced_setup(monkeypatch):
    _feed_input(monkeypatch, [
        "y",                # advanced
        "", "", "99999", "3000",  # name, host, invalid port then valid
        "", "",             # upload dir, schools
        "https://a.example, https://b.example",
        "8",                # max upload MB
        "n",                # rate limiting
        "y", "30",          # janitor + TTL
        "debug",            # log level
        "",                 # log file
    ])
    result = interactive_setup.interactive_setup(get_default_settings())
    assert result["port"] == 3000
    assert result["cors_allowed_origins"] == "https://a.example, https://b.example"
    assert result["max_upload_bytes"] == 8 * 1024 * 1024
    assert result["rate_limit_enabled"] is False
    assert result["orphan_upload_ttl_minutes"] == 30
    assert result["log_level"] == "DEBUG"
    assert result["schools"] == get_default_settings()["schools"]


def test_secret_key_sources(monkeypatch):
    assert secrets_policy.configured_secret_key({"secret_key": "from-file"}) == "from-file"
    assert secrets_policy.configured_secret_key({"secret_key": ""}) is None
    monkeypatch.setenv("SECRET_KEY", "from-env")
    assert secrets_policy.configured_secret_key({"secret_key": ""}) == "from-env"
    assert len(secrets_policy.new_secret_key()) >= 64


@pytest.mark.parametrize("value,allowed", [("0", False), ("off", False), ("1", True), ("whatever", True)])
def test_secret_key_persistence_switch(monkeypatch, value, allowed):
    monkeypatch.setenv("CAMPUSFEED_PERSIST_SECRETS", value)
    assert secrets_policy.may_write_secret_key() is allowed
    saved = secrets_policy.settings_for_disk({"secret_key": "abc", "port": 1})
    assert ("secret_key" in saved) is allowed
    assert saved["port"] == 1
