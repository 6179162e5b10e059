# plugins/core_precache/tests/test_config.py
import json

from plugins.core_precache.config import (
    PrecacheConfig,
    assets_directory,
    load_config,
    logs_directory
)


def test_defaults_when_file_missing(module_dir):
    config = load_config(module_dir)

    assert config.log is True
    assert config.log_file is False
    assert config.webhook_enabled is False
    assert config.writes_log_file is False


def test_reads_pascal_case_json(module_dir):
    (module_dir / "precacher.json").write_text(json.dumps({
        "ConfigVersion": 1,
        "Log": False,
        "LogFile": True,
        "DiscordWebhookUrl": "https://discord.com/api/webhooks/1/abc"
    }), encoding="utf-8")

    config = load_config(module_dir)

    assert config.log is False
    assert config.log_file is True
    assert config.discord_webhook_url == "https://discord.com/api/webhooks/1/abc"


def test_blank_webhook_url_disables_webhook():
    config = PrecacheConfig.model_validate({"DiscordWebhookUrl": "   "})
    assert config.discord_webhook_url is None
    assert config.webhook_enabled is False


def test_webhook_implies_report_file():
    config = PrecacheConfig.model_validate({"LogFile": False, "DiscordWebhookUrl": "https://example.test/hook"})
    assert config.writes_log_file is True


def test_environment_overrides_file(module_dir, monkeypatch):
    (module_dir / "precacher.json").write_text('{"Log": true, "LogFile": false}', encoding="utf-8")
    monkeypatch.setenv("PRECACHER_LOG", "off")
    monkeypatch.setenv("PRECACHER_LOG_FILE", "1")
    monkeypatch.setenv("PRECACHER_DISCORD_WEBHOOK_URL", "https://example.test/hook")

    config = load_config(module_dir)

    assert config.log is False
    assert config.log_file is True
    assert config.discord_webhook_url == "https://example.test/hook"


def test_invalid_boolean_override_is_ignored(module_dir, monkeypatch):
    monkeypatch.setenv("PRECACHER_LOG", "sometimes")
    assert load_config(module_dir).log is True


def test_malformed_file_falls_back_to_defaults(module_dir, caplog):
    (module_dir / "precacher.json").write_text("{not json", encoding="utf-8")

    config = load_config(module_dir)

    assert config == PrecacheConfig()
    assert "Failed to read config file" in caplog.text


def test_explicit_config_path(tmp_path, module_dir, monkeypatch):
    custom = tmp_path / "elsewhere.json"
    custom.write_text('{"LogFile": true}', encoding="utf-8")
    monkeypatch.setenv("PRECACHER_CONFIG", str(custom))

    assert load_config(module_dir).log_file is True


def test_directory_layout(module_dir):
    assert assets_directory(module_dir) == module_dir / "assets"
    assert logs_directory(module_dir) == module_dir.parent / "logs"
