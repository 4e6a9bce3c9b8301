"""Tests for configuration loading."""

import json

import pytest

from bundle_patcher.config import (
    BACKUP_FILENAME,
    DEFAULT_VERBS,
    Config,
    Settings,
)
from bundle_patcher.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("BUNDLE_PATCHER_CONFIG_DIR", "BUNDLE_PATCHER_TARGET",
                "BUNDLE_PATCHER_TARGET_VERSION", "BUNDLE_PATCHER_DEBUG",
                "BUNDLE_PATCHER_PROMPT_DATA_URL"):
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_settings_defaults(self):
        settings = Settings.from_dict(None)
        assert settings.thinking_verbs.verbs == DEFAULT_VERBS
        assert settings.thinking_verbs.format == "{}… "
        assert settings.thinking_style.update_interval == 120
        assert settings.user_message_display is None
        assert settings.misc.context_limit_override
        assert not settings.misc.custom_model_aliases
        assert settings.misc.visible_option_count == 25

    def test_config_paths(self, tmp_path):
        cfg = Config(config_dir=str(tmp_path))
        assert cfg.BACKUP_FILE == str(tmp_path / BACKUP_FILENAME)
        assert cfg.PROMPTS_DIR == str(tmp_path / "system-prompts")
        assert cfg.TARGET_PATH is None
        assert not cfg.DEBUG
        assert cfg.SYSTEM_PROMPTS_ENABLED

    def test_config_dir_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BUNDLE_PATCHER_CONFIG_DIR", str(tmp_path))
        assert Config().CONFIG_DIR == str(tmp_path)


class TestSettingsParsing:
    def test_camel_and_snake_case(self):
        settings = Settings.from_dict({
            "thinkingStyle": {"updateInterval": 80, "reverseMirror": False},
            "misc": {"forceVerbose": False, "show_version": False},
            "subagent_models": {"generalPurpose": "m1"},
        })
        assert settings.thinking_style.update_interval == 80
        assert not settings.thinking_style.reverse_mirror
        assert not settings.misc.force_verbose
        assert not settings.misc.show_version
        assert settings.subagent_models.general_purpose == "m1"
        assert settings.subagent_models.any_set()

    def test_legacy_punctuation(self):
        settings = Settings.from_dict({"thinkingVerbs": {"punctuation": "... "}})
        assert settings.thinking_verbs.format == "{}... "

    def test_verbs_disabled(self):
        assert Settings.from_dict({"thinkingVerbs": None}).thinking_verbs is None

    def test_unknown_border_style(self):
        with pytest.raises(ConfigError, match="border style"):
            Settings.from_dict({"userMessageDisplay": {"borderStyle": "wavy"}})

    def test_styling_in_canonical_order(self):
        settings = Settings.from_dict(
            {"userMessageDisplay": {"styling": ["underline", "bold", "blink"]}})
        assert settings.user_message_display.styling == ["bold", "underline"]

    def test_toolsets(self):
        settings = Settings.from_dict({
            "toolsets": [{"name": "dev", "allowedTools": ["Read"]}, {"name": "all"},
                         {"allowedTools": "*"}],
            "defaultToolset": "dev",
        })
        assert [(t.name, t.allowed_tools) for t in settings.toolsets] == \
            [("dev", ["Read"]), ("all", "*")]
        assert settings.default_toolset == "dev"

    def test_launch_text_fallback(self):
        settings = Settings.from_dict({"launchText": {"customText": "HELLO"},
                                       "welcomeText": "Hi"})
        assert settings.welcome_text == "Hi"
        assert settings.banner_text == "HELLO"


class TestLoad:
    def test_yaml_file(self, tmp_path):
        (tmp_path / "config.yaml").write_text(
            "targetPath: /opt/cli.js\nccVersion: 1.0.100\n"
            "settings:\n  misc:\n    hideStartupBanner: true\n",
            encoding="utf-8")
        cfg = Config.load(config_dir=str(tmp_path))
        assert cfg.TARGET_PATH == "/opt/cli.js"
        assert cfg.TARGET_VERSION == "1.0.100"
        assert cfg.settings.misc.hide_startup_banner

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"debug": True, "systemPrompts": False}), encoding="utf-8")
        cfg = Config.load(str(path))
        assert cfg.DEBUG
        assert not cfg.SYSTEM_PROMPTS_ENABLED
        assert cfg.CONFIG_DIR == str(tmp_path)

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / "config.yaml").write_text("targetPath: /from/file.js\n", encoding="utf-8")
        monkeypatch.setenv("BUNDLE_PATCHER_TARGET", "/from/env.js")
        monkeypatch.setenv("BUNDLE_PATCHER_DEBUG", "TRUE")
        cfg = Config.load(config_dir=str(tmp_path))
        assert cfg.TARGET_PATH == "/from/env.js"
        assert cfg.DEBUG

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = Config.load(config_dir=str(tmp_path))
        assert cfg.TARGET_PATH is None

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "config.yaml").write_text("settings: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="invalid config file"):
            Config.load(config_dir=str(tmp_path))

    def test_non_mapping(self, tmp_path):
        (tmp_path / "config.yaml").write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            Config.load(config_dir=str(tmp_path))
