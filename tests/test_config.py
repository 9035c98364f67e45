"""Tests for the YAML config store and environment overrides."""

import os
import sys

import pytest
import yaml

from shellcraft.config import (
    Config,
    ConfigError,
    load_config,
    mask_secret,
    parse_config_pairs,
    read_config_file,
    resolve_config_path,
    save_config,
    update_config,
)


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))


class TestLoadConfig:
    """Loading from file and environment."""

    def test_round_trip(self, clean_env):
        config = Config(base_url="https://api.example.com/v1", api_key="sk-1", model="m", locale="zh")
        save_config(config, clean_env)

        assert load_config(clean_env) == config

    def test_default_path_from_env(self, clean_env):
        assert resolve_config_path() == clean_env

    def test_locale_defaults_to_en(self, clean_env):
        write_yaml(clean_env, {"base_url": "u", "api_key": "k", "model": "m"})
        assert load_config().locale == "en"

    def test_env_overrides_file(self, clean_env, monkeypatch):
        write_yaml(clean_env, {"base_url": "u", "api_key": "file-key", "model": "m"})
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")
        monkeypatch.setenv("OPENAI_MODEL", "env-model")

        config = load_config()

        assert config.api_key == "env-key"
        assert config.model == "env-model"
        assert config.base_url == "u"

    def test_env_only(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPENAI_BASE_URL", "https://env/v1")
        monkeypatch.setenv("OPENAI_API_KEY", "k")
        monkeypatch.setenv("OPENAI_MODEL", "m")
        assert not clean_env.exists()
        assert load_config().base_url == "https://env/v1"

    def test_missing_required_raises(self, clean_env):
        write_yaml(clean_env, {"base_url": "u", "model": "m", "api_key": ""})
        with pytest.raises(ConfigError, match="api_key"):
            load_config()

    def test_missing_returns_none_when_not_required(self, clean_env):
        assert load_config(require_all=False) is None

    def test_invalid_locale(self, clean_env):
        write_yaml(clean_env, {"base_url": "u", "api_key": "k", "model": "m", "locale": "fr"})
        with pytest.raises(ConfigError, match="locale"):
            load_config()


class TestReadConfigFile:
    """Malformed files are ConfigErrors."""

    def test_absent_file_is_empty(self, tmp_path):
        assert read_config_file(tmp_path / "missing.yaml") == {}

    def test_empty_file_is_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert read_config_file(path) == {}

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("base_url: [unclosed\n")
        with pytest.raises(ConfigError, match="parse"):
            read_config_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            read_config_file(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        write_yaml(path, {"base_url": "u", "colour": "red"})
        with pytest.raises(ConfigError, match="colour"):
            read_config_file(path)


class TestUpdateConfig:
    """`key=value` updates."""

    def test_parse_pairs(self):
        assert parse_config_pairs(["model=gpt-4o", "locale=zh"]) == {"model": "gpt-4o", "locale": "zh"}

    def test_value_may_contain_equals(self):
        assert parse_config_pairs(["api_key=abc=def"]) == {"api_key": "abc=def"}

    def test_pair_without_equals(self):
        with pytest.raises(ConfigError, match="key=value"):
            parse_config_pairs(["model"])

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown config key"):
            parse_config_pairs(["colour=red"])

    def test_bad_locale(self):
        with pytest.raises(ConfigError):
            parse_config_pairs(["locale=fr"])

    def test_merges_into_existing_file(self, clean_env):
        write_yaml(clean_env, {"base_url": "u", "api_key": "k"})

        values = update_config(["model=m2"])

        assert values == {"base_url": "u", "api_key": "k", "model": "m2"}
        assert yaml.safe_load(clean_env.read_text()) == values

    def test_partial_update_on_empty_file(self, clean_env):
        """Setting one key works before the other keys exist."""
        values = update_config(["locale=zh"])

        assert values == {"locale": "zh"}
        assert yaml.safe_load(clean_env.read_text()) == {"locale": "zh"}

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "config.yaml"
        update_config(["model=m"], path)
        assert path.exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_private(self, clean_env):
        update_config(["api_key=secret"])
        assert os.stat(clean_env).st_mode & 0o777 == 0o600


class TestMaskSecret:

    @pytest.mark.parametrize("value, expected", [
        (None, "[not set]"),
        ("", "[not set]"),
        ("short", "*****"),
        ("sk-1234567890abcd", "sk-1...abcd"),
    ])
    def test_mask(self, value, expected):
        assert mask_secret(value) == expected
