"""Tests for settings loading."""

from pathlib import Path

import pytest

from askcli.config import Settings, get_settings, load_config, save_config
from askcli.errors import ConfigurationError


def test_defaults_without_config_file(tmp_path):
    settings = get_settings(path=tmp_path / "config.yaml", environ={})

    assert settings.api_key == ""
    assert settings.model == "gpt-4o"
    assert settings.session_prefix == "ask_transcript-"


def test_yaml_values_loaded(tmp_path):
    path = tmp_path / "config.yaml"
    save_config({"model": "gpt-4o-mini", "temperature": 0.2, "session_dir": str(tmp_path)}, path)

    settings = get_settings(path=path, environ={})

    assert settings.model == "gpt-4o-mini"
    assert settings.temperature == 0.2
    assert settings.session_dir == tmp_path
    assert path.stat().st_mode & 0o777 == 0o600


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "config.yaml"
    save_config({"api_key": "from-file", "model": "gpt-4o-mini"}, path)

    settings = get_settings(path=path, environ={
        "OPENAI_API_KEY": "from-env",
        "ASKCLI_MODEL": "o1-mini",
        "ASKCLI_SESSION_DIR": "/var/tmp",
        "EDITOR": "less",
    })

    assert settings.api_key == "from-env"
    assert settings.model == "o1-mini"
    assert settings.session_dir == Path("/var/tmp")
    assert settings.editor == "less"


def test_askcli_key_wins_over_openai_key(tmp_path):
    settings = get_settings(path=tmp_path / "none.yaml", environ={
        "ASKCLI_API_KEY": "a", "OPENAI_API_KEY": "b",
    })
    assert settings.api_key == "a"


def test_empty_yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path) == {}


def test_reasoning_models_use_user_preamble():
    assert Settings(model="o1-mini").preamble_role == "user"
    assert Settings(model="gpt-4o").preamble_role == "system"
    assert Settings(model="gpt-4o").is_reasoning_model("o1-preview")


# ═══════════════════════════════════════════════════════════════
# BAD CONFIG FILES
# ═══════════════════════════════════════════════════════════════

class TestInvalidConfig:

    def test_wrong_value_type(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("max_tokens: lots\n")

        with pytest.raises(ConfigurationError, match="max_tokens"):
            get_settings(path=path, environ={})

    def test_yaml_syntax_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("model: [gpt-4o\n")

        with pytest.raises(ConfigurationError, match="Invalid config file"):
            get_settings(path=path, environ={})

    def test_top_level_list(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- model\n- gpt-4o\n")

        with pytest.raises(ConfigurationError, match="expected a mapping"):
            load_config(path)

    def test_non_string_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("1: gpt-4o\n")

        with pytest.raises(ConfigurationError, match="non-string key"):
            get_settings(path=path, environ={})
