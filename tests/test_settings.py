"""测试配置加载与保存"""

import json

import pytest
import yaml

from phone_pilot.agent import AgentConfig
from phone_pilot.config import get_system_prompt
from phone_pilot.config.settings import Settings, load_settings, save_settings
from phone_pilot.model import Provider
from phone_pilot.types import ObservationMode


def test_json_round_trip(tmp_path):
    settings = Settings(provider="openai", model_name="gpt-4o", max_steps=30)
    path = save_settings(settings, str(tmp_path / "settings.json"))

    assert json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))["model_name"] == "gpt-4o"
    assert load_settings(path, use_env=False) == settings


def test_yaml_round_trip(tmp_path):
    settings = Settings(language="en", observation_mode="hybrid")
    path = save_settings(settings, str(tmp_path / "nested" / "settings.yaml"))

    assert yaml.safe_load((tmp_path / "nested" / "settings.yaml").read_text(encoding="utf-8"))["language"] == "en"
    assert load_settings(path, use_env=False) == settings


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"model_name": "m", "theme": "dark"}), encoding="utf-8")

    settings = load_settings(str(path), use_env=False)

    assert settings.model_name == "m"
    assert not hasattr(settings, "theme")


def test_missing_default_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("PHONE_PILOT_HOME", str(tmp_path))
    assert load_settings(use_env=False) == Settings()


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "absent.json"))


def test_non_mapping_yaml_raises_value_error(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- glm\n- openai\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_settings(str(path), use_env=False)


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("PHONE_PILOT_HOME", str(tmp_path))
    monkeypatch.setenv("PHONE_PILOT_API_KEY", "from-env")
    monkeypatch.setenv("PHONE_PILOT_PROVIDER", "qwen")

    settings = load_settings()

    assert settings.api_key == "from-env"
    assert settings.provider == "qwen"


def test_apply_env_with_explicit_mapping():
    settings = Settings().apply_env({"PHONE_PILOT_MODEL": "glm-4.5v", "PHONE_PILOT_BASE_URL": ""})
    assert settings.model_name == "glm-4.5v"
    assert settings.api_base_url == ""


def test_to_agent_config():
    config = Settings(observation_mode="Accessibility", max_steps=5, language="en").to_agent_config()

    assert isinstance(config, AgentConfig)
    assert config.observation_mode == ObservationMode.ACCESSIBILITY
    assert config.max_steps == 5
    assert config.system_prompt == get_system_prompt("en")
    assert config.lang == "en"


def test_to_model_config():
    config = Settings(provider="qwen", api_key="k", request_timeout=30).to_model_config()

    assert config.provider == Provider.QWEN
    assert config.base_url == "https://dashscope.aliyuncs.com/compatible-mode/v1"
    assert config.timeout == 30
