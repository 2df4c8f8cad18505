"""Tests for the layered config loader."""

import pytest
import yaml

from companion.config import CompanionConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("COMPANION_LLM_MODEL", "COMPANION_AGENT_MAX_ROUNDS", "COMPANION_PLUGINS_ENABLED",
                "COMPANION_AGENT_STALL_TIMEOUT", "ZHIPUAI_API_KEY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "companion.yaml"
    path.write_text(yaml.safe_dump({
        "llm": {"model": "glm-4-flash", "not_a_field": 1},
        "agent": {"max_rounds": 3},
        "profiles": {"local": {"llm": {"api_base": "http://localhost:8080/v1"}}},
    }))
    return path


def test_defaults():
    cfg = load_config(None)
    assert cfg.llm.model == "glm-5"
    assert cfg.llm.api_base == "https://open.bigmodel.cn/api/paas/v4"
    assert cfg.llm.api_key_env == "ZHIPUAI_API_KEY"
    assert cfg.agent.max_rounds == 5
    assert cfg.llm.max_retries == 0


def test_file_overrides_defaults(config_file):
    cfg = load_config(config_file)
    assert cfg.llm.model == "glm-4-flash"
    assert cfg.agent.max_rounds == 3
    assert not hasattr(cfg.llm, "not_a_field")


def test_missing_file_uses_defaults(tmp_path):
    assert load_config(tmp_path / "nope.yaml").llm.model == "glm-5"


def test_profile_overlay(config_file):
    cfg = load_config(config_file, profile="local")
    assert cfg.llm.api_base == "http://localhost:8080/v1"
    assert cfg.llm.model == "glm-4-flash"


def test_env_beats_file_and_is_coerced(config_file, monkeypatch):
    monkeypatch.setenv("COMPANION_AGENT_MAX_ROUNDS", "7")
    monkeypatch.setenv("COMPANION_PLUGINS_ENABLED", "yes")
    monkeypatch.setenv("COMPANION_AGENT_STALL_TIMEOUT", "2.5")
    cfg = load_config(config_file)
    assert cfg.agent.max_rounds == 7
    assert cfg.plugins.enabled is True
    assert cfg.agent.stall_timeout == 2.5


def test_cli_beats_env(monkeypatch):
    monkeypatch.setenv("COMPANION_LLM_MODEL", "from-env")
    cfg = load_config(None, cli_overrides={"llm.model": "from-cli", "server.port": None})
    assert cfg.llm.model == "from-cli"
    assert cfg.server.port == 8000


def test_unknown_cli_key_raises():
    with pytest.raises(KeyError):
        load_config(None, cli_overrides={"llm.nope": 1})


def test_api_key_read_from_env(monkeypatch):
    cfg = CompanionConfig()
    assert cfg.llm.api_key() == ""
    monkeypatch.setenv("ZHIPUAI_API_KEY", "sk-abc")
    assert cfg.llm.api_key() == "sk-abc"
