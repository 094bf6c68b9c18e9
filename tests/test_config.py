"""
Tests for YAML configuration and .env loading.
"""

import os
from pathlib import Path

import pytest
import yaml

from coach_core.schemas import CoachConfig, LLMProviderConfig
from session.config import default_config, load_config, save_config
from session.env import load_env_file


class TestCoachConfig:
    def test_load_config_from_yaml(self, tmp_path: Path) -> None:
        config_path = tmp_path / "coach.yaml"
        config_data = {
            "suggestion_mode": "heuristic",
            "log_level": "DEBUG",
            "allowed_modules": ["math", "random"],
            "llm_provider": {
                "provider_id": "mentor",
                "provider_type": "gemini",
                "model_name": "gemini-2.0-flash",
                "temperature": 0.3,
            },
        }
        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = load_config(config_path)

        assert config.suggestion_mode == "heuristic"
        assert config.log_level == "DEBUG"
        assert config.allowed_modules == ["math", "random"]
        assert config.llm_provider is not None
        assert config.llm_provider.temperature == 0.3
        assert config.llm_provider.max_tokens == 1000

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            _ = load_config(tmp_path / "absent.yaml")

    @pytest.mark.parametrize(
        "content",
        [
            "suggestion_mode: [unclosed",
            "",
            "- just\n- a list\n",
            "suggestion_mode: sometimes\n",
        ],
    )
    def test_invalid_files_raise_value_error(self, tmp_path: Path, content: str) -> None:
        config_path = tmp_path / "bad.yaml"
        config_path.write_text(content)
        with pytest.raises(ValueError):
            _ = load_config(config_path)

    def test_save_config_roundtrip(self, tmp_path: Path) -> None:
        config = default_config()
        config_path = tmp_path / "nested" / "coach.yaml"

        save_config(config, config_path)
        loaded = load_config(config_path)

        assert loaded == config

    def test_save_config_never_writes_api_key(self, tmp_path: Path) -> None:
        config = CoachConfig(
            llm_provider=LLMProviderConfig(
                provider_id="mentor", provider_type="gemini", model_name="m", api_key="secret"
            )
        )
        config_path = tmp_path / "coach.yaml"

        save_config(config, config_path)

        assert "secret" not in config_path.read_text()
        loaded = load_config(config_path)
        assert loaded.llm_provider is not None
        assert loaded.llm_provider.api_key is None

    def test_default_config(self) -> None:
        config = default_config()
        assert config.suggestion_mode == "auto"
        assert config.llm_provider is not None
        assert config.llm_provider.provider_type == "gemini"
        assert config.allowed_modules is None


class TestEnvFile:
    def test_sets_missing_variables(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COACH_TEST_A", raising=False)
        monkeypatch.delenv("COACH_TEST_B", raising=False)
        env_path = tmp_path / ".env"
        env_path.write_text('# keys\nCOACH_TEST_A="alpha"\nCOACH_TEST_B=\'beta\'\nnot a pair\n')

        added = load_env_file(env_path)

        assert added == 2
        assert os.environ["COACH_TEST_A"] == "alpha"
        assert os.environ["COACH_TEST_B"] == "beta"
        monkeypatch.delenv("COACH_TEST_A")
        monkeypatch.delenv("COACH_TEST_B")

    def test_existing_variables_win(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COACH_TEST_A", "from-shell")
        env_path = tmp_path / ".env"
        env_path.write_text("COACH_TEST_A=from-file\n")

        assert load_env_file(env_path) == 0
        assert os.environ["COACH_TEST_A"] == "from-shell"

    def test_missing_file_is_ignored(self, tmp_path: Path) -> None:
        assert load_env_file(tmp_path / ".env") == 0
