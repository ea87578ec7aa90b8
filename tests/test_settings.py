import os
from unittest.mock import patch

import pytest

from ai_orchestrator.config.settings import Settings
from ai_orchestrator.constants import DEFAULT_PROVIDER_ORDER


class TestSettingsFromEnv:
    @patch.dict(
        os.environ,
        {
            "ANTHROPIC_API_KEY": "ak",
            "OPENAI_API_KEY": "ok",
            "GOOGLE_AI_API_KEY": "gk",
            "PROVIDER_ORDER": "openai, Google",
            "MODEL_CONFIG_PATH": "config/models.yaml",
            "OPENAI_BASE_URL": "https://proxy.example.com/v1",
        },
        clear=False,
    )
    def test_reads_credentials_and_order(self):
        with patch("ai_orchestrator.config.settings.load_dotenv"):
            settings = Settings.from_env()
        assert settings.anthropic_api_key == "ak"
        assert settings.openai_api_key == "ok"
        assert settings.google_ai_api_key == "gk"
        assert settings.provider_order == ["openai", "google"]
        assert settings.model_config_path == "config/models.yaml"
        assert settings.base_url_for("openai") == "https://proxy.example.com/v1"

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults_when_unset(self):
        with patch("ai_orchestrator.config.settings.load_dotenv"):
            settings = Settings.from_env()
        assert settings.anthropic_api_key == ""
        assert settings.provider_order == list(DEFAULT_PROVIDER_ORDER)
        assert settings.base_url_for("anthropic") is None


class TestSettingsAccessors:
    def test_api_key_for(self):
        settings = Settings(anthropic_api_key="a", openai_api_key="o", google_ai_api_key="g")
        assert settings.api_key_for("anthropic") == "a"
        assert settings.api_key_for("openai") == "o"
        assert settings.api_key_for("google") == "g"

    def test_api_key_for_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            Settings().api_key_for("cohere")
