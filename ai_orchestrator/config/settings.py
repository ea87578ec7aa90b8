import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from ai_orchestrator.constants import DEFAULT_PROVIDER_ORDER, LLM_REQUEST_TIMEOUT_SECONDS


def _split_csv(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


class Settings(BaseModel):
    """Process-level configuration, resolved once and passed into components.

    Nothing else in the package reads the environment; adapters receive their
    credentials from here.
    """

    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_ai_api_key: str = ""
    anthropic_base_url: str | None = None
    openai_base_url: str | None = None
    gemini_base_url: str | None = None
    request_timeout: float = LLM_REQUEST_TIMEOUT_SECONDS
    provider_order: list[str] = Field(default_factory=lambda: list(DEFAULT_PROVIDER_ORDER))
    model_config_path: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            google_ai_api_key=os.getenv("GOOGLE_AI_API_KEY", ""),
            anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            gemini_base_url=os.getenv("GEMINI_BASE_URL") or None,
            request_timeout=LLM_REQUEST_TIMEOUT_SECONDS,
            provider_order=_split_csv(os.getenv("PROVIDER_ORDER")) or list(DEFAULT_PROVIDER_ORDER),
            model_config_path=os.getenv("MODEL_CONFIG_PATH", ""),
        )

    def api_key_for(self, provider: str) -> str:
        keys = {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "google": self.google_ai_api_key,
        }
        if provider not in keys:
            raise ValueError(f"Unknown provider: {provider}")
        return keys[provider]

    def base_url_for(self, provider: str) -> str | None:
        urls = {
            "anthropic": self.anthropic_base_url,
            "openai": self.openai_base_url,
            "google": self.gemini_base_url,
        }
        return urls.get(provider)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
