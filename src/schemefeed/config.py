"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: str = "*"
    environment: str = "development"

    # Generative upstream (primary tier)
    deepseek_api_key: str | None = None
    deepseek_api_url: str = "https://api.deepseek.com/chat/completions"
    deepseek_model: str = "deepseek-chat"
    generative_timeout_seconds: float = Field(default=15.0, gt=0)
    generative_temperature: float = 0.4
    generative_max_tokens: int = 2000

    # Scheme cache settings
    scheme_cache_ttl_seconds: int = Field(default=60, gt=0)
    scheme_max_records: int = Field(default=6, ge=1)
    update_check_interval: int = Field(default=10, ge=1)
    update_jitter_probability: float = Field(default=0.25, ge=0.0, le=1.0)
    random_seed: int | None = None

    force_update_rate_limit_per_minute: int = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_production(self) -> None:
        """Raise if running in production with a wildcard CORS policy."""
        if self.environment == "production" and self.cors_origins.strip() == "*":
            raise RuntimeError(
                "CORS_ORIGINS must list explicit origins in production, "
                'e.g. CORS_ORIGINS="https://app.example.com"'
            )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
