"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FD_",  # FD_DATABASE_URL, FD_GEMINI_API_KEY, etc.
        extra="ignore",
    )

    # "production", "development" or "test"; test disables retry backoff
    environment: str = "production"

    # Feed registry JSON; the bundled feeds.json when unset
    feeds_path: Optional[Path] = None

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'feed_digest.db'}"
    article_retention_days: int = 365

    # LLM
    llm_provider: str = "gemini"  # "gemini", "anthropic", or "openai"
    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    llm_model: str = "gemini-2.0-flash"
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.3

    # Summarization
    summary_max_length: int = 400
    summary_max_retries: int = 3
    summary_backoff_seconds: float = 1.0

    # Fetching
    fetch_timeout_seconds: int = 30
    fetch_max_concurrency: int = 5
    fetch_max_retries: int = 2
    user_agent: str = "FeedDigestBot/1.0"

    # Processing
    item_concurrency: int = 1

    # Notifications
    discord_webhook_url: Optional[str] = None
    notification_delay_seconds: float = 0.1

    # Trigger surface
    admin_token: Optional[str] = None
    schedule_cron: str = "0 * * * *"

    # Logging
    persist_logs: bool = True
    log_json: bool = False

    @property
    def is_test(self) -> bool:
        return self.environment == "test"


settings = Settings()
