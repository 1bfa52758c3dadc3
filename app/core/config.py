"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    OPENAI_API_KEY: str = ""
    MODEL_NAME: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.1
    LLM_TIMEOUT_S: float = 60.0
    LLM_MAX_CHARS: int = 200000

    # Retry policy for model calls (1 attempt = no retry)
    LLM_MAX_ATTEMPTS: int = 1
    LLM_BACKOFF_MIN_S: float = 1.0
    LLM_BACKOFF_MAX_S: float = 60.0

    # Application
    APP_NAME: str = "LegalMind - Contract Analysis"
    APP_ENV: str = "dev"

    # Uploads
    MAX_FILE_SIZE_MB: int = 5
    PDF_MAX_PAGES: int = 100

    # Penalties
    DEFAULT_CURRENCY: str = "USD"
    PENALTY_DEFAULT_BASE_AMOUNT: float = 10000.0
    PENALTY_FALLBACK_AMOUNT: float = 100.0

    # Alerts
    ALERT_EXPIRATION_WINDOW_DAYS: int = 30

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


# Global settings instance
settings = Settings()
