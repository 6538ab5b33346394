"""Configuration management for the BevGenie engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # Environment variables should be set directly
    pass


class ConfigurationError(Exception):
    """Raised when a required service credential is missing or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Text generation (required, validated at startup)
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")

    # Embeddings and chat reply (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    BEVGENIE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    LOG_LEVEL: str | None = Field(default=None, description="Overrides the environment log level")

    # Models
    CHAT_MODEL: str = Field(default="gpt-4o", description="Model for the conversational reply")
    CHAT_MAX_TOKENS: int = Field(default=300, description="Max tokens for the chat reply")
    PAGE_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model for full page synthesis"
    )
    PAGE_MAX_TOKENS: int = Field(default=2500, description="Max tokens for full page synthesis")
    TEMPLATE_MODEL: str = Field(
        default="claude-haiku-4-5-20251001", description="Model for template selection and fill"
    )
    TEMPLATE_SELECT_MAX_TOKENS: int = Field(default=100, description="Max tokens for template pick")
    TEMPLATE_FILL_MAX_TOKENS: int = Field(default=1500, description="Max tokens for template fill")

    # Embedding configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")

    # Timeouts and retries
    PAGE_FAST_PATH_TIMEOUT_SECONDS: float = Field(
        default=8.0, description="Budget for the whole template-fill path"
    )
    PAGE_SLOW_PATH_TIMEOUT_SECONDS: float = Field(
        default=26.0, description="Budget for one full-synthesis attempt"
    )
    CHAT_TIMEOUT_SECONDS: float = Field(default=20.0, description="Budget for the chat reply")
    PAGE_MAX_RETRIES: int = Field(default=2, description="Full-synthesis retries after the first try")

    # In-process cache
    CACHE_TTL_SECONDS: int = Field(default=3600, description="TTL for memoized entries")
    CACHE_MAX_ENTRIES: int = Field(default=1000, description="Capacity of the in-process cache")

    # Request limits
    MAX_MESSAGE_CHARS: int = Field(default=5000, description="Max chat message characters")
    KNOWLEDGE_MATCH_COUNT: int = Field(default=5, description="Knowledge documents per search")
    HISTORY_TURNS: int = Field(default=10, description="Conversation turns loaded per request")

    # Sessions
    SESSION_COOKIE_NAME: str = Field(default="bevgenie-session", description="Session cookie")
    SESSION_MAX_AGE_DAYS: int = Field(default=30, description="Session expiry in days")


def validate_generation_config(settings: Settings) -> None:
    """
    Fail fast when the text-generation service is not usable.

    Raises:
        ConfigurationError: If ANTHROPIC_API_KEY is missing or malformed
    """
    key = (settings.ANTHROPIC_API_KEY or "").strip()
    if not key:
        raise ConfigurationError("ANTHROPIC_API_KEY is not set")
    if len(key) < 20:
        raise ConfigurationError("ANTHROPIC_API_KEY appears to be invalid")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
