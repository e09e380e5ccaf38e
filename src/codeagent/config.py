"""Configuration settings for the application."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    LOG_LEVEL: str = "warning"  # Options: debug, info, warning, error, critical

    # Completion service
    BACKEND: str = "anthropic"  # Options: anthropic, openai
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    MAX_TOKENS: int = 8096
    REQUEST_TIMEOUT: float = 600.0  # seconds
    SYSTEM_PROMPT: str = (
        "You are a helpful coding assistant. Help the user with their coding tasks."
    )

    # Agent loop
    MAX_TOOL_ROUNDS: int = 25  # 0 disables the limit

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
