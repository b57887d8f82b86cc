"""Configuration settings for the application."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    LLM_BACKEND: str = "openai"  # Options: openai (any OpenAI-compatible API), ollama
    LLM_API_KEY: str | None = None
    LLM_BASE_URL: str = "https://api.deepseek.com"
    LLM_MODEL: str = "deepseek-chat"
    LLM_TIMEOUT: float = 120.0

    # Agent Configuration
    TOOL_MAX_CONCURRENCY: int = 2
    AGENT_MAX_ITERATIONS: int = 10
    SUBAGENT_MAX_ITERATIONS: int = 5
    AGENT_MAX_DEPTH: int = 3  # Nested new_task levels below the top-level agent

    # Planner Configuration
    PLANNER_MAX_DEPTH: int = 10
    PLANNER_MAX_ITERATIONS: int = 200

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
