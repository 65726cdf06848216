"""
Chat Memory Service - Configuration
Centralized settings with environment variable support.
"""
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import Field


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Use the earlier turns of the conversation "
    "to stay consistent with what the user has already told you."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # === Application ===
    app_name: str = "Chat Memory Service"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, env="DEBUG")

    # === API ===
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    api_port: int = Field(default=8080, env="API_PORT")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        env="CORS_ORIGINS"
    )

    # === LLM Provider ===
    llm_provider: Literal["openai", "ollama", "gemini"] = Field(
        default="ollama", env="LLM_PROVIDER"
    )
    llm_temperature: float = Field(default=0.0, env="LLM_TEMPERATURE")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, env="SYSTEM_PROMPT")

    # OpenAI
    openai_api_key: str = Field(default="", env="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", env="OPENAI_MODEL")

    # Ollama
    ollama_base_url: str = Field(default="http://localhost:11434", env="OLLAMA_BASE_URL")
    ollama_model: str = Field(default="llama3.2:1b", env="OLLAMA_MODEL")

    # Gemini
    google_api_key: str = Field(default="", env="GOOGLE_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-flash", env="GEMINI_MODEL")

    # === Memory ===
    memory_backend: Literal["sqlite", "redis"] = Field(
        default="sqlite", env="MEMORY_BACKEND"
    )
    redis_url: str = Field(default="redis://localhost:6379", env="REDIS_URL")
    memory_db_path: Path = Field(default=Path("./data/memory.db"), env="MEMORY_DB_PATH")

    # Sliding window: how many turns the model sees per conversation
    memory_max_messages: int = Field(default=100, ge=1, env="MEMORY_MAX_MESSAGES")
    # false: keep full history, bound only the view. true: compact storage on append
    memory_trim_on_write: bool = Field(default=False, env="MEMORY_TRIM_ON_WRITE")

    # === Paths ===
    data_dir: Path = Field(default=Path("./data"), env="DATA_DIR")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.memory_backend == "sqlite":
            self.memory_db_path.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
