from pathlib import Path
from typing import Optional
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    project_name: str = "Adaptive Literature Search"
    log_level: str = "INFO"

    # Embeddings for semantic scoring. Without a key the scorer falls back
    # to a neutral semantic score.
    openai_api_key: Optional[SecretStr] = Field(default=None, description="OpenAI API key for embeddings")
    embedding_model: str = "text-embedding-3-small"

    semantic_scholar_api_key: Optional[SecretStr] = Field(default=None, description="Optional Semantic Scholar API key")

    redis_host: str = "localhost"
    redis_port: int = 6379

    # API contact email used in User-Agent headers for polite API access
    api_contact_email: str = Field(
        default="researcher@example.com",
        description="Email for API contact/User-Agent (update with your real email)"
    )

    source_timeout_seconds: float = Field(default=20.0, gt=0)

    # Iteration defaults, overridable per deployment
    max_iterations: int = Field(default=4, ge=1)
    iteration_timeout_seconds: float = Field(default=40.0, gt=0)
    search_timeout_seconds: float = Field(default=180.0, gt=0)

    @property
    def API_CONTACT_EMAIL(self) -> str:
        return self.api_contact_email

    @property
    def OPENAI_API_KEY(self) -> Optional[str]:
        if self.openai_api_key:
            return self.openai_api_key.get_secret_value()
        return None

    @property
    def SEMANTIC_SCHOLAR_API_KEY(self) -> Optional[str]:
        if self.semantic_scholar_api_key:
            return self.semantic_scholar_api_key.get_secret_value()
        return None

    @property
    def PROJECT_NAME(self) -> str:
        return self.project_name

    @property
    def LOG_LEVEL(self) -> str:
        return self.log_level

    @property
    def EMBEDDING_MODEL(self) -> str:
        return self.embedding_model

    @property
    def REDIS_HOST(self) -> str:
        return self.redis_host

    @property
    def REDIS_PORT(self) -> int:
        return self.redis_port

    @property
    def SOURCE_TIMEOUT_SECONDS(self) -> float:
        return self.source_timeout_seconds


settings = Settings()
