from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )

    log_dir: str = Field(
        default="./logs",
        description="Directory for log files",
    )

    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    openai_api_key: str | None = Field(
        default=None,
        description="Fallback OpenAI API key used when a request carries none",
    )
    openai_api_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL (or compatible API endpoint)",
    )
    openai_model: str = Field(
        default="gpt-4o-2024-08-06",
        description="Model used when a request does not name one",
    )
    openai_max_tokens: int = Field(
        default=8000,
        ge=256,
        le=128000,
        description="Default completion token budget",
    )
    openai_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="HTTP timeout for a single completion call",
    )

    regeneration_temperature: float = Field(
        default=0.95,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for chat model families",
    )
    regeneration_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum prompt/validate attempts per regeneration request",
    )
    max_duplication_percent: float = Field(
        default=20.0,
        ge=0.0,
        le=100.0,
        description="Maximum share of regenerated items allowed to repeat existing ones",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    return Settings()
