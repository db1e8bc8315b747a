import json
import re
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # Prefer JSON, but tolerate comma or whitespace separated values.
    if raw.startswith(("[", '"')):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()

    origins: list[str] = []
    for part in (p for p in re.split(r"[,\s]+", raw) if p):
        if part == "*":
            return ["*"]
        if part not in origins:
            origins.append(part)
    return origins


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    The rate gate and queue limits are read once at startup and are not
    tunable per request.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Generation endpoint (GitHub Models, OpenAI-compatible)
    github_token: str = Field(default="", validation_alias="GITHUB_TOKEN")
    generation_base_url: str = "https://models.github.ai/inference"
    generation_model: str = "xai/grok-3"
    generation_temperature: float = 0.7
    generation_max_tokens: int = 4000
    generation_top_p: float = 0.95

    # Use the offline mock provider instead of the real endpoint
    mock_provider: bool = Field(default=False, validation_alias="INSIGHTS_MOCK_PROVIDER")

    # HTTP client settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 60.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_max_connections: int = 10
    httpx_max_keepalive_connections: int = 5

    # Rate gate (server-side admission control)
    gate_min_interval_seconds: float = 8.0
    gate_requests_per_day: int = 30
    gate_cooldown_seconds: float = 30.0
    gate_in_progress_retry_after: int = 2

    # Request queue (client-side retries)
    queue_base_delay_ms: int = 8000
    queue_max_retries: int = 2  # additional attempts beyond the first
    queue_max_schedule_waits: int = 10

    # How the insight service reaches the generator: "local" consults the
    # in-process rate gate, "remote" posts to the analyze endpoint
    generation_mode: str = "local"  # local | remote
    analyze_url: str = "http://localhost:8000/api/analyze"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator("gate_requests_per_day", "gate_in_progress_retry_after", "generation_max_tokens")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Validate limits are positive."""
        if v < 1:
            raise ValueError("limit values must be at least 1")
        return v

    @field_validator(
        "gate_min_interval_seconds",
        "gate_cooldown_seconds",
        "httpx_connect_timeout",
        "httpx_read_timeout",
    )
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("durations must be positive")
        return v

    @field_validator("queue_max_retries", "queue_base_delay_ms", "queue_max_schedule_waits")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate queue settings are not negative."""
        if v < 0:
            raise ValueError("queue settings must not be negative")
        return v

    @field_validator("generation_mode")
    @classmethod
    def validate_generation_mode(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("local", "remote"):
            raise ValueError("generation_mode must be 'local' or 'remote'")
        return v

    @field_validator("generation_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("generation_temperature must be between 0 and 2")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


# Global settings instance
settings = Settings()
