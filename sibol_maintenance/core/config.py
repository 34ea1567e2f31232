from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", alias="LOG_LEVEL")
    # stdlib loggers that log every request at DEBUG
    quiet_loggers: tuple[str, ...] = ("urllib3", "requests")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = (value or "").strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def stdlib_level(self) -> str:
        # the stdlib has no TRACE or SUCCESS
        return {"TRACE": "DEBUG", "SUCCESS": "INFO"}.get(self.level, self.level)


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    env: str = Field(default="development", alias="APP_ENV")

    api_base_url: str = Field(default="http://localhost:5000", alias="MAINTENANCE_API_BASE")
    client_type: str = Field(default="mobile", alias="MAINTENANCE_CLIENT_TYPE")
    http_timeout: float = Field(default=15.0, alias="MAINTENANCE_HTTP_TIMEOUT")
    http_read_retries: int = Field(default=3, alias="MAINTENANCE_HTTP_READ_RETRIES")

    # Backend returns MySQL datetimes without an offset; they are in this zone.
    server_timezone: str = Field(default="Asia/Manila", alias="SERVER_TIMEZONE")
    display_timezone: str | None = Field(default=None, alias="DISPLAY_TIMEZONE")

    strict_timestamps: bool | None = Field(default=None, alias="TIMELINE_STRICT_TIMESTAMPS")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("api_base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        trimmed = (value or "").strip().rstrip("/")
        if not trimmed:
            raise ValueError("MAINTENANCE_API_BASE must not be empty")
        if not trimmed.lower().startswith(("http://", "https://")):
            trimmed = f"http://{trimmed}"
        return trimmed

    @field_validator("http_read_retries")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        return max(1, value)

    @property
    def is_development(self) -> bool:
        return self.env.strip().lower() in {"development", "dev", "local", "test"}

    @property
    def timeline_strict(self) -> bool:
        if self.strict_timestamps is None:
            return self.is_development
        return self.strict_timestamps


@lru_cache
def get_settings() -> AppConfig:
    return AppConfig()
