from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# services/api/app/core/config.py -> BASE_DIR == services/api
BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # Environment
    env: str = Field(default="dev", validation_alias="ENV")

    # Application
    api_name: str = Field(default="bookledger-api", validation_alias="API_NAME")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database & cache
    database_url: str = Field(
        default="sqlite+pysqlite:///./bookledger.db",
        validation_alias="DATABASE_URL",
    )
    db_auto_create: bool = Field(default=True, validation_alias="DB_AUTO_CREATE")
    redis_url: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )

    # Social ledger
    social_store: Literal["sql", "memory"] = Field(
        default="sql", validation_alias="SOCIAL_STORE"
    )
    likes_soft_delete: bool = Field(default=True, validation_alias="LIKES_SOFT_DELETE")
    side_effect_throttle_ms: int = Field(
        default=400, validation_alias="SIDE_EFFECT_THROTTLE_MS"
    )
    side_effect_max_pending: int = Field(
        default=100, validation_alias="SIDE_EFFECT_MAX_PENDING"
    )
    throttle_max_entries: int = Field(
        default=10_000, validation_alias="THROTTLE_MAX_ENTRIES"
    )
    social_query_batch_size: int = Field(
        default=200, validation_alias="SOCIAL_QUERY_BATCH_SIZE"
    )
    counts_max_keys: int = Field(default=200, validation_alias="COUNTS_MAX_KEYS")

    @field_validator("social_store", mode="before")
    @classmethod
    def normalize_social_store(cls, v: Any) -> str:
        if v is None:
            return "sql"
        if not isinstance(v, str):
            raise TypeError("SOCIAL_STORE must be a string")
        s = v.strip().lower()
        if s not in {"sql", "memory"}:
            raise ValueError("SOCIAL_STORE must be one of: sql, memory")
        return s

    # Auth
    auth_secret_key: str = Field(
        default="dev-secret-key", validation_alias="AUTH_SECRET_KEY"
    )
    auth_algorithm: str = Field(default="HS256", validation_alias="AUTH_ALGORITHM")
    auth_access_token_ttl_minutes: int = Field(
        default=60, validation_alias="AUTH_ACCESS_TOKEN_TTL_MINUTES"
    )
    auth_cookie_name: str = Field(
        default="bookledger_auth", validation_alias="AUTH_COOKIE_NAME"
    )

    # CORS
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias="CORS_ORIGINS",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """
        Supported env formats:
          - JSON list: '["http://localhost:3000"]'
          - Bracket list (no quotes): '[http://localhost:3000, http://localhost:5173]'
          - Comma-separated: 'http://localhost:3000, http://localhost:5173'
          - '*' wildcard
        """
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if not isinstance(v, str):
            raise TypeError("cors_origins must be a string or list of strings")

        s = v.strip()
        if not s:
            return []
        if s == "*":
            return ["*"]

        if s.startswith("[") and s.endswith("]"):
            try:
                parsed = json.loads(s)
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
            except json.JSONDecodeError:
                inner = s[1:-1].strip()
                if not inner:
                    return []
                parts = [p.strip().strip('"').strip("'") for p in inner.split(",")]
                return [p for p in parts if p]

        parts = [p.strip() for p in s.split(",")]
        return [p for p in parts if p]

    # Rate limiting
    rate_limit_window_seconds: int = Field(
        default=60, validation_alias="RATE_LIMIT_WINDOW_SECONDS"
    )
    rate_limit_social_per_window: int = Field(
        default=60, validation_alias="RATE_LIMIT_SOCIAL_PER_WINDOW"
    )
    rate_limit_counts_per_window: int = Field(
        default=120, validation_alias="RATE_LIMIT_COUNTS_PER_WINDOW"
    )

    # OpenTelemetry
    otel_enabled: bool = Field(default=False, validation_alias="OTEL_ENABLED")
    otel_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="OTEL_OTLP_ENDPOINT",
    )

    @property
    def side_effect_throttle_secs(self) -> float:
        return self.side_effect_throttle_ms / 1000.0


settings = Settings()
