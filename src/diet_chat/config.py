from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWKS_URL: str | None = None

    CORS_ORIGINS: list[str] = ["*"]

    OUTBOX_POLL_INTERVAL: float = 1.0
    OUTBOX_BATCH_SIZE: int = 50
    OUTBOX_MAX_ATTEMPTS: int = 5
    OUTBOX_RETRY_DELAY_SECONDS: int = 10

    WS_HEARTBEAT_SECONDS: int = 30

    REDIS_PUBSUB_CHANNEL: str = "diet_chat.realtime"

    # Presence: liveness window vs. client heartbeat period (20s) is a tunable,
    # one missed heartbeat can flip an active viewer to inactive.
    PRESENCE_TTL_SECONDS: int = 30
    PRESENCE_RETENTION_SECONDS: int = 3600
    PRESENCE_KEY_PREFIX: str = "presence"

    PHOTO_TTL_HOURS: int = 12

    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    PUSH_HTTP_TIMEOUT: float = 10.0
    NATIVE_BODY_LIMIT: int = 100
    WEB_BODY_LIMIT: int = 120

    WEB_PUSH_PUBLIC_KEY: str | None = None
    WEB_PUSH_PRIVATE_KEY: str | None = None
    WEB_PUSH_CONTACT_EMAIL: str = "mailto:admin@example.com"

    CRON_SECRET: str | None = None

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def web_push_configured(self) -> bool:
        return bool(self.WEB_PUSH_PUBLIC_KEY and self.WEB_PUSH_PRIVATE_KEY)

    @property
    def vapid_subject(self) -> str:
        contact = self.WEB_PUSH_CONTACT_EMAIL.strip()
        if contact.startswith(("mailto:", "https://")):
            return contact
        return f"mailto:{contact}"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
