from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Core
    ENVIRONMENT: str = Field(default="production")
    FIRESTORE_PROJECT_ID: str = Field(default="")
    FIRESTORE_DATABASE: str = Field(default="")  # empty selects "(default)"
    APP_BASE_URL: str = Field(default="")  # client app origin, used in email links
    LOG_LEVEL: str = Field(default="INFO")

    # Operator auth (Google OIDC ID token from Scheduler / Eventarc)
    OPERATOR_AUTH_AUDIENCE: str = Field(default="")
    OPERATOR_INVOKER_SUBS: str = Field(default="")  # comma-separated
    OPERATOR_INVOKER_EMAILS: str = Field(default="")  # comma-separated

    # Event handling
    EVENT_DEDUP_ENABLED: bool = Field(default=True)

    # Push messaging (FCM HTTP v1)
    FCM_PROJECT_ID: str = Field(default="")  # falls back to FIRESTORE_PROJECT_ID / ADC project
    FCM_TIMEOUT_SECONDS: float = Field(default=10.0)

    # Auth account administration (Identity Toolkit)
    IDENTITY_TIMEOUT_SECONDS: float = Field(default=10.0)

    # Fan-out limits
    FANOUT_MAX_WORKERS: int = Field(default=8)
    FANOUT_CHUNK_SIZE: int = Field(default=100)
    MAX_FANOUT_RECIPIENTS: int = Field(default=5000)

    # Expiry sweep: one Firestore transaction holds at most 500 writes.
    MAX_SWEEP_ITEMS: int = Field(default=450)

    # Email queue
    EMAIL_QUEUE_BATCH_SIZE: int = Field(default=10)
    EMAIL_MAX_RETRIES: int = Field(default=3)
    EMAIL_FROM: str = Field(default="noreply@fdms.com")
    SMTP_HOST: str = Field(default="")
    SMTP_PORT: int = Field(default=587)
    SMTP_USERNAME: str = Field(default="")
    SMTP_PASSWORD: str = Field(default="")
    SMTP_USE_TLS: bool = Field(default=True)
    SMTP_TIMEOUT_SECONDS: float = Field(default=20.0)


settings = Settings()
