from datetime import date
from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PAYFAST_PUBLISHED_CIDRS = "41.74.179.192/27,197.242.156.64/28,196.33.227.224/27"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    celery_broker_url: str = Field(alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(alias="CELERY_RESULT_BACKEND")

    paypal_webhook_id: str = Field(default="", alias="PAYPAL_WEBHOOK_ID")
    paypal_webhook_secret: str = Field(default="", alias="PAYPAL_WEBHOOK_SECRET")

    payfast_allowed_ips: str = Field(default=PAYFAST_PUBLISHED_CIDRS, alias="PAYFAST_ALLOWED_IPS")
    payfast_trusted_proxies: str = Field(default="", alias="PAYFAST_TRUSTED_PROXIES")

    auth_jwt_secret: str = Field(default="", alias="AUTH_JWT_SECRET")
    auth_jwt_algorithm: str = Field(default="HS256", alias="AUTH_JWT_ALGORITHM")
    admin_owner_email: str = Field(default="", alias="ADMIN_OWNER_EMAIL")

    fx_usd_zar_rate: Decimal = Field(default=Decimal("18.00"), alias="FX_USD_ZAR_RATE")
    fx_rates_as_of: date | None = Field(default=None, alias="FX_RATES_AS_OF")
    fx_max_age_days: int = Field(default=30, alias="FX_MAX_AGE_DAYS")

    affiliate_auto_approve_minutes: int = Field(default=60, alias="AFFILIATE_AUTO_APPROVE_MINUTES")
    membership_extension_days: int = Field(default=30, alias="MEMBERSHIP_EXTENSION_DAYS")
    credit_drop_interval_days: int = Field(default=30, alias="CREDIT_DROP_INTERVAL_DAYS")
    scheduler_timezone: str = Field(default="Africa/Johannesburg", alias="SCHEDULER_TIMEZONE")

    webhook_replay_max_attempts: int = Field(default=5, alias="WEBHOOK_REPLAY_MAX_ATTEMPTS")
    webhook_replay_batch_size: int = Field(default=100, alias="WEBHOOK_REPLAY_BATCH_SIZE")

    push_gateway_url: str = Field(default="", alias="PUSH_GATEWAY_URL")
    push_broadcast_all_limit: int = Field(default=1000, alias="PUSH_BROADCAST_ALL_LIMIT")

    ops_alert_webhook_url: str = Field(default="", alias="OPS_ALERT_WEBHOOK_URL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
