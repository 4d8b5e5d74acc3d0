"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Referral ledger settings loaded from environment variables.

    IMPORTANT: Connection URLs have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # DATABASE
    # ===========================================
    database_url: str  # Required, no default
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default
    celery_task_max_retries: int = 3
    celery_task_retry_delay: int = 5

    # ===========================================
    # REFERRAL PROGRAM
    # ===========================================
    referral_reward_entries: int = 10
    referral_completion_threshold: int = 5
    referral_weekly_limit: int = 5
    referral_monthly_limit: int = 10
    referral_weekly_window_days: int = 7
    referral_monthly_window_days: int = 30
    referral_fraud_device_threshold: int = 3
    referral_code_max_attempts: int = 10

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # ===========================================
    # STATE MANAGEMENT
    # ===========================================
    idempotency_ttl: int = 86400  # activity events are redelivered within a day

    @field_validator("referral_completion_threshold", "referral_reward_entries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("referral thresholds and rewards must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper().strip()

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
