from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    OFFERDESK_DB_URL: str = "sqlite+aiosqlite:///./offerdesk.db"
    LOG_LEVEL: str = "INFO"

    # --- Minimal admin auth (API key) ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Offer policy ---
    # Off = any status may move to any other status (legacy behaviour).
    OFFER_STRICT_TRANSITIONS: bool = False
    # None disables the expiry sweep.
    OFFER_EXPIRY_DAYS: int | None = None

    # --- Listing pagination ---
    OFFERS_PAGE_SIZE: int = 20
    OFFERS_MAX_PAGE_SIZE: int = 500

    # --- Reporting ---
    STATS_TREND_DAYS: int = 30
    STATS_TOP_PROPERTIES: int = 5

    # --- Notification outbox ---
    OUTBOX_BATCH_SIZE: int = 50
    OUTBOX_MAX_ATTEMPTS: int = 10
    OUTBOX_WEBHOOK_RPS: float = 2.0
    OUTBOX_BACKOFF_BASE_SECONDS: float = 5.0
    OUTBOX_BACKOFF_CAP_SECONDS: float = 3600.0  # 1 hour cap
    WEBHOOK_TIMEOUT_S: int = 20

    # --- Scheduler tuning ---
    SCHED_DISPATCH_INTERVAL_MINUTES: int = 5
    SCHED_EXPIRY_INTERVAL_MINUTES: int = 60


settings = Settings()
