import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Paystack
    PAYSTACK_SECRET_KEY: Optional[str] = None
    PAYSTACK_WEBHOOK_SECRET: Optional[str] = None
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"
    PAYSTACK_CALLBACK_URL: str = "http://localhost:3000/owner/subscriptions/verify"
    PAYSTACK_TIMEOUT_SECONDS: float = 5.0

    # Listing quota
    LIMIT_WARNING_RATIO: float = 0.8

    # Admin access (X-Admin-Key)
    ADMIN_KEY: Optional[str] = None

    # App URLs
    FRONTEND_URL: str = "http://localhost:3000"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


REQUIRED_KEYS = ("DATABASE_URL", "PAYSTACK_SECRET_KEY", "PAYSTACK_WEBHOOK_SECRET", "ADMIN_KEY")


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> List[str]:
    """Report required settings that are unset.

    Strict mode (CONFIG_STRICT) raises RuntimeError; otherwise a warning is
    logged and the service starts, answering payment calls with a
    configuration error. Only key names are logged, never values.
    """
    cfg = settings_obj or settings
    strict_mode = cfg.CONFIG_STRICT if strict is None else strict

    missing = [key for key in REQUIRED_KEYS if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        (logger or logging.getLogger("orangerides")).warning(message)
    return missing
