import os
from decimal import Decimal

from dotenv import load_dotenv
from pydantic import BaseModel

# Load variables from .env
load_dotenv()


class Settings(BaseModel):
    database_url: str = "sqlite+aiosqlite:///./frontdesk.db"

    # Console -> backend of record
    api_base_url: str = "http://localhost:8000"
    api_timeout_seconds: int = 10

    currency_symbol: str = "₹"

    # Payment rules
    # Residual due at or below this amount counts as fully paid
    fully_paid_tolerance: Decimal = Decimal("1")
    owner_reference_is_free: bool = True

    # Lifecycle rules
    max_extension_days: int = 30
    allow_cancel_after_check_in: bool = False
    allow_future_check_in: bool = False

    # Guest suggestions
    guest_suggest_min_length: int = 3
    guest_search_debounce_ms: int = 300

    # Change notifications
    enable_notification_polling: bool = True
    notification_poll_interval_seconds: int = 15

    # Rate limiting settings
    rate_limit_enabled: bool = True  # Killswitch for quick disable
    rate_limit_mutations: str = "60/minute"

    # Logging settings
    log_format: str = "console"  # Options: "console", "json"
    log_slow_request_threshold_ms: int = 500  # Log timing only if duration > threshold


settings = Settings(
    database_url=os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./frontdesk.db"),
    api_base_url=os.environ.get("API_BASE_URL", "http://localhost:8000"),
    api_timeout_seconds=int(os.environ.get("API_TIMEOUT_SECONDS", "10")),
    currency_symbol=os.environ.get("CURRENCY_SYMBOL", "₹"),
    fully_paid_tolerance=Decimal(os.environ.get("FULLY_PAID_TOLERANCE", "1")),
    owner_reference_is_free=os.environ.get("OWNER_REFERENCE_IS_FREE", "true").lower()
    == "true",
    max_extension_days=int(os.environ.get("MAX_EXTENSION_DAYS", "30")),
    allow_cancel_after_check_in=os.environ.get(
        "ALLOW_CANCEL_AFTER_CHECK_IN", "false"
    ).lower()
    == "true",
    allow_future_check_in=os.environ.get("ALLOW_FUTURE_CHECK_IN", "false").lower()
    == "true",
    guest_suggest_min_length=int(os.environ.get("GUEST_SUGGEST_MIN_LENGTH", "3")),
    guest_search_debounce_ms=int(os.environ.get("GUEST_SEARCH_DEBOUNCE_MS", "300")),
    enable_notification_polling=os.environ.get(
        "ENABLE_NOTIFICATION_POLLING", "true"
    ).lower()
    == "true",
    notification_poll_interval_seconds=int(
        os.environ.get("NOTIFICATION_POLL_INTERVAL_SECONDS", "15")
    ),
    rate_limit_enabled=os.environ.get("RATE_LIMIT_ENABLED", "true").lower() == "true",
    rate_limit_mutations=os.environ.get("RATE_LIMIT_MUTATIONS", "60/minute"),
    log_format=os.environ.get("LOG_FORMAT", "console"),
    log_slow_request_threshold_ms=int(
        os.environ.get("LOG_SLOW_REQUEST_THRESHOLD_MS", "500")
    ),
)
