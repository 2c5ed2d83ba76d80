import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


def _csv_env(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [w.strip().lower() for w in raw.split(",") if w.strip()]


LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "postgres").strip().lower()

STRIPE_SECRET = os.getenv("STRIPE_SECRET_KEY", "").strip()
CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")
STRIPE_ACCOUNT_COUNTRY = os.getenv("STRIPE_ACCOUNT_COUNTRY", "US")

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")
USE_TASK_QUEUE = os.getenv("USE_TASK_QUEUE", "0") == "1"

# Donations at or above this amount may carry a message.
MESSAGE_THRESHOLD_CENTS = _int_env("MESSAGE_THRESHOLD_CENTS", 500)
MESSAGE_MAX_LENGTH = _int_env("MESSAGE_MAX_LENGTH", 500)

TITLE_MIN_LENGTH = 4
TITLE_MAX_LENGTH = 50
DESCRIPTION_MIN_LENGTH = 0
DESCRIPTION_MAX_LENGTH = 1000
LOCATION_MAX_LENGTH = 100
DURATION_MIN_DAYS = 1
DURATION_MAX_DAYS = 30
FUNDING_TARGET_MAX_CENTS = _int_env("FUNDING_TARGET_MAX_CENTS", 1_000_000)

BANNED_WORDS = _csv_env("BANNED_WORDS", "damn,hell,crap")

PROGRESS_CACHE_TTL = _int_env("PROGRESS_CACHE_TTL", 30)
