import os
from dotenv import load_dotenv

load_dotenv()

# Required: fails fast if missing
API_KEY: str = os.environ["API_KEY"]

APP_ENV: str = os.getenv("APP_ENV", "development")
PORT: int = int(os.getenv("PORT", "8000"))
CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")

# One currency per transaction; the gateway only sees this code.
CURRENCY_CODE: str = os.getenv("CURRENCY_CODE", "USD")
TERMINAL_IDS: str = os.getenv("TERMINAL_IDS", "TERM-001")
MERCHANT_ID: str = os.getenv("MERCHANT_ID", "MERCHANT-DEMO")
LOCATION_ID: str = os.getenv("LOCATION_ID", "LOC-001")

SIMULATOR_EVENT_DELAY: float = float(os.getenv("SIMULATOR_EVENT_DELAY", "0"))
SIMULATOR_REQUIRE_SURCHARGE_CONFIRMATION: bool = (
    os.getenv("SIMULATOR_REQUIRE_SURCHARGE_CONFIRMATION", "true").lower() in ("1", "true", "yes")
)
SIMULATOR_DECLINE_ABOVE_CENTS: int = int(os.getenv("SIMULATOR_DECLINE_ABOVE_CENTS", "1000000"))


def is_production() -> bool:
    return APP_ENV == "production"


def get_cors_origins() -> list[str]:
    if not CORS_ORIGINS:
        return []
    return [origin.strip() for origin in CORS_ORIGINS.split(",") if origin.strip()]


def get_terminal_ids() -> list[str]:
    return [terminal.strip() for terminal in TERMINAL_IDS.split(",") if terminal.strip()]
