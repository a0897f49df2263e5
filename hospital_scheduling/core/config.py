import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scheduling.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:4200"])

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

BOOKING_HORIZON_DAYS = int(os.getenv("BOOKING_HORIZON_DAYS", "28"))
MAX_AVAILABILITY_WINDOW_DAYS = int(os.getenv("MAX_AVAILABILITY_WINDOW_DAYS", "92"))
MAX_BOOKING_REASON_LENGTH = int(os.getenv("MAX_BOOKING_REASON_LENGTH", "500"))
STORAGE_RETRY_AFTER_SECONDS = int(os.getenv("STORAGE_RETRY_AFTER_SECONDS", "2"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if BOOKING_HORIZON_DAYS < 1:
        raise RuntimeError("BOOKING_HORIZON_DAYS must be at least 1.")
    if MAX_AVAILABILITY_WINDOW_DAYS < BOOKING_HORIZON_DAYS:
        raise RuntimeError("MAX_AVAILABILITY_WINDOW_DAYS must not be shorter than BOOKING_HORIZON_DAYS.")
