import os
from pathlib import Path

from dotenv import load_dotenv


# If a local .env file exists next to the package, load it into os.environ.
# Variables already set in the environment win, so tests and deploys can
# override anything defined there.
env_path = Path(__file__).resolve().parents[2] / ".env"
if env_path.exists():
    load_dotenv(env_path, override=False)


def _env_bool(name: str, default: str = "0") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Lightweight settings loader using environment variables.

    Values are read once at import time; `reload()` re-reads them (used by
    the test suite after patching the environment).
    """

    def __init__(self):
        self.reload()

    def reload(self):
        # Read DATABASE_URL from env, tolerating an accidental repeated
        # prefix like "DATABASE_URL=DATABASE_URL=..." in a malformed .env.
        raw_db = os.getenv("DATABASE_URL", "sqlite:///./pdv.db")
        if isinstance(raw_db, str) and raw_db.startswith("DATABASE_URL="):
            raw_db = raw_db.split("=", 1)[1]
        self.DATABASE_URL: str = raw_db

        self.APP_ENV: str = os.getenv("APP_ENV", os.getenv("ENV", "development")).lower()
        # Environment-aware pool defaults (can be overridden via env)
        default_pool_size = 5 if self.APP_ENV == "development" else 10
        default_max_overflow = 2 if self.APP_ENV == "development" else 20
        default_pool_recycle = 900 if self.APP_ENV == "development" else 1800

        self.DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", str(default_pool_size)))
        self.DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", str(default_max_overflow)))
        self.DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", str(default_pool_recycle)))  # seconds

        # Logging and monitoring controls
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        # Log request counters every N hits per route
        self.REQUEST_LOG_EVERY_N: int = int(os.getenv("REQUEST_LOG_EVERY_N", "100"))
        # Log pool events every N occurrences
        self.DB_LOG_EVERY_N: int = int(os.getenv("DB_LOG_EVERY_N", "50"))
        # Verbose per-request logging (development aid)
        self.REQUEST_LOG_VERBOSE: bool = _env_bool("REQUEST_LOG_VERBOSE")
        # Comma-separated route prefixes to include for verbose logging
        self.REQUEST_LOG_INCLUDE_PREFIXES: str = os.getenv(
            "REQUEST_LOG_INCLUDE_PREFIXES",
            "/orders,/conditionals,/products,/clients,/cart",
        )

        # Reporting: civil calendar used to cut periods and buckets
        self.REPORT_TIMEZONE: str = os.getenv("REPORT_TIMEZONE", "America/Sao_Paulo")
        # Threshold used when a product has no min_stock of its own
        self.LOW_STOCK_DEFAULT: int = int(os.getenv("LOW_STOCK_DEFAULT", "5"))

        self.CORS_ORIGINS: str = os.getenv(
            "CORS_ORIGINS",
            "http://localhost:8080,http://127.0.0.1:8080,http://localhost:5173,http://127.0.0.1:5173",
        )
        return self

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in (self.CORS_ORIGINS or "").split(",") if o.strip()]


settings = Settings()
