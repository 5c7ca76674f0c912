"""Application configuration with security-first defaults.

Environment variables override all defaults.
CRITICAL: SECRET_KEY must be set in .env - will fail fast if missing in production.
"""

import os
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except ImportError:
    pass

# Money columns are Numeric(14, 2); more places would be truncated on store
MAX_CURRENCY_DECIMALS = 2
REMAINDER_POLICIES = ("last_line", "largest_remainder")
WRITE_MODES = ("atomic", "sequential")


def choice_setting(name: str, value: str, allowed) -> str:
    """Fail fast on a misspelled enum-like setting instead of at the first checkout."""
    if value not in allowed:
        raise ValueError(f"{name}={value!r} is not one of: {', '.join(allowed)}")
    return value


def currency_decimals_setting(value: str) -> int:
    decimals = int(value)
    if not 0 <= decimals <= MAX_CURRENCY_DECIMALS:
        raise ValueError(
            f"CURRENCY_DECIMALS must be between 0 and {MAX_CURRENCY_DECIMALS}, got {decimals}"
        )
    return decimals


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pharmacy_pos.db")

    # JWT - tokens are issued by the identity provider, we only verify them
    SECRET_KEY: str = os.getenv("SECRET_KEY", None)
    if not SECRET_KEY:
        if os.getenv("ENVIRONMENT", "development") == "production":
            raise ValueError(
                "SECRET_KEY must be set in production environment. "
                "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        import warnings
        warnings.warn(
            "SECRET_KEY not set in environment. Using development default. "
            "Set SECRET_KEY in .env to a strong random value.",
            RuntimeWarning
        )
        SECRET_KEY = "development-only-weak-default-change-in-production"

    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))
    TOKEN_COOKIE_NAME: str = "pos_token"

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    # Pricing
    # Smallest currency unit = 10 ** -CURRENCY_DECIMALS. VND has no minor unit.
    CURRENCY_DECIMALS: int = currency_decimals_setting(os.getenv("CURRENCY_DECIMALS", "0"))
    # last_line | largest_remainder
    PRICE_REMAINDER_POLICY: str = choice_setting(
        "PRICE_REMAINDER_POLICY", os.getenv("PRICE_REMAINDER_POLICY", "last_line"), REMAINDER_POLICIES
    )

    # Order persistence
    # atomic: header + items in one transaction
    # sequential: header committed first, items second (orphaned header on item failure)
    ORDER_WRITE_MODE: str = choice_setting(
        "ORDER_WRITE_MODE", os.getenv("ORDER_WRITE_MODE", "atomic"), WRITE_MODES
    )

    # History
    HISTORY_PAGE_LIMIT: int = int(os.getenv("HISTORY_PAGE_LIMIT", "100"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"


settings = Settings()
