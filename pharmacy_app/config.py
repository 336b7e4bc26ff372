"""
Application settings read from the environment
Values can be provided through a .env file (loaded in main.py)
"""

import os
from typing import List


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DEFAULT_OPERATOR_KEY = "dev-operator-key-change-in-production"


class Settings:
    """Runtime configuration for the ordering API"""

    def __init__(self):
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pharmacy_orders.db")

        # Order store behaviour
        self.STORE_TIMEOUT_SECONDS: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
        self.STORE_READ_RETRIES: int = int(os.getenv("STORE_READ_RETRIES", "3"))
        self.STORE_RETRY_BACKOFF_SECONDS: float = float(os.getenv("STORE_RETRY_BACKOFF_SECONDS", "0.1"))
        self.SEED_DEMO_ORDERS: bool = _env_bool("SEED_DEMO_ORDERS", True)

        # Status transitions are reserved to the fulfilment side
        self.OPERATOR_API_KEY: str = os.getenv("OPERATOR_API_KEY", DEFAULT_OPERATOR_KEY)

        self.RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", True)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.CORS_ORIGINS: List[str] = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]

    @property
    def using_default_operator_key(self) -> bool:
        return self.OPERATOR_API_KEY == DEFAULT_OPERATOR_KEY


settings = Settings()
