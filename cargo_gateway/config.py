import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from cargo_gateway.logger import get_logger

# Institutional Path Management: .env lives in the project root
env_path = Path(__file__).resolve().parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

logger = get_logger("config")

DEFAULT_TIMEOUT = 30.0


class CarrierSettings(BaseModel):
    """Connection settings for one carrier, read once when the adapter is built."""
    base_url: str
    username: Optional[str] = None
    password: Optional[str] = None
    customer_code: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    environment: str = "production"
    language: str = "TR"
    max_requests: int = 60
    window_seconds: float = 60.0
    bulk_delay: float = 0.0
    timeout: float = DEFAULT_TIMEOUT

    @property
    def has_credentials(self) -> bool:
        return bool((self.username and self.password) or (self.api_key and self.api_secret))

    @property
    def is_sandbox(self) -> bool:
        return self.environment.lower() in ("sandbox", "test", "staging")

    def masked_username(self) -> str:
        if not self.username:
            return "Not set"
        return f"{self.username[:3]}***"

    @classmethod
    def from_env(cls, prefix: str, **defaults) -> "CarrierSettings":
        """
        Reads {prefix}_API_URL, _USERNAME, _PASSWORD, _CUSTOMER_CODE, _API_KEY,
        _API_SECRET, _ENVIRONMENT, _LANGUAGE, _RATE_LIMIT, _RATE_WINDOW,
        _BULK_DELAY and _TIMEOUT. Missing keys keep the given defaults.
        """
        values = dict(defaults)

        text_keys = {
            "base_url": "API_URL",
            "username": "USERNAME",
            "password": "PASSWORD",
            "customer_code": "CUSTOMER_CODE",
            "api_key": "API_KEY",
            "api_secret": "API_SECRET",
            "environment": "ENVIRONMENT",
            "language": "LANGUAGE",
        }
        for field_name, suffix in text_keys.items():
            raw = os.getenv(f"{prefix}_{suffix}")
            if raw:
                values[field_name] = raw.strip()

        numeric_keys = {
            "max_requests": ("RATE_LIMIT", int),
            "window_seconds": ("RATE_WINDOW", float),
            "bulk_delay": ("BULK_DELAY", float),
            "timeout": ("TIMEOUT", float),
        }
        for field_name, (suffix, cast) in numeric_keys.items():
            raw = os.getenv(f"{prefix}_{suffix}")
            if raw is None or raw.strip() == "":
                continue
            try:
                values[field_name] = cast(raw.strip())
            except ValueError:
                logger.warning(f"⚠️ Ignoring malformed {prefix}_{suffix}={raw!r}, keeping default")

        return cls(**values)
