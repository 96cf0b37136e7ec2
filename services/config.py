"""Environment-driven settings for the availability engine."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from models.exceptions import InvalidConfiguration

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    """Runtime settings."""
    api_base_url: str = DEFAULT_BASE_URL
    api_token: Optional[str] = None
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Variables:
            AVAILABILITY_API_BASE_URL: Base URL of the availability API
            AVAILABILITY_API_TOKEN: Optional bearer token
            AVAILABILITY_FETCH_TIMEOUT_SECONDS: Per-participant fetch timeout
            SCHEDULING_LOG_LEVEL: Logging level name
        """
        if load_dotenv_file:
            load_dotenv()

        raw_timeout = os.getenv("AVAILABILITY_FETCH_TIMEOUT_SECONDS", str(DEFAULT_FETCH_TIMEOUT_SECONDS))
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise InvalidConfiguration(
                f"AVAILABILITY_FETCH_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}"
            ) from None
        if timeout <= 0:
            raise InvalidConfiguration(f"Fetch timeout must be positive, got {timeout}")

        log_level = os.getenv("SCHEDULING_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise InvalidConfiguration(f"Unknown log level: {log_level!r}")

        return cls(
            api_base_url=os.getenv("AVAILABILITY_API_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            api_token=os.getenv("AVAILABILITY_API_TOKEN") or None,
            fetch_timeout_seconds=timeout,
            log_level=log_level
        )


def configure_logging(settings: Settings) -> None:
    """Apply the configured level to the root logger."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logging.getLogger().setLevel(settings.log_level)
