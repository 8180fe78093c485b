"""Configuration for goalcron.

Settings come from environment variables, with a ``.env`` file in the working
directory loaded first if present.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from goalcron.models.constants import DEFAULT_CACHE_TTL_SECONDS, DEFAULT_CONCURRENCY

load_dotenv()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseModel):
    """Runtime settings for the automation job."""

    todoist_api_token: str = Field(..., min_length=1, description="Todoist API token")
    cache_ttl_seconds: float = Field(DEFAULT_CACHE_TTL_SECONDS, ge=0, description="Snapshot cache TTL")
    concurrency: int = Field(DEFAULT_CONCURRENCY, ge=1, description="Simultaneous API operations per batch")
    log_level: str = Field("INFO", description="Root log level")


def get_api_token() -> str:
    """Read the Todoist API token from the environment.

    TODOIST_API_TOKEN is checked first, then TODOIST_TOKEN.

    Raises:
        ValueError: If no token is set
    """
    token = os.getenv("TODOIST_API_TOKEN") or os.getenv("TODOIST_TOKEN")
    if not token:
        raise ValueError(
            "TODOIST_API_TOKEN is not set.\n\n"
            "To get your token:\n"
            "1. Go to https://app.todoist.com/app/settings/integrations\n"
            "2. Scroll to 'API token' and copy it\n\n"
            "To save it (choose one):\n"
            "  Option A: Create a .env file in the working directory:\n"
            "    echo 'TODOIST_API_TOKEN=your_token_here' > .env\n\n"
            "  Option B: Export in your shell:\n"
            "    export TODOIST_API_TOKEN=your_token_here\n"
        )
    return token


def load_settings(
    concurrency: Optional[int] = None,
    cache_ttl_seconds: Optional[float] = None,
    log_level: Optional[str] = None,
) -> Settings:
    """Build Settings from the environment; explicit arguments take precedence."""
    return Settings(
        todoist_api_token=get_api_token(),
        cache_ttl_seconds=(
            cache_ttl_seconds
            if cache_ttl_seconds is not None
            else float(os.getenv("GOALCRON_CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS)))
        ),
        concurrency=(
            concurrency
            if concurrency is not None
            else int(os.getenv("GOALCRON_CONCURRENCY", str(DEFAULT_CONCURRENCY)))
        ),
        log_level=(log_level or os.getenv("LOG_LEVEL", "INFO")).upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT, force=True)
