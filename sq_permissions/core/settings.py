"""
Runtime settings for the updater.

Responsibilities:
1. Token loading from the environment (a .env file is honoured)
2. Base URL normalization
3. Range validation of the tuning options
"""

import logging
import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from sq_permissions.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SQ_TOKEN_ENV_VARIABLE = "SONARQUBE_TOKEN"

MAX_PAGE_SIZE = 500
MAX_BULK_APPLY = 1000
DEFAULT_READ_TIMEOUT_MS = 120_000
DEFAULT_PROGRESS_INTERVAL = 2.0


def normalize_api_url(base_url: str) -> str:
    """
    Turn a SonarQube base URL into its web API root.

    Examples:
        https://sq.example.com -> https://sq.example.com/api
        https://sq.example.com/ -> https://sq.example.com/api
        https://example.com/sonar -> https://example.com/sonar/api
    """
    url = base_url.strip()
    if not url.endswith("/"):
        url = f"{url}/"
    return f"{url}api"


def load_token() -> str:
    """
    Read the auth token from SONARQUBE_TOKEN.

    Raises:
        ConfigurationError: if the variable is unset or empty
    """
    _ = load_dotenv(find_dotenv(usecwd=True))

    token = os.environ.get(SQ_TOKEN_ENV_VARIABLE, "").strip()
    if not token:
        raise ConfigurationError(SQ_TOKEN_ENV_VARIABLE, "environment variable")
    return token


class UpdaterSettings(BaseModel):
    """All options driving a single run."""
    base_url: str = Field(min_length=1)
    token: str = Field(min_length=1, repr=False)
    permission_template_id: str = Field(min_length=1)
    page_size: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    read_timeout_ms: int = Field(default=DEFAULT_READ_TIMEOUT_MS, ge=1)
    max_bulk_apply: int = Field(default=MAX_BULK_APPLY, ge=1, le=MAX_BULK_APPLY)
    # None means every call of a phase is launched at once
    max_concurrency: int | None = Field(default=None, ge=1)
    progress_interval: float = Field(default=DEFAULT_PROGRESS_INTERVAL, gt=0)

    @property
    def api_url(self) -> str:
        return normalize_api_url(self.base_url)

    @property
    def read_timeout(self) -> float:
        """Read timeout in seconds, as httpx expects it."""
        return self.read_timeout_ms / 1000
