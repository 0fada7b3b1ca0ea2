"""
Server Configuration

Loads the sticker server settings from environment variables (and a .env file
if present). Required values are checked up front so the process never starts
serving with a half-configured store.
"""

import os
import logging
from typing import Optional, List
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


DEFAULT_REPO_URL = "https://github.com/maunium/stickerpicker"
DEFAULT_BRANCH = "master"

# Refresh the web UI mirror once an hour
DEFAULT_REFRESH_INTERVAL = 60 * 60  # seconds

DEFAULT_GIT_TIMEOUT = 120  # seconds
DEFAULT_STORE_TIMEOUT = 10  # seconds

# Retired snapshots stay on disk this long so in-flight reads can finish
DEFAULT_SNAPSHOT_GRACE = 10 * 60  # seconds

REQUIRED_VARS = ("PACKS_S3_SERVER", "PACKS_S3_BUCKET", "HOMESERVER")


class ConfigMissingError(Exception):
    """Raised when required environment variables are not set"""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required environment variables: {', '.join(self.missing)}")


def _int_from_env(name: str, default: int) -> int:
    """Read an integer variable, falling back to the default on bad input"""
    value = os.getenv(name, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid {name} '{value}'. Falling back to {default}.")
        return default


@dataclass
class ServerConfig:
    """Sticker server configuration"""
    s3_server: str
    s3_bucket: str
    homeserver_url: str
    s3_region: str = "auto"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_timeout: int = DEFAULT_STORE_TIMEOUT
    repo_url: str = DEFAULT_REPO_URL
    branch: str = DEFAULT_BRANCH
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    git_timeout: int = DEFAULT_GIT_TIMEOUT
    snapshot_grace: int = DEFAULT_SNAPSHOT_GRACE
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> 'ServerConfig':
        """
        Load config from environment variables.

        Args:
            dotenv: Also read a .env file from the working directory

        Raises:
            ConfigMissingError: if any required variable is unset or empty
        """
        if dotenv:
            load_dotenv()

        missing = [name for name in REQUIRED_VARS if not os.getenv(name, "")]
        if missing:
            raise ConfigMissingError(missing)

        return cls(
            s3_server=os.environ["PACKS_S3_SERVER"],
            s3_bucket=os.environ["PACKS_S3_BUCKET"],
            homeserver_url=os.environ["HOMESERVER"],
            s3_region=os.getenv("PACKS_S3_REGION", "auto") or "auto",
            s3_access_key_id=os.getenv("PACKS_S3_ACCESS_KEY_ID") or None,
            s3_secret_access_key=os.getenv("PACKS_S3_SECRET_ACCESS_KEY") or None,
            s3_timeout=_int_from_env("PACKS_S3_TIMEOUT", DEFAULT_STORE_TIMEOUT),
            repo_url=os.getenv("MIRROR_REPO_URL", "") or DEFAULT_REPO_URL,
            branch=os.getenv("MIRROR_BRANCH", "") or DEFAULT_BRANCH,
            refresh_interval=_int_from_env("MIRROR_REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL),
            git_timeout=_int_from_env("MIRROR_GIT_TIMEOUT", DEFAULT_GIT_TIMEOUT),
            snapshot_grace=_int_from_env("MIRROR_SNAPSHOT_GRACE", DEFAULT_SNAPSHOT_GRACE),
            host=os.getenv("HOST", "") or "0.0.0.0",
            port=_int_from_env("PORT", 8080),
            log_level=(os.getenv("LOG_LEVEL", "") or "INFO").upper(),
        )
