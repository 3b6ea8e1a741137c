#!/usr/bin/env python3
"""
Configuration for the Consent Recorder service.

Constants live at module level; everything read from the environment is
collected into a ConsentConfig at request time so that no request sees
another request's settings.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)


# Supabase table endpoint for consent records
SUPABASE_INSERT_PATH = "/rest/v1/ips"
PREFER_RETURN_MODES = ("minimal", "representation")
DEFAULT_PREFER_RETURN = "minimal"

# Outbound HTTP
DEFAULT_OUTBOUND_TIMEOUT = 10.0  # seconds

# Server defaults
DEFAULT_PORT = 5000
DEFAULT_HOST = "0.0.0.0"

# Error messages (user-facing, no internal details)
ERROR_MESSAGES = {
    "method_not_allowed": "Method Not Allowed",
    "consent_missing": "consent not provided",
    "server_error": "server error",
    "not_found": "Not Found",
}

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_LEVEL = "INFO"

SERVICE_NAME = "consent-recorder"


def _clean(value: Optional[str]) -> str:
    """Normalize config values by stripping whitespace and converting None to empty string."""
    return value.strip() if isinstance(value, str) else ""


def _parse_timeout(raw: str) -> float:
    try:
        timeout = float(raw)
    except ValueError:
        return DEFAULT_OUTBOUND_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_OUTBOUND_TIMEOUT


@dataclass(frozen=True)
class ConsentConfig:
    """Settings for a single consent request"""
    supabase_url: str = ""
    supabase_key: str = ""
    hash_ip: bool = False
    hash_salt: str = ""
    discord_webhook_url: str = ""
    prefer_return: str = DEFAULT_PREFER_RETURN
    timeout: float = DEFAULT_OUTBOUND_TIMEOUT

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def discord_enabled(self) -> bool:
        return bool(self.discord_webhook_url)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConsentConfig":
        """
        Build configuration from environment variables

        Args:
            environ: Mapping to read from, defaults to os.environ

        Returns:
            ConsentConfig populated from the mapping
        """
        if environ is None:
            environ = os.environ

        prefer_return = _clean(environ.get("SUPABASE_PREFER_RETURN")).lower()
        if prefer_return not in PREFER_RETURN_MODES:
            prefer_return = DEFAULT_PREFER_RETURN

        return cls(
            supabase_url=_clean(environ.get("SUPABASE_URL")).rstrip("/"),
            supabase_key=_clean(environ.get("SUPABASE_SERVICE_ROLE_KEY")),
            # Only the exact string "1" turns hashing on
            hash_ip=environ.get("HASH_IP") == "1",
            # Salt is used verbatim, whitespace included
            hash_salt=environ.get("HASH_SALT") or "",
            discord_webhook_url=_clean(environ.get("DISCORD_WEBHOOK_URL")),
            prefer_return=prefer_return,
            timeout=_parse_timeout(_clean(environ.get("OUTBOUND_TIMEOUT_SECONDS"))),
        )


def validate_config(config: ConsentConfig) -> bool:
    """
    Validate that the consent sink is configured

    Returns:
        True if valid, False otherwise
    """
    if not config.supabase_url or not config.supabase_key:
        print("Warning: Supabase configuration missing (SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)")
        return False

    if not config.discord_enabled:
        print("Note: DISCORD_WEBHOOK_URL not set; notifications disabled")

    return True
