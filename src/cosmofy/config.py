"""
Runtime settings loaded from the environment (and a local .env file).
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _secret_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """Credentials and tunables for every upstream source and the service."""

    nasa_api_key: Optional[str] = None
    n2yo_api_key: Optional[str] = None
    astronomy_app_id: Optional[str] = None
    astronomy_app_secret: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openweather_api_key: Optional[str] = None
    timezonedb_api_key: Optional[str] = None
    cache_dir: str = ".cache"
    request_timeout: float = 30.0
    location_max_age_minutes: float = 30.0
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Missing credentials are not an error here; each source reports a
        ConfigurationError when it is actually used.
        """
        if dotenv:
            load_dotenv()
        return cls(
            nasa_api_key=_secret_env('NASA_API_KEY'),
            n2yo_api_key=_secret_env('N2YO_API_KEY'),
            astronomy_app_id=_secret_env('ASTRONOMY_API_APP_ID'),
            astronomy_app_secret=_secret_env('ASTRONOMY_API_SECRET'),
            openrouter_api_key=_secret_env('OPENROUTER_API_KEY'),
            openweather_api_key=_secret_env('OPENWEATHER_API_KEY'),
            timezonedb_api_key=_secret_env('TIMEZONEDB_API_KEY'),
            cache_dir=os.getenv('COSMOFY_CACHE_DIR', '.cache'),
            request_timeout=_float_env('COSMOFY_REQUEST_TIMEOUT', 30.0),
            location_max_age_minutes=_float_env('COSMOFY_LOCATION_MAX_AGE_MINUTES', 30.0),
            log_level=os.getenv('COSMOFY_LOG_LEVEL', 'INFO').upper(),
            host=os.getenv('COSMOFY_HOST', '127.0.0.1'),
            port=int(_float_env('COSMOFY_PORT', 8000)),
        )


def configure_logging(settings: Settings) -> None:
    """Configure root logging once for the service process."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT
    )
