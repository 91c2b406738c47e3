"""Dashboard server configuration.

Provides environment-based configuration using pydantic-settings.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from pydantic_settings import BaseSettings

PACKAGE_DIR = Path(__file__).parent
DEFAULT_BACKEND_API_URL = "https://abeto-backend.vercel.app/api"


class Settings(BaseSettings):
    """Dashboard server settings.

    Attributes:
        HOST: Server host address
        PORT: Server port number
        BACKEND_API_URL: Base URL of the backend API being monitored
        BACKEND_API_KEY: Bearer token for the backend API
        PROBE_TIMEOUT_SECONDS: Upper bound for a single resource probe
        REFRESH_INTERVAL_SECONDS: Seconds between background refresh cycles
        DATABASE_URL: PostgreSQL URL of the project store (empty disables it)
        STATIC_CATALOG_PATH: JSON file with the static project catalog
        CUSTOM_ORDER_PATH: JSON file holding the custom project order
        LOG_DIR: Directory for the rotating log file
    """

    HOST: str = "127.0.0.1"
    PORT: int = 3434
    BACKEND_API_URL: str = ""
    BACKEND_API_KEY: str = ""
    PROBE_TIMEOUT_SECONDS: float = 10.0
    REFRESH_INTERVAL_SECONDS: int = 60
    DATABASE_URL: str = ""
    STATIC_CATALOG_PATH: str = str(PACKAGE_DIR / "data" / "projects.json")
    CUSTOM_ORDER_PATH: str = str(Path.home() / ".api_dashboard" / "custom_order.json")
    LOG_DIR: str = str(PACKAGE_DIR / "logs")

    def __init__(self, **kwargs):
        """Initialize settings with backend and database fallback logic."""
        super().__init__(**kwargs)

        if not self.BACKEND_API_URL:
            self.BACKEND_API_URL = os.environ.get("ABETO_API_URL") or DEFAULT_BACKEND_API_URL

        if not self.BACKEND_API_KEY:
            self.BACKEND_API_KEY = self._get_backend_api_key()

        if not self.DATABASE_URL:
            self.DATABASE_URL = os.environ.get("SUPABASE_DB_URL", "")

    def _get_backend_api_key(self) -> str:
        """Get the backend API key from the legacy environment variable.

        Returns:
            API key, or an empty string outside production

        Raises:
            ValueError: If no key is set in production mode
        """
        key = os.environ.get("ABETO_API_KEY", "")
        if key:
            return key

        if os.environ.get("DASHBOARD_ENV") == "production":
            raise ValueError(
                "BACKEND_API_KEY or ABETO_API_KEY must be set in production mode. "
                "Set DASHBOARD_ENV=development to run without a key."
            )
        return ""

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def setup_logging(log_dir: str | None = None):
    """Configure logging with console and rotating file handlers.

    Creates the logs directory and adds RotatingFileHandler with:
    - Max size: 5MB per file
    - Backup count: 3 files
    - Same format as console handler
    """
    logs_dir = Path(log_dir or settings.LOG_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    logger = logging.getLogger()
    logger.setLevel(logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        logs_dir / "dashboard.log",
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
