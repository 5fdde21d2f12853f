"""
Core settings and environment variables for the Baraya client.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.
    Create a .env file in the working directory to override these.
    """

    # Application
    APP_NAME: str = "Baraya"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Remote API
    API_BASE_URL: str = "http://103.197.191.113:8080/api/v1"
    API_TIMEOUT_SECONDS: float = 10.0
    UPLOAD_TIMEOUT_SECONDS: Optional[float] = None  # None = transport default

    # Secure token storage
    TOKEN_SERVICE: str = "com.barayaapp.auth"
    TOKEN_STORE_DIR: str = "~/.baraya"
    TOKEN_STORE_KEY: Optional[str] = None  # Fernet key; generated beside the store if unset

    # Emergency reports
    ACTIVE_REPORT_CACHE_PATH: str = "~/.baraya/active_report.json"
    REPORT_COMPLETION_DELAY_SECONDS: float = 2.0

    # Image uploads
    IMAGE_MAX_BYTES: int = 200 * 1024
    IMAGE_CACHE_DIR: Optional[str] = None  # None = system temp dir

    # Retry policy (uploads, notification sends)
    UPLOAD_MAX_ATTEMPTS: int = 3
    NOTIFICATION_SEND_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY_SECONDS: float = 1.0
    RETRY_BACKOFF_FACTOR: float = 2.0

    # Notifications
    NOTIFICATION_POLL_INTERVAL_SECONDS: float = 15.0

    # Session expiry UX
    SESSION_EXPIRED_MESSAGE: str = "Sesi telah berakhir, silakan login kembali"
    LOGIN_ROUTE: str = "Login"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


# Global settings instance
settings = Settings()
