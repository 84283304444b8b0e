from pydantic_settings import BaseSettings
from typing import List, Any
import json


def parse_list_setting(v: Any) -> List[str]:
    """Parse a list setting from a JSON array or comma-separated string"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [item.strip() for item in v.split(',') if item.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Krong Thai SOP Manager"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    # ==========================================
    # Redis
    # ==========================================
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_DB: int = 1

    # ==========================================
    # Authentication (JWT session tokens)
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    SESSION_DURATION_HOURS: int = 8
    SESSION_REFRESH_THRESHOLD_HOURS: int = 2
    SESSION_MAX_REFRESH_COUNT: int = 3
    SESSION_IDLE_TIMEOUT_MINUTES: int = 30
    SESSION_WARNING_MINUTES: int = 30

    # Session cookie
    SESSION_COOKIE_NAME: str = "auth-session"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_SAMESITE: str = "lax"

    # ==========================================
    # PIN Policy
    # ==========================================
    PIN_HASH_ROUNDS: int = 12
    PIN_MAX_ATTEMPTS: int = 5
    PIN_LOCKOUT_DURATION_MINUTES: int = 15
    PIN_MIN_STRENGTH: str = "medium"  # weak, medium, strong
    PIN_MAX_AGE_DAYS: int = 90

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_STORAGE_URI: str = ""  # Empty means use REDIS_URL
    AUTH_RATE_LIMIT_MAX_ATTEMPTS: int = 5
    AUTH_RATE_LIMIT_WINDOW_MINUTES: int = 15

    # ==========================================
    # Caching
    # ==========================================
    CACHE_ENABLED: bool = True
    TRANSLATION_CACHE_TTL_SECONDS: int = 300  # 5 minutes

    # ==========================================
    # Localization
    # ==========================================
    DEFAULT_LOCALE: str = "en"
    SUPPORTED_LOCALES_STR: str = "en,th"
    TRANSLATION_LOCALES_STR: str = "en,th,fr"

    @property
    def SUPPORTED_LOCALES(self) -> List[str]:
        return parse_list_setting(self.SUPPORTED_LOCALES_STR)

    @property
    def TRANSLATION_LOCALES(self) -> List[str]:
        return parse_list_setting(self.TRANSLATION_LOCALES_STR)

    # ==========================================
    # Restaurant Defaults
    # ==========================================
    DEFAULT_TIMEZONE: str = "Asia/Bangkok"

    # ==========================================
    # Training
    # ==========================================
    CERTIFICATE_EXPIRY_WARNING_DAYS: int = 30
    CERTIFICATE_VERIFY_URL: str = "https://sop.krongthai.example/verify"

    # ==========================================
    # CORS
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_list_setting(self.CORS_ORIGINS_STR)

    # ==========================================
    # Requests
    # ==========================================
    MAX_REQUEST_SIZE: int = 10485760  # 10MB

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def rate_limit_storage(self) -> str:
        """Storage URI for slowapi; memory:// when nothing else is configured"""
        return self.RATE_LIMIT_STORAGE_URI or self.REDIS_URL or "memory://"

    @property
    def auth_rate_limit(self) -> str:
        """Login rate limit in slowapi notation"""
        return f"{self.AUTH_RATE_LIMIT_MAX_ATTEMPTS}/{self.AUTH_RATE_LIMIT_WINDOW_MINUTES} minutes"

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG


# Create settings instance
settings = Settings()
