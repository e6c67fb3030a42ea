"""
Application Configuration

Uses Pydantic Settings for environment variable management with validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    AUTO_CREATE_TABLES: bool = False

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 43200  # 30 days

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # OTP
    OTP_EXPIRE_MINUTES: int = 15
    LOGIN_OTP_EXPIRE_MINUTES: int = 10
    OTP_RESEND_COOLDOWN_SECONDS: int = 60
    OTP_MAX_ATTEMPTS: int = 5
    # Echo freshly issued registration codes in the response (local development only)
    EXPOSE_OTP_CODES: bool = False

    # Notifications
    ADMIN_EMAIL: Optional[str] = None
    EMAIL_PROVIDER: str = "console"  # console | smtp
    SMS_PROVIDER: str = "console"  # console | msg91
    NOTIFICATION_MAX_ATTEMPTS: int = 3

    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM_ADDRESS: str = "support@swiftdesk.local"
    EMAIL_FROM_NAME: str = "Swiftdesk"

    MSG91_AUTH_KEY: str = ""
    MSG91_TEMPLATE_ID: str = ""
    MSG91_SENDER_ID: str = ""

    # Generative text
    AI_PROVIDER: str = "openai"  # openai | gemini
    AI_TIMEOUT_SECONDS: float = 20.0
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Uploads
    UPLOAD_DIR: str = "static/uploads"
    UPLOAD_BASE_URL: str = "/static/uploads"
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

    # Quiz
    QUIZ_ANSWER_KEY_PATH: str = str(Path(__file__).parent.parent / "data" / "quizzes.json")
    QUIZ_PASS_PERCENTAGE: int = 50
    QUIZ_COOLDOWN_DAYS: int = 90

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def expose_otp_codes(self) -> bool:
        """Registration codes are echoed only when opted in, and never in production."""
        return self.EXPOSE_OTP_CODES and not self.is_production


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are only loaded once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
