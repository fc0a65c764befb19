"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (backend API, transport, secrets)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Backend order/ticket API
    BACKEND_API_KEY: Optional[str] = Field(
        default=None,
        description="API key sent as X-Api-Key to the backend admin API"
    )
    BACKEND_BASE_URL: str = Field(
        default="https://greatfollows.com/adminapi/v2",
        description="Backend admin API base URL"
    )
    BACKEND_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout applied to every backend request, in seconds"
    )

    # Bot instance
    SESSION_NAME: str = Field(
        default="verigate-bot",
        description="Messaging session / instance identifier"
    )

    # Verification
    CODE_TTL_MINUTES: int = Field(
        default=10,
        description="Lifetime of a one-time verification code in minutes"
    )
    SWEEP_INTERVAL_SECONDS: int = Field(
        default=0,
        description="Interval of the expired-code sweep; 0 disables it"
    )
    CANCEL_ORPHANED_TICKETS: bool = Field(
        default=False,
        description="Close tickets of superseded or expired verifications"
    )

    # Outbound transport
    TRANSPORT: Literal["twilio", "bridge"] = Field(
        default="twilio",
        description="Outbound messaging transport"
    )
    TWILIO_ACCOUNT_SID: Optional[str] = Field(default=None, description="Twilio account SID")
    TWILIO_AUTH_TOKEN: Optional[str] = Field(default=None, description="Twilio auth token")
    TWILIO_WHATSAPP_NUMBER: str = Field(
        default="whatsapp:+14155238886",
        description="Twilio WhatsApp sender number"
    )
    BRIDGE_SEND_URL: Optional[str] = Field(
        default=None,
        description="Send endpoint of the WhatsApp Web bridge"
    )
    WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Shared secret expected in X-Webhook-Secret for bridge payloads"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("BACKEND_API_KEY")
    @classmethod
    def validate_backend_key(cls, v, info: ValidationInfo):
        """Ensure the backend key is set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("BACKEND_API_KEY is required in production environment")
        return v

    @field_validator("CODE_TTL_MINUTES")
    @classmethod
    def validate_code_ttl(cls, v):
        if v <= 0:
            raise ValueError("CODE_TTL_MINUTES must be positive")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings(current: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    current = current or settings
    errors = []

    if not current.BACKEND_BASE_URL:
        errors.append("BACKEND_BASE_URL is required")

    if current.BACKEND_TIMEOUT_SECONDS <= 0:
        errors.append("BACKEND_TIMEOUT_SECONDS must be positive")

    if current.TRANSPORT == "bridge" and not current.BRIDGE_SEND_URL:
        errors.append("BRIDGE_SEND_URL is required for the bridge transport")

    # Production-specific validations
    if current.is_production:
        if not current.BACKEND_API_KEY:
            errors.append("BACKEND_API_KEY is required in production")
        if current.TRANSPORT == "twilio" and not (current.TWILIO_ACCOUNT_SID and current.TWILIO_AUTH_TOKEN):
            errors.append("TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN are required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
