"""
Application Configuration
"""
from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings
from pydantic import model_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "DeliveryBot"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False  # Secure default
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Database
    DATABASE_URL: str = "sqlite:///./deliverybot.db"
    DATABASE_ECHO: bool = False
    SEED_ON_STARTUP: bool = True

    # Sessions
    SESSION_IDLE_TIMEOUT_SECONDS: int = 120
    SESSION_SWEEP_INTERVAL_SECONDS: int = 60
    EXPIRED_SESSION_RETENTION_SECONDS: int = 300

    # OTP
    OTP_VALIDITY_SECONDS: int = 120

    # External calls (order store, intent resolver, notifier)
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 10.0

    # Intent resolution
    INTENT_USE_LLM: bool = True

    # LLM Provider
    LLM_PROVIDER: Literal["bedrock", "ollama"] = "ollama"

    # AWS Bedrock
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    BEDROCK_MODEL_ID: str = "anthropic.claude-3-haiku-20240307-v1:0"

    # Ollama
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3"

    # Twilio WhatsApp
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_WHATSAPP_NUMBER: str = ""
    TWILIO_API_BASE_URL: str = "https://api.twilio.com/2010-04-01"

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate critical settings for non-development environments."""
        if self.APP_ENV != "development":
            # Warn about DEBUG mode in production
            if self.DEBUG:
                import warnings
                warnings.warn(
                    "DEBUG mode is enabled in a non-development environment. "
                    "This is not recommended for production.",
                    UserWarning,
                )

        # Validate AWS credentials when using Bedrock
        if self.INTENT_USE_LLM and self.LLM_PROVIDER == "bedrock":
            if not self.AWS_ACCESS_KEY_ID or not self.AWS_SECRET_ACCESS_KEY:
                raise ValueError(
                    "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY are required when LLM_PROVIDER is 'bedrock'. "
                    "Set these in your .env file or environment variables."
                )

        if self.OTP_VALIDITY_SECONDS <= 0 or self.SESSION_IDLE_TIMEOUT_SECONDS <= 0:
            raise ValueError("OTP_VALIDITY_SECONDS and SESSION_IDLE_TIMEOUT_SECONDS must be positive.")

        return self

    @property
    def whatsapp_enabled(self) -> bool:
        """Whether Twilio credentials for WhatsApp delivery are configured."""
        return bool(
            self.TWILIO_ACCOUNT_SID
            and self.TWILIO_AUTH_TOKEN
            and self.TWILIO_WHATSAPP_NUMBER
        )

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
