"""
Application configuration management using Pydantic Settings.
All settings are loaded from environment variables.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application Settings
    # =========================================================================
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )
    port: int = Field(default=3000)

    # Shared secret for the diagnostics endpoints (event log)
    admin_api_key: str = Field(default="")

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="json")

    # =========================================================================
    # Twilio Configuration
    # =========================================================================
    twilio_auth_token: str = Field(default="")

    # Webhook Configuration
    webhook_base_url: str = Field(default="")  # e.g., https://abc123.ngrok.io

    # =========================================================================
    # Cardknox Gateway Configuration
    # =========================================================================
    cardknox_api_key: str = Field(default="")
    cardknox_gateway_url: str = Field(default="https://x1.cardknox.com/gatewayjson")
    cardknox_version: str = Field(default="4.5.6")
    cardknox_software_name: str = Field(default="DonationSMS")
    cardknox_software_version: str = Field(default="4.5.6")
    cardknox_command: str = Field(default="cc:sale")
    cardknox_timeout_seconds: float = Field(default=10.0)

    # =========================================================================
    # Donation Flow Settings
    # =========================================================================
    sms_session_timeout_minutes: int = Field(default=30)
    event_log_capacity: int = Field(default=100)
    event_log_redact: bool = Field(default=True)

    # IVR
    voice_base_path: str = Field(default="/api/v1/voice")
    ivr_audio_base_url: str = Field(
        default="https://raw.githubusercontent.com/kmvyyg/donation/main"
    )
    ivr_call_tracker_size: int = Field(default=500)

    @property
    def cardknox_configured(self) -> bool:
        """Check if the card gateway key is set."""
        return bool(self.cardknox_api_key)


# Global settings instance
settings = Settings()
