"""
Configuration module for the PayU Notification service.

Loads settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


CREDENTIAL_SOURCES = ('database', 'env')


@dataclass
class DatabaseConfig:
    """Database connection configuration."""
    url: str


@dataclass
class APIConfig:
    """API server configuration."""
    host: str
    port: int
    request_timeout: float  # Seconds before a notification is left unacknowledged


@dataclass
class PayUConfig:
    """PayU notification configuration."""
    signature_header: str
    default_store_scope: int
    credential_source: str


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    file: Optional[str]


@dataclass
class ServiceConfig:
    """Service-level configuration."""
    name: str
    shutdown_timeout: int


class Config:
    """
    Main configuration class that aggregates all config sections.

    Usage:
        from config import config

        print(config.payu.signature_header)
        print(config.api.port)
    """

    def __init__(self):
        self._load_config()

    def _load_config(self):
        """Load all configuration from environment variables."""

        # Database configuration
        self.database = DatabaseConfig(
            url=os.getenv('DATABASE_URL', 'sqlite:///./payu_notifications.db')
        )

        # API configuration
        self.api = APIConfig(
            host=os.getenv('API_HOST', '0.0.0.0'),
            port=int(os.getenv('API_PORT', '8000')),
            request_timeout=float(os.getenv('API_REQUEST_TIMEOUT', '25'))
        )

        # PayU configuration
        self.payu = PayUConfig(
            signature_header=os.getenv('PAYU_SIGNATURE_HEADER', 'OpenPayu-Signature'),
            default_store_scope=int(os.getenv('PAYU_DEFAULT_STORE_SCOPE', '0')),
            credential_source=os.getenv('PAYU_CREDENTIAL_SOURCE', 'database').lower()
        )

        # Logging configuration
        self.logging = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO'),
            file=os.getenv('LOG_FILE')
        )

        # Service configuration
        self.service = ServiceConfig(
            name=os.getenv('SERVICE_NAME', 'PayUNotifications'),
            shutdown_timeout=int(os.getenv('SHUTDOWN_TIMEOUT', '30'))
        )

    def validate(self) -> List[str]:
        """
        Validate required configuration values.

        Returns:
            List of validation error messages (empty if all valid)
        """
        errors = []

        if not self.database.url:
            errors.append("DATABASE_URL is required")

        if not self.payu.signature_header:
            errors.append("PAYU_SIGNATURE_HEADER must not be empty")

        if self.payu.credential_source not in CREDENTIAL_SOURCES:
            errors.append(
                f"PAYU_CREDENTIAL_SOURCE must be one of: {', '.join(CREDENTIAL_SOURCES)}"
            )

        if self.api.request_timeout <= 0:
            errors.append("API_REQUEST_TIMEOUT must be positive")

        return errors

    def is_valid(self) -> bool:
        """Check if configuration is valid."""
        return len(self.validate()) == 0


# Global configuration instance
config = Config()
