"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://storefront:storefront_dev_password@db:5432/storefront"

    # Authentication
    jwt_secret: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    admin_api_key: str = "dev-admin-key-change-in-production"

    # Payments
    payment_gateway: str = "razorpay"
    razorpay_key_id: str = "rzp_test_key"
    razorpay_key_secret: str = "dev-razorpay-secret-change-in-production"
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    payment_currency: str = "INR"
    gateway_timeout_seconds: float = 10.0

    # Invoices
    invoice_dir: str = "uploads/invoices"
    seller_name: str = "Storefront Retail Pvt. Ltd."
    seller_address: str = "1 Market Road, Bengaluru 560001"

    # Notifications
    notifications_enabled: bool = True
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = False
    email_from: str = "no-reply@example.com"
    public_base_url: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance.

    Returns:
        Cached Settings.
    """
    return Settings()
