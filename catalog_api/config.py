"""
API configuration settings.
"""

from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Storefront Catalog API"
    api_version: str = "1.0.0"
    api_description: str = "REST API for the storefront catalog and user accounts"
    api_prefix: str = "/api/v1"
    uploads_mount: str = "/uploads"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS Settings
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: list = ["Content-Type", "Authorization"]
    cors_expose_headers: list = ["Content-Range", "X-Content-Range"]

    model_config = {
        "env_file": ".env",
        "extra": "ignore"
    }


# Global config instance
config = APIConfig()
