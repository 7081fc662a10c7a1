"""
Configuration management using environment variables.
Handles database, security, upload and logging settings with validation and defaults.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class AppConfig(BaseSettings):
    """
    Process-wide configuration.
    Read once at startup from the environment and an optional .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017", validation_alias="DB_CONNECTION")
    mongodb_database: str = Field(default="storefront", validation_alias="DB_NAME")
    mongodb_username: Optional[str] = Field(default=None, validation_alias="DB_USERNAME")
    mongodb_password: Optional[str] = Field(default=None, validation_alias="DB_PASSWORD")

    # Security Configuration
    jwt_secret: str = Field(default="supersecret", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    bcrypt_rounds: int = Field(default=10, validation_alias="BCRYPT_ROUNDS")

    # Upload Configuration
    upload_size: int = Field(default=5, validation_alias="UPLOAD_SIZE")  # MiB
    upload_root: str = Field(default="uploads", validation_alias="UPLOAD_ROOT")

    # Logging Configuration
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, validation_alias="LOG_FILE")

    # Runtime
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False, validation_alias="DEBUG")

    @field_validator('access_token_expire_minutes')
    @classmethod
    def validate_token_lifetime(cls, v):
        """Ensure tokens expire within a reasonable window."""
        if v < 1 or v > 60 * 24 * 30:
            raise ValueError('access_token_expire_minutes must be between 1 and 43200')
        return v

    @field_validator('bcrypt_rounds')
    @classmethod
    def validate_bcrypt_rounds(cls, v):
        """bcrypt accepts work factors between 4 and 31."""
        if v < 4 or v > 31:
            raise ValueError('bcrypt_rounds must be between 4 and 31')
        return v

    @field_validator('upload_size')
    @classmethod
    def validate_upload_size(cls, v):
        """Ensure the upload cap is reasonable."""
        if v < 1 or v > 512:
            raise ValueError('upload_size must be between 1 and 512 MiB')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        valid_environments = ['development', 'test', 'production']
        if v.lower() not in valid_environments:
            raise ValueError(f'environment must be one of: {valid_environments}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_upload_root_path(self) -> Path:
        """Get the upload root as a Path object."""
        return Path(self.upload_root)

    def get_max_upload_bytes(self) -> int:
        """Upload cap in bytes."""
        return self.upload_size * 1024 * 1024

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production" and not self.debug


# Global configuration instance
config = AppConfig()
