# Filename: dropdrive/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path
from decimal import Decimal
from typing import Literal


class Settings(BaseSettings):
    # Core
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    app_name: str = "DropDrive"
    app_version: str = "0.1.0"

    secret_key: str = Field(..., description="JWT secret key - required")
    access_token_expire_minutes: int = 1440
    jwt_algorithm: str = "HS256"

    # "dev_pass": one shared password for every provisioned user (local setups)
    # "password": per-user bcrypt hash stored on the user row
    auth_mode: Literal["dev_pass", "password"] = "password"
    dev_password: str = ""

    database_url: str = Field(..., description="Database connection string")

    storage_path: Path = Path("./data")
    recycle_bin_name: str = "RecycleBin"
    max_path_length: int = 500

    default_total_storage_mb: Decimal = Decimal("200")

    cors_allow_origins: str = "*"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "*"
    cors_allow_headers: str = "*"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="DROPDRIVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
