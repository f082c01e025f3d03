"""Configuration management."""

import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Values from the project .env only fill variables missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    for key, value in file_env.items():
        if key not in os.environ and value is not None:
            os.environ[key] = value


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MOSAIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Optimization Configuration
    default_iterations: int = Field(default=80, ge=0, description="Default optimizer iterations")
    max_iterations: int = Field(default=500, ge=1, description="Max iterations accepted per request")
    default_learning_rate: float = Field(default=0.02, gt=0, description="Default gradient step")
    gradient_delta: float = Field(default=1e-6, gt=0, description="Finite-difference step")
    gradient_workers: int = Field(default=1, ge=1, description="Threads used per gradient")


settings = Settings()
