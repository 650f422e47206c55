"""Logging configuration."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class LoggingConfig(BaseSettings):
    """Structured logging settings."""

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    class Config:
        env_prefix = ""
        extra = "ignore"
