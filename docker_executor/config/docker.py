"""Docker runtime connection configuration."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class DockerConfig(BaseSettings):
    """Connection settings for the Docker Engine API client."""

    docker_base_url: Optional[str] = Field(default=None)
    docker_api_version: str = Field(default="auto")
    docker_api_timeout_seconds: int = Field(default=60, ge=1, le=3600)
    docker_tls_verify: bool = Field(default=False)
    docker_max_pool_size: int = Field(default=10, ge=1, le=100)

    class Config:
        env_prefix = ""
        extra = "ignore"
