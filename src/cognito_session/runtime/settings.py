"""Environment settings for the Cognito session manager.

``EnvironmentVariables`` reads primitive values from the process
environment and ``.env`` files. ``to_config()`` turns them into a
``ConfigData`` that can be installed with ``set_config`` or layered over
config.yaml with ``with_context``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.cognito_session.runtime.config.config_data import (
    AppConfig,
    CognitoConfig,
    ConfigData,
    LoggingConfig,
    RedisConfig,
)


class EnvironmentVariables(BaseSettings):
    """Simple primitive values loaded from environment variables and .env files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = Field(
        default="development", validation_alias="APP_ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Cognito
    user_pool_id: str = Field(default="", validation_alias="AWS_USER_POOL_ID")
    user_pool_client_id: str = Field(default="", validation_alias="AWS_USER_POOL_CLIENT_ID")
    user_pool_client_secret: str | None = Field(
        default=None, validation_alias="AWS_USER_POOL_CLIENT_SECRET"
    )
    identity_pool_id: str | None = Field(default=None, validation_alias="AWS_IDENTITY_POOL_ID")
    region: str = Field(default="", validation_alias="AWS_REGION")

    # Infrastructure
    redis_url: str | None = Field(default=None, validation_alias="REDIS_URL")

    def to_config(self) -> ConfigData:
        """Build a configuration containing only the values set here."""
        return ConfigData(
            app=AppConfig(environment=self.environment),
            cognito=CognitoConfig(
                user_pool_id=self.user_pool_id,
                client_id=self.user_pool_client_id,
                client_secret=self.user_pool_client_secret,
                identity_pool_id=self.identity_pool_id,
                region=self.region,
            ),
            redis=RedisConfig(enabled=bool(self.redis_url), url=self.redis_url or ""),
            logging=LoggingConfig(level=self.log_level),
        )
