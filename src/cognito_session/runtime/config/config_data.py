"""Typed view of the ``config`` section of config.yaml."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field


class CognitoConfig(BaseModel):
    """User pool, identity pool and session storage settings."""

    user_pool_id: str = Field(default="", description="User pool id, e.g. us-east-1_AbCdEf")
    client_id: str = Field(default="", description="User pool app client id")
    client_secret: str | None = Field(
        default=None, description="App client secret; enables SECRET_HASH when set"
    )
    identity_pool_id: str | None = Field(
        default=None, description="Identity pool id for AWS service credentials"
    )
    region: str = Field(
        default="", description="AWS region; derived from the user pool id when empty"
    )
    store_key: str = Field(
        default="cognito", description="Namespace for cached session data in the key-value store"
    )
    http_timeout: float = Field(
        default=10.0, gt=0, description="Transport timeout for Cognito requests in seconds"
    )
    global_sign_out: bool = Field(
        default=True, description="Invalidate refresh tokens server-side on clear()"
    )
    auth_flow: Literal["USER_SRP_AUTH", "USER_PASSWORD_AUTH"] = Field(
        default="USER_SRP_AUTH", description="InitiateAuth flow used for password logins"
    )

    @computed_field
    @property
    def resolved_region(self) -> str:
        """Region to call, falling back to the user pool id prefix."""
        if self.region:
            return self.region
        pool_region, sep, _ = self.user_pool_id.partition("_")
        return pool_region if sep else ""


class RedisConfig(BaseModel):
    """Key-value store backend for persisted sessions."""

    enabled: bool = Field(default=True, description="Try Redis before falling back to memory")
    url: str = Field(default="", description="redis:// or rediss:// URL; empty disables Redis")
    password: str | None = Field(
        default=None, description="Injected into the URL unless it already carries credentials"
    )
    decode_responses: bool = Field(default=True, description="Return str instead of bytes")
    key_prefix: str = Field(default="kv:", description="Prefix for session namespaces")

    @computed_field
    @property
    def connection_string(self) -> str:
        """The URL with ``password`` inserted when it has no credentials of its own."""
        scheme, sep, rest = self.url.partition("://")
        if not self.password or not sep or "@" in rest:
            return self.url
        return f"{scheme}://:{self.password}@{rest}"


class LoggingConfig(BaseModel):
    """Loguru sink settings."""

    level: str = Field(default="INFO", description="Minimum level for every sink")
    format: Literal["json", "plain"] = Field(
        default="plain", description="Layout of the file sink"
    )
    file: str | None = Field(default=None, description="File sink path; empty disables it")
    max_size_mb: int = Field(default=10, description="Rotate the file sink at this size")
    backup_count: int = Field(default=5, description="Rotated files to retain")


class AppConfig(BaseModel):
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Deployment environment"
    )


class ConfigData(BaseModel):
    """Root of the ``config`` section."""

    app: AppConfig = Field(default_factory=AppConfig)
    cognito: CognitoConfig = Field(default_factory=CognitoConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
