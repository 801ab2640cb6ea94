"""Load config.yaml with environment placeholders resolved."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.cognito_session.runtime.config.config_data import ConfigData

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")

# Variables a deployment must provide for the user pool to be reachable
REQUIRED_ENV_VARS = {
    "AWS_USER_POOL_ID": "Cognito user pool id",
    "AWS_USER_POOL_CLIENT_ID": "Cognito user pool app client id",
}


def _resolve_placeholder(expression: str) -> str:
    name, sep, rest = expression.partition(":-")
    if sep:
        return os.getenv(name, rest)

    name, sep, hint = expression.partition(":?")
    value = os.getenv(name)
    if value is not None:
        return value
    if sep:
        raise ValueError(f"Required environment variable {name}: {hint}")
    raise ValueError(f"Required environment variable {name} not set")


def substitute_env_vars(text: str) -> str:
    """Replace ``${NAME}``, ``${NAME:-default}`` and ``${NAME:?hint}`` placeholders.

    Raises:
        ValueError: If a placeholder without a default names an unset variable
    """
    return _PLACEHOLDER.sub(lambda match: _resolve_placeholder(match.group(1)), text)


def _apply_environment_overrides(env_mode: str) -> None:
    """Promote ``<ENV>_NAME`` variables to ``NAME`` for the active environment."""
    prefix = f"{env_mode.upper()}_"
    promoted = []
    for name, value in list(os.environ.items()):
        if name.startswith(prefix) and len(name) > len(prefix):
            os.environ[name[len(prefix):]] = value
            promoted.append(name)
    if promoted:
        logger.info(f"Applied {env_mode} environment overrides: {promoted}")


def load_templated_yaml(file_path: Path) -> ConfigData:
    """Read ``file_path`` and validate its ``config`` section.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a placeholder cannot be resolved or the content is invalid
    """
    env_mode = os.getenv("APP_ENVIRONMENT", "development")
    _apply_environment_overrides(env_mode)

    text = substitute_env_vars(Path(file_path).read_text())
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML in {file_path}: {e}") from e
    if not isinstance(document, dict):
        raise ValueError(f"{file_path} does not contain a mapping")

    try:
        config = ConfigData.model_validate(document.get("config") or {})
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {file_path}: {e}") from e

    if not (config.cognito.user_pool_id and config.cognito.client_id):
        logger.warning("Cognito user pool id or client id is not configured")
    logger.debug(f"Loaded configuration from {file_path} ({env_mode})")
    return config


def validate_config_env_vars() -> dict[str, str]:
    """Return the required variables that are unset, with their descriptions."""
    return {name: description for name, description in REQUIRED_ENV_VARS.items() if not os.getenv(name)}
