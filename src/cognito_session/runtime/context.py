"""Active configuration, held in a ContextVar so overrides stay task-local."""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from loguru import logger

from src.cognito_session.runtime.config.config_data import ConfigData
from src.cognito_session.runtime.config.config_template import load_templated_yaml


@dataclass(frozen=True)
class AppContext:
    """Process state shared by the session layer."""

    config: ConfigData


def _load_default_config() -> ConfigData:
    config_path = Path(os.getenv("APP_CONFIG_FILE", "config.yaml"))
    if not config_path.exists():
        logger.debug(f"{config_path} not found, using default configuration")
        return ConfigData()
    return load_templated_yaml(config_path)


_current: ContextVar[AppContext] = ContextVar(
    "cognito_session_context", default=AppContext(config=_load_default_config())
)


def get_context() -> AppContext:
    return _current.get()


def set_context(context: AppContext) -> Token[AppContext]:
    """Install ``context``; pass the returned token to ``ContextVar.reset`` to undo."""
    return _current.set(context)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_configs(base_config: ConfigData, override_config: ConfigData) -> ConfigData:
    """Overlay the explicitly set fields of ``override_config`` onto ``base_config``.

    Nested sections are merged field by field, so an override that only sets
    ``cognito.client_id`` keeps every other ``cognito`` value from the base.
    """
    merged = _deep_merge(base_config.model_dump(), override_config.model_dump(exclude_unset=True))
    return ConfigData.model_validate(merged)


@contextmanager
def with_context(config_override: ConfigData | None = None) -> Iterator[None]:
    """Layer ``config_override`` over the active configuration for a block.

        with with_context(ConfigData(cognito=CognitoConfig(client_id="abc"))):
            assert get_config().cognito.client_id == "abc"
    """
    if config_override is None:
        yield
        return
    if not isinstance(config_override, ConfigData):
        raise ValueError(f"Expected ConfigData or None, got {type(config_override).__name__}")

    current = get_context()
    token = set_context(replace(current, config=merge_configs(current.config, config_override)))
    try:
        yield
    finally:
        _current.reset(token)


def set_config(config: ConfigData) -> None:
    """Replace the active configuration for the current context."""
    set_context(replace(get_context(), config=config))


def get_config() -> ConfigData:
    return get_context().config
