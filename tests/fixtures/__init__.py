"""Shared pytest fixtures and helpers for session tests."""

from .cognito import *  # noqa: F401,F403
from .core import *  # noqa: F401,F403
