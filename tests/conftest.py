"""Test configuration and fixtures for the Cognito session manager."""

from tests.fixtures import *  # noqa: F401,F403
