"""Cognito authentication session and credential lifecycle manager.

This package drives the Cognito login, MFA, password and registration
flows, derives the current identity from a persisted session, and bridges
the synchronous token storage used by the session layer to an
asynchronous key-value store.
"""

__version__ = "0.1.0"
