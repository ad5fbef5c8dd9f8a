"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment before any app module builds its settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from app.core import rate_limit


@pytest.fixture(autouse=True)
def reset_rate_limit_state():
    """Start every test with an empty counter store and the default service."""
    rate_limit.get_counter_store().clear()
    rate_limit.set_rate_limit_service(None)
    yield
    rate_limit.get_counter_store().clear()
    rate_limit.set_rate_limit_service(None)
