"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets APP_ENV=testing so no .env file is loaded during tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")

import pytest

from tests.fakes import FakeClock


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
