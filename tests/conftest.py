"""Pytest configuration and fixtures."""

import os

import pytest

TEST_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SERVICE_ROLE_KEY": "test-key",
    "OPENAI_API_KEY": "test-openai-key",
    "REDIS_URL": "redis://localhost:6379/0",
    "APP_HOST": "waivio.test",
    "ASSISTANT_ENV": "test",
}

# Test modules import loggers that read settings at import time
os.environ.update(TEST_ENV)


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    from support_assistant.core.config import get_settings

    os.environ.update(TEST_ENV)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
