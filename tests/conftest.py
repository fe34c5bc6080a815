"""Shared pytest fixtures and configuration."""

import os

# Set test environment variables before the logging config reads them
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from freezegun import freeze_time

from src.services.retry_policy import RetryPolicy
from src.utils.config import ImportSettings
from tests.utils.helpers import InMemoryStore


@pytest.fixture
def memory_store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def sleep_calls():
    """Delays requested by a RetryPolicy built with the no_wait_retry_policy fixture."""
    return []


@pytest.fixture
def no_wait_retry_policy(sleep_calls):
    """Default retry policy whose backoff sleeps are recorded instead of awaited."""
    async def fake_sleep(seconds):
        sleep_calls.append(seconds)

    return RetryPolicy(sleep=fake_sleep)


@pytest.fixture
def import_settings():
    """Settings pointing at a fake functions URL."""
    return ImportSettings(
        supabase_url="https://test.supabase.co",
        supabase_service_role_key="test-key",
        functions_url="https://test.functions.supabase.co",
    )


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
