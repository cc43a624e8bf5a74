"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from typing import Generator, List

import pytest
import requests_mock

from orderbot.config import Settings
from orderbot.fetcher import OrdersFetcher
from orderbot.window import TimeWindow
from tests.helpers import ACCESS_TOKEN, SHOP


@pytest.fixture
def window() -> TimeWindow:
    return TimeWindow(
        start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )


@pytest.fixture
def mock_shopify() -> Generator[requests_mock.Mocker, None, None]:
    """Mock the Shopify Admin API."""
    with requests_mock.Mocker(case_sensitive=True) as m:
        yield m


@pytest.fixture
def waits() -> List[float]:
    """Records backoff waits instead of sleeping."""
    return []


@pytest.fixture
def fetcher(waits: List[float]) -> OrdersFetcher:
    return OrdersFetcher(SHOP, ACCESS_TOKEN, sleep=waits.append)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        shop=SHOP,
        access_token=ACCESS_TOKEN,
        city_filters="Chennai",
        output_dir=str(tmp_path),
        smtp_username="bot@example.com",
        smtp_password="app-password",
        email_to="ops@example.com, warehouse@example.com",
        log_level="DEBUG",
        dry_run=False,
    )
