"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import pytest

from inventory_tap.config import AppConfig, CollectorConfig, LimitsConfig

from fakes import FakeSources


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "windows: test runs against a stand-in for a Windows API"
    )
    config.addinivalue_line(
        "markers", "integration: end-to-end collection or command line run"
    )


@pytest.fixture
def app_config():
    """Default configuration with the stock limits."""
    return AppConfig(collector=CollectorConfig(), limits=LimitsConfig())


@pytest.fixture
def sources():
    """Empty fake sources: every source is unavailable until configured."""
    return FakeSources()
