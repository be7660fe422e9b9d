"""
Pytest configuration
"""

import os

import pytest


def pytest_configure(config):
    """Configure pytest"""
    os.environ.setdefault('PAGESNAP_HEADLESS', 'true')
    os.environ.setdefault('PAGESNAP_DEBUG_DUMPS', 'false')


@pytest.fixture
def fast_config():
    """Config with a tiny retry delay and no dumps"""
    from pagesnap_core.config import Config
    return Config(retry_attempts=3, retry_delay_ms=10, debug_dumps=False, timeout_ms=1000)
