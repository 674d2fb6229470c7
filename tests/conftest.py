# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for ARBWATCH tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tests.stubs import make_pair  # noqa: E402


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture
def weth_usdc_pair():
    """WETH/USDC over two stub venues A and B, WETH at $2500."""
    return make_pair("A", "B")
