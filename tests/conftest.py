"""
Shared test configuration.

Provides a default config and a fresh tick-0 world for each test.
"""

import pytest

from emergence.core.config import FieldConfig
from emergence.core.state import create_world_state


@pytest.fixture
def config():
    return FieldConfig()


@pytest.fixture
def world(config):
    return create_world_state(config)
