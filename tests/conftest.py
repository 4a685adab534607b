"""Shared fixtures for py-calgrid tests."""

import pytest

from py_calgrid.config import CalendarConfig, set_config


@pytest.fixture(autouse=True)
def calendar_config():
    """Pin the process defaults so tests do not depend on the environment."""
    config = CalendarConfig(
        timezone="UTC",
        uid_namespace="test",
        day_max_events=3,
        first_day_of_week=0,
    )
    set_config(config)
    yield config
    set_config(None)
