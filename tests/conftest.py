"""Shared fixtures."""

import pytest

from fakes import RecordingSleep


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
