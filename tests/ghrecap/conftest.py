"""Shared fixtures for ghrecap tests (no network, no database)."""

from __future__ import annotations

from datetime import datetime

import pytest
from factories import SINCE


@pytest.fixture
def since() -> datetime:
    return SINCE
