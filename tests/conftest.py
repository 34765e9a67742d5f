"""Shared test fixtures."""

import pytest

from launchstats.clock import FixedClock
from tests.fakes import NOW, FakeChainClient


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient()
