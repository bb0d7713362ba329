"""
Shared fixtures for the unit tests.
"""

import pytest

from services.trade_sync.connectors.throttled import ThrottledFetcher
from services.trade_sync.core.rate_limiter import ImmediateRateLimiter
from services.trade_sync.tests.fakes import InMemoryTradeStore, ScriptedTradeSource


@pytest.fixture
def store():
    return InMemoryTradeStore()


@pytest.fixture
def source():
    return ScriptedTradeSource()


@pytest.fixture
def fetcher(source):
    return ThrottledFetcher(source, ImmediateRateLimiter())
