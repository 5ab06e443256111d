"""Shared pytest fixtures for TradeJournal tests.

This module provides fixtures for:
- A clean settings environment per test session
- Position engines with the default and alternative policies
- Test data factories

Usage:
    @pytest.mark.unit
    def test_something(engine):
        result = engine.calculate([buy("10", "1", 0)])
        assert result.positions[0].total_quantity == 10
"""

import os
from collections.abc import Generator

import pytest

from tests.factories.trade import TradeFactory
from tradejournal.config.settings import get_settings
from tradejournal.core.positions import LotMatcher, MatchingPolicy, PositionEngine

WALLET_A = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"
WALLET_B = "7KqpRwzkkeweW5jQoETyLzhvs9rcCj9dVQ1MnzudirsM"

# =============================================================================
# Environment Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Isolate tests from the developer's environment variables."""
    original_env = os.environ.copy()

    for name in ("DEBUG", "LOG_LEVEL", "ZERO_EPSILON", "MAX_WORKERS", "TIE_BREAK_POLICY"):
        os.environ.pop(name, None)
    get_settings.cache_clear()

    yield

    os.environ.clear()
    os.environ.update(original_env)
    get_settings.cache_clear()


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def policy() -> MatchingPolicy:
    """Default matching policy."""
    return MatchingPolicy()


@pytest.fixture
def engine(policy: MatchingPolicy) -> PositionEngine:
    """Position engine with the default policy."""
    return PositionEngine(policy)


@pytest.fixture
def matcher(policy: MatchingPolicy) -> LotMatcher:
    """FIFO lot matcher with the default policy."""
    return LotMatcher(policy)


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def trade_factory() -> type[TradeFactory]:
    """Provide trade factory for creating test trades."""
    return TradeFactory


@pytest.fixture
def wallet_address() -> str:
    """Primary test wallet."""
    return WALLET_A


@pytest.fixture
def other_wallet_address() -> str:
    """Secondary test wallet."""
    return WALLET_B
