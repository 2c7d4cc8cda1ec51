"""
Pytest configuration and shared fixtures for sweeper testing.
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import settings, Verbosity

# Add project directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sweeper.core.accounts import AccountPools, AccountRole, generate_accounts
from sweeper.core.storage import Storage
from tests.fixtures import FakeClock, FakePool


# ============================================================================
# Hypothesis Configuration
# ============================================================================

settings.register_profile("default", max_examples=100, deadline=None)
settings.register_profile("ci", max_examples=1000, deadline=None)
settings.register_profile("dev", max_examples=20, verbosity=Verbosity.verbose)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_pool():
    """In-memory asyncpg pool."""
    return FakePool()


@pytest.fixture
def storage(fake_pool):
    """Storage on the in-memory pool."""
    return Storage(fake_pool)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def account_pools():
    """Small mint and buy pools with real keypairs."""
    return AccountPools(
        mint=tuple(generate_accounts(2, AccountRole.MINT)),
        buy=tuple(generate_accounts(3, AccountRole.BUY)),
    )
