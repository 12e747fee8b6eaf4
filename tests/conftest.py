import pytest

from mocks import FakeClock, MockLedger


@pytest.fixture
def ledger():
    return MockLedger()


@pytest.fixture
def clock():
    return FakeClock()
