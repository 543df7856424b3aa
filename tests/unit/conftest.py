"""
Global fixtures for unit tests
"""
import pytest

from stacker.pox.types import AccountSnapshot, ProtocolInfo
from stacker.signing.keys import build_account

# Deterministic throwaway keys; the trailing 01 marks a compressed key.
TEST_SECRET_KEYS = [
    "01" * 32 + "01",
    "02" * 32 + "01",
    "03" * 32 + "01",
]


@pytest.fixture
def accounts():
    return [build_account(index, key) for index, key in enumerate(TEST_SECRET_KEYS)]


@pytest.fixture
def account(accounts):
    return accounts[0]


@pytest.fixture
def make_pox_info():
    def _make(**overrides) -> ProtocolInfo:
        defaults = dict(
            contract_id="ST000000000000000000002AMW42H.pox-4",
            current_burn_height=199,
            reward_cycle_id=10,
            next_cycle_min_threshold_ustx=1_000_000,
            reward_cycle_length=20,
            prepare_phase_length=5,
        )
        defaults.update(overrides)
        return ProtocolInfo(**defaults)

    return _make


@pytest.fixture
def make_snapshot():
    def _make(account, **overrides) -> AccountSnapshot:
        defaults = dict(
            account=account,
            balance=4_000_000,
            locked=0,
            unlock_height=0,
            nonce=0,
        )
        defaults.update(overrides)
        return AccountSnapshot(**defaults)

    return _make
