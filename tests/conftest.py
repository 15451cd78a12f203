import pytest

from fyte_token.clock import ManualClock
from fyte_token.payments import NativeBank
from fyte_token.project_constants import WEI_PER_ETHER
from fyte_token.state import deploy

# Default dev-chain accounts
OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ACCOUNT2 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
ACCOUNT3 = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

START_TS = 1_700_000_000
ONE_DAY_IN_SECS = 24 * 60 * 60


def ether(n) -> int:
    return int(n * WEI_PER_ETHER)


@pytest.fixture
def clock():
    return ManualClock(START_TS)


@pytest.fixture
def bank():
    return NativeBank({OWNER: ether(10_000), ACCOUNT2: ether(10_000), ACCOUNT3: ether(10_000)})


@pytest.fixture
def env(bank, clock):
    """Owner and account2 split proceeds 80/20; two fresh NFT collections."""
    return deploy([OWNER, ACCOUNT2], [80, 20], "sum", bank=bank, clock=clock)


@pytest.fixture
def fyte(env):
    return env.ledger


@pytest.fixture
def nfts(env):
    return env.registry
