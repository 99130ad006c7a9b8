"""
Shared fixtures for the IBT bridge test suite.
"""

import pytest

from ibtbridge.bridge import (
    BridgeCapabilities,
    BridgeCapability,
    ChainSide,
    TransferOrchestrator,
)
from ibtbridge.logging import MemoryHandler, get_log_manager
from ibtbridge.testing import InMemoryAccountLedger, InMemoryObjectLedger

# Anvil's first deployment address and first dev account
TOKEN_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
ETH_USER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ETH_OTHER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

SUI_PACKAGE = "0x" + "9a" * 32
SUI_ADMIN_CAP = "0x" + "ad" * 32
SUI_USER = "0x" + "5e" * 32

TOKEN = 10 ** 18


@pytest.fixture
def eth_user():
    return ETH_USER


@pytest.fixture
def sui_user():
    return SUI_USER


@pytest.fixture
def account_ledger():
    """Account ledger where the test user starts with no IBT."""
    return InMemoryAccountLedger(TOKEN_CONTRACT)


@pytest.fixture
def object_ledger():
    """Object ledger with the bridge package deployed and no coins."""
    return InMemoryObjectLedger(SUI_ADMIN_CAP)


@pytest.fixture
def capabilities(account_ledger, object_ledger):
    return BridgeCapabilities(
        account=BridgeCapability(ChainSide.ACCOUNT, account_ledger.capability_id, "contract_owner"),
        object=BridgeCapability(ChainSide.OBJECT, object_ledger.capability_id, "admin_cap"),
    )


@pytest.fixture
def orchestrator(account_ledger, object_ledger, capabilities):
    return TransferOrchestrator(account_ledger, object_ledger, capabilities)


@pytest.fixture
def memory_logs():
    """Capture bridge log entries for the duration of a test."""
    manager = get_log_manager()
    handler = MemoryHandler()
    manager.add_handler("memory", handler)
    yield handler
    get_log_manager().remove_handler("memory")
