"""
Pytest configuration and shared fixtures for the bridge gateway tests.
"""
import pytest

from config import GatewayConfig
from events import EventLog
from gateway import BridgeGateway
from ingestion_queue import InMemoryIngestionQueue
from ledger import HostLedger

BRIDGE = "0x" + "b0" * 20
AUTHORITY = "0x" + "a0" * 20
ALICE = "0x" + "11" * 20
BOB = "0x" + "22" * 20
CAROL = "0x" + "33" * 20
TOKEN = "0x" + "70" * 20

STARTING_BALANCE = 1_000


@pytest.fixture
def config():
    return GatewayConfig(
        bridge_address=BRIDGE,
        settlement_authority=AUTHORITY,
        database_path=":memory:",
    )


@pytest.fixture
def ledger():
    ledger = HostLedger()
    ledger.credit_native(ALICE, STARTING_BALANCE)
    return ledger


@pytest.fixture
def token(ledger):
    token = ledger.deploy_token(TOKEN, "TKN")
    token.mint(ALICE, STARTING_BALANCE)
    token.approve(ALICE, BRIDGE, STARTING_BALANCE)
    return token


@pytest.fixture
def queue():
    return InMemoryIngestionQueue()


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def gateway(config, ledger, queue, event_log):
    return BridgeGateway(config=config, ledger=ledger, queue=queue, event_log=event_log)
