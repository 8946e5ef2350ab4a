"""
Tests for BridgeService wiring: genesis, lifecycle, event persistence.
"""

import pytest

from bridge import BridgeService
from config import GatewayConfig
from core.errors import ConfigurationError
from ingestion_queue import HttpIngestionQueue, InMemoryIngestionQueue

from conftest import ALICE, AUTHORITY, BOB, BRIDGE, STARTING_BALANCE


@pytest.fixture
def service_config():
    return GatewayConfig(
        bridge_address=BRIDGE,
        settlement_authority=AUTHORITY,
        database_path=":memory:",
        genesis_balances={ALICE: STARTING_BALANCE},
    )


class TestBridgeService:
    def test_genesis_and_queue_choice(self, service_config):
        service = BridgeService(service_config)

        assert service.ledger.native_balance(ALICE) == STARTING_BALANCE
        assert isinstance(service.queue, InMemoryIngestionQueue)

    def test_remote_queue_when_configured(self, service_config):
        config = GatewayConfig(
            bridge_address=BRIDGE,
            settlement_authority=AUTHORITY,
            queue_rpc_url="http://127.0.0.1:9/rpc",
        )
        assert isinstance(BridgeService(config).queue, HttpIngestionQueue)

    async def test_deposit_is_persisted(self, service_config):
        async with BridgeService(service_config) as service:
            message_id = await service.deposit_native(ALICE, 5, [BOB], [5])

            stored = await service.store.get_event_by_message_id(message_id)
            assert stored["event"] == "NativeDeposited"

    async def test_stop_unsubscribes_store(self, service_config):
        service = BridgeService(service_config)
        await service.start()
        await service.stop()

        assert service.running is False
        assert service.event_log._subscribers == []

    async def test_invalid_config_fails_start(self):
        service = BridgeService(GatewayConfig(bridge_address=BRIDGE, settlement_authority=BRIDGE))
        with pytest.raises(ConfigurationError):
            await service.start()
