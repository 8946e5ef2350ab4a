"""Bridge service wiring the gateway to its ledger, queue and event store."""

import logging
from typing import Union

from config import GatewayConfig
from core.types import CallContext, Identifier
from database import EventStore
from events import EventLog
from gateway import BridgeGateway
from ingestion_queue import HttpIngestionQueue, InMemoryIngestionQueue
from ledger import HostLedger

logger = logging.getLogger(__name__)


class BridgeService:
    """Runs a bridge gateway against the in-process host ledger.

    Deposits are forwarded to a remote queue when `queue_rpc_url` is set,
    otherwise to an in-process queue. Published events are persisted to
    the event store.
    """

    def __init__(self, config: GatewayConfig):
        """Initialize the service.

        Args:
            config: Gateway configuration
        """
        self.config = config
        self.running = False

        self.ledger = HostLedger()
        for address, amount in config.genesis_balances.items():
            self.ledger.credit_native(address, amount)

        self.queue: Union[HttpIngestionQueue, InMemoryIngestionQueue]
        if config.queue_rpc_url:
            self.queue = HttpIngestionQueue(config.queue_rpc_url)
        else:
            self.queue = InMemoryIngestionQueue()

        self.event_log = EventLog()
        self.store = EventStore(config.database_path)
        self.gateway = BridgeGateway(
            config=config,
            ledger=self.ledger,
            queue=self.queue,
            event_log=self.event_log,
        )

        logger.info("Initialized bridge service")

    async def start(self) -> None:
        """Start the service."""
        logger.info("Starting bridge service...")

        self.config.validate()

        await self.store.start()
        self.event_log.subscribe(self.store.record_event)

        if isinstance(self.queue, HttpIngestionQueue):
            await self.queue.start()

        self.running = True
        logger.info("Bridge service started successfully")

    async def stop(self) -> None:
        """Stop the service."""
        logger.info("Stopping bridge service...")
        self.running = False

        self.event_log.unsubscribe(self.store.record_event)
        if isinstance(self.queue, HttpIngestionQueue):
            await self.queue.stop()
        await self.store.stop()

        logger.info("Bridge service stopped")

    async def deposit_native(self, caller: str, value: int, recipients, amounts, aux_data: bytes = b"") -> Identifier:
        return await self.gateway.deposit_native(
            CallContext(caller=caller, value=value), recipients, amounts, aux_data
        )

    async def deposit_token(self, caller: str, token: str, sender: str, recipients, amounts, aux_data: bytes = b"") -> Identifier:
        return await self.gateway.deposit_token(
            CallContext(caller=caller), token, sender, recipients, amounts, aux_data
        )

    async def settle(self, caller: str, payload: bytes) -> bool:
        return await self.gateway.settle(CallContext(caller=caller), payload)

    async def __aenter__(self) -> "BridgeService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
