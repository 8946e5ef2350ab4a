#!/usr/bin/env python3
"""Example script demonstrating a deposit and its settlement."""

import asyncio
import logging

from bridge import BridgeService
from codec import decode_deposit_record, encode_settlement_record
from config import GatewayConfig
from core.types import OperationTag, SettlementRecord

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

BRIDGE = "0x" + "b0" * 20
AUTHORITY = "0x" + "a0" * 20
ALICE = "0x" + "11" * 20
L2_BOB = "0x" + "22" * 20
L2_CAROL = "0x" + "33" * 20


async def main():
    config = GatewayConfig(
        bridge_address=BRIDGE,
        settlement_authority=AUTHORITY,
        database_path=":memory:",
        genesis_balances={ALICE: 1_000},
    )

    async with BridgeService(config) as service:
        # Deposit 30 units for two L2 recipients
        message_id = await service.deposit_native(
            caller=ALICE,
            value=30,
            recipients=[L2_BOB, L2_CAROL],
            amounts=[10, 20],
            aux_data=b"hello l2",
        )
        record = decode_deposit_record(service.queue.get(message_id).record)
        logger.info(f"Queued {message_id}: {record}")

        # Later the settlement authority sends 5 back to Alice on L1
        payload = encode_settlement_record(
            SettlementRecord(
                tag=OperationTag.NATIVE_COIN,
                token=None,
                recipient=ALICE,
                amount=5,
            )
        )
        accepted = await service.settle(caller=AUTHORITY, payload=payload)
        logger.info(f"Settlement accepted: {accepted}")

        logger.info(f"Alice balance: {service.ledger.native_balance(ALICE)}")
        logger.info(f"Bridge custody: {service.ledger.native_balance(BRIDGE)}")


if __name__ == "__main__":
    asyncio.run(main())
