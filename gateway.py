"""Bridge gateway: L1 custody for deposits into L2 and settlement back out."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Iterable, List, Optional, Protocol, Sequence, Tuple

from codec import encode_deposit_record, decode_settlement_record
from config import GatewayConfig
from core.errors import (
    ArithmeticOverflowError,
    AuthorizationError,
    InsufficientFundingError,
    ReentrancyError,
    TransferFailure,
    ValidationError,
)
from core.types import (
    Address,
    CallContext,
    Identifier,
    NativeDepositRecord,
    OperationTag,
    TokenDepositRecord,
    MAX_UINT256,
    normalize_address,
)
from events import (
    BridgeEvent,
    EventLog,
    NativeDeposited,
    NativeWithdrawn,
    TokenDeposited,
    TokenWithdrawn,
)
from ledger import HostLedger, TokenLedger

logger = logging.getLogger(__name__)


class IngestionQueue(Protocol):
    """Anything that accepts an encoded record and returns its identifier."""

    def submit(self, record: bytes) -> Awaitable[Identifier]: ...


def checked_sum(amounts: Iterable[int]) -> int:
    """Sum amounts, failing instead of wrapping past 2**256 - 1.

    Raises:
        ArithmeticOverflowError: If the total does not fit in uint256
    """
    total = 0
    for amount in amounts:
        total += amount
        if total > MAX_UINT256:
            raise ArithmeticOverflowError(f"Amount total exceeds {MAX_UINT256}")
    return total


def validate_request(
    recipients: Sequence[str],
    amounts: Sequence[int]
) -> Tuple[Tuple[Address, ...], Tuple[int, ...]]:
    """Check positional correspondence and normalize a deposit request.

    Raises:
        ValidationError: On a length mismatch, a bad address or a negative amount
    """
    if len(recipients) != len(amounts):
        raise ValidationError(
            f"Length mismatch: {len(recipients)} recipients, {len(amounts)} amounts"
        )

    for amount in amounts:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"Amount must be an integer, got {amount!r}")
        if amount < 0:
            raise ValidationError(f"Amount cannot be negative: {amount}")

    return tuple(normalize_address(r) for r in recipients), tuple(amounts)


def _aux_bytes(aux_data: bytes) -> bytes:
    if not isinstance(aux_data, (bytes, bytearray)):
        raise ValidationError("Auxiliary data must be bytes")
    return bytes(aux_data)


class BridgeGateway:
    """Custodian for bridged value.

    Deposits validate, take custody and hand an encoded record to the
    ingestion queue. Settlements, accepted only from the configured
    authority, release custody to an L1 recipient.

    Each call runs in one ledger unit of work and in the order checks,
    custody effects, then the queue. Events are published only after the
    unit of work commits. Any nested call into the gateway made by a
    collaborator while a call is in flight raises ReentrancyError.
    """

    def __init__(
        self,
        config: GatewayConfig,
        ledger: HostLedger,
        queue: IngestionQueue,
        event_log: Optional[EventLog] = None
    ):
        """Initialize the gateway.

        Args:
            config: Gateway configuration (own address, settlement authority)
            ledger: Host ledger holding custodied balances
            queue: Ingestion queue for deposit records
            event_log: Event log to publish to (a private one if omitted)
        """
        self.config = config
        self.address = normalize_address(config.bridge_address)
        self.settlement_authority = normalize_address(config.settlement_authority)
        self.ledger = ledger
        self.queue = queue
        self.event_log = event_log or EventLog()
        self._active_task: Optional[asyncio.Task] = None

        logger.info(
            f"Initialized bridge gateway at {self.address[:10]}... "
            f"(authority {self.settlement_authority[:10]}...)"
        )

    @asynccontextmanager
    async def _serialized(self):
        """Run one call at a time under the host ledger lock.

        Independent callers wait their turn. A collaborator calling back in
        from the task that holds the lock fails with ReentrancyError.
        """
        task = asyncio.current_task()
        if task is not None and self._active_task is task:
            raise ReentrancyError("Bridge gateway re-entered during an in-flight call")
        async with self.ledger.lock:
            self._active_task = task
            try:
                yield
            finally:
                self._active_task = None

    # -- Deposit Path ------------------------------------------------------

    async def deposit_native(
        self,
        ctx: CallContext,
        recipients: Sequence[str],
        amounts: Sequence[int],
        aux_data: bytes = b""
    ) -> Identifier:
        """Deposit the native coin attached to the call for L2 recipients.

        Args:
            ctx: Caller and attached value
            recipients: L2 recipients, recipients[i] receives amounts[i]
            amounts: Amounts in the smallest unit
            aux_data: Opaque payload for L2

        Returns:
            Identifier assigned by the ingestion queue

        Raises:
            ValidationError: If the request is malformed
            ArithmeticOverflowError: If the amounts overflow uint256
            InsufficientFundingError: If the attached value is below the total
        """
        async with self._serialized():
            recipients, amounts = validate_request(recipients, amounts)
            aux_data = _aux_bytes(aux_data)
            total = checked_sum(amounts)
            if ctx.value < total:
                raise InsufficientFundingError(required=total, provided=ctx.value)

            record = NativeDepositRecord(
                recipients=recipients, amounts=amounts, aux_data=aux_data
            )

            async with self.ledger.unit_of_work():
                await self.ledger.transfer_native(ctx.caller, self.address, ctx.value)
                await self._handle_excess(ctx, ctx.value - total)
                message_id = await self.queue.submit(encode_deposit_record(record))

            logger.info(
                f"Native deposit of {total} from {ctx.caller[:10]}... "
                f"to {len(recipients)} recipients queued as {message_id[:18]}..."
            )
            await self._publish([
                NativeDeposited(
                    recipients=recipients,
                    amounts=amounts,
                    aux_data=aux_data,
                    message_id=message_id,
                )
            ])
            return message_id

    async def deposit_token(
        self,
        ctx: CallContext,
        token: str,
        sender: str,
        recipients: Sequence[str],
        amounts: Sequence[int],
        aux_data: bytes = b""
    ) -> Identifier:
        """Pull tokens from `sender` into custody for L2 recipients.

        `sender` must be the caller, and the gateway must hold an allowance
        from it covering the total.

        Returns:
            Identifier assigned by the ingestion queue

        Raises:
            ValidationError: If the request is malformed or carries native value
            AuthorizationError: If the caller is not `sender`
            ArithmeticOverflowError: If the amounts overflow uint256
            TransferFailure: If the pull transfer fails or returns anything but True
        """
        async with self._serialized():
            if ctx.value:
                raise ValidationError("Token deposits do not accept native value")
            token = normalize_address(token)
            sender = normalize_address(sender)
            if sender != ctx.caller:
                raise AuthorizationError(
                    f"Only {sender} may authorize a pull of its tokens, not {ctx.caller}"
                )
            recipients, amounts = validate_request(recipients, amounts)
            aux_data = _aux_bytes(aux_data)
            total = checked_sum(amounts)
            token_ledger = self._token_ledger(token, total)

            async with self.ledger.unit_of_work():
                await self._require_transfer(
                    token_ledger.transfer_from(self.address, sender, self.address, total),
                    f"Pull of {total} {token_ledger.symbol} from {sender}",
                    token,
                    total,
                )
                record = TokenDepositRecord(
                    token=token,
                    sender=sender,
                    recipients=recipients,
                    amounts=amounts,
                    aux_data=aux_data,
                )
                message_id = await self.queue.submit(encode_deposit_record(record))

            logger.info(
                f"Token deposit of {total} {token_ledger.symbol} from {sender[:10]}... "
                f"to {len(recipients)} recipients queued as {message_id[:18]}..."
            )
            await self._publish([
                TokenDeposited(
                    token=token,
                    sender=sender,
                    recipients=recipients,
                    amounts=amounts,
                    aux_data=aux_data,
                    message_id=message_id,
                )
            ])
            return message_id

    # -- Withdrawal Path ---------------------------------------------------

    async def settle(self, ctx: CallContext, payload: bytes) -> bool:
        """Release custodied funds as instructed by the settlement authority.

        Args:
            ctx: Caller, must be the configured settlement authority
            payload: Encoded settlement record

        Returns:
            True once funds moved, False for an unknown operation tag

        Raises:
            AuthorizationError: If the caller is not the settlement authority
            TransferFailure: If the recipient or token ledger rejects the payment
        """
        async with self._serialized():
            if ctx.caller != self.settlement_authority:
                raise AuthorizationError(
                    f"Only the settlement authority may settle, not {ctx.caller}"
                )
            if ctx.value:
                raise ValidationError("Settlements do not accept native value")

            record = decode_settlement_record(payload)
            operation = record.operation
            if operation is None:
                logger.warning(f"Ignoring settlement with unknown operation tag {record.tag}")
                return False

            async with self.ledger.unit_of_work():
                if operation is OperationTag.NATIVE_COIN:
                    await self.ledger.transfer_native(
                        self.address, record.recipient, record.amount
                    )
                    event: BridgeEvent = NativeWithdrawn(
                        recipient=record.recipient, amount=record.amount
                    )
                else:
                    token_ledger = self._token_ledger(record.token, record.amount)
                    await self._require_transfer(
                        token_ledger.transfer(self.address, record.recipient, record.amount),
                        f"Push of {record.amount} {token_ledger.symbol} to {record.recipient}",
                        token_ledger.address,
                        record.amount,
                    )
                    event = TokenWithdrawn(
                        token=token_ledger.address,
                        recipient=record.recipient,
                        amount=record.amount,
                    )

            logger.info(
                f"Settled {operation.name} withdrawal of {record.amount} "
                f"to {record.recipient[:10]}..."
            )
            await self._publish([event])
            return True

    # -- Helpers -----------------------------------------------------------

    async def _handle_excess(self, ctx: CallContext, excess: int) -> None:
        if not excess:
            return
        if self.config.refund_excess_value:
            await self.ledger.transfer_native(self.address, ctx.caller, excess)
            logger.info(f"Refunded excess {excess} to {ctx.caller[:10]}...")
        else:
            logger.warning(
                f"Retaining excess native value {excess} from {ctx.caller[:10]}... "
                f"(refund_excess_value is off)"
            )

    def _token_ledger(self, token: Optional[Address], amount: int) -> TokenLedger:
        token_ledger = self.ledger.get_token(token) if token else None
        if token_ledger is None:
            raise TransferFailure(f"No token ledger at {token}", token=token or "", amount=amount)
        return token_ledger

    @staticmethod
    async def _require_transfer(
        call: Awaitable[bool],
        description: str,
        token: str,
        amount: int
    ) -> None:
        """Await a token transfer; anything other than a literal True fails it."""
        try:
            result = await call
        except Exception as e:
            raise TransferFailure(f"{description} failed: {e}", token=token, amount=amount) from e

        if result is not True:
            raise TransferFailure(
                f"{description} returned {result!r}", token=token, amount=amount
            )

    async def _publish(self, events: List[BridgeEvent]) -> None:
        await self.event_log.publish(events)
