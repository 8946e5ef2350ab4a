"""In-process L1 host ledger holding native and token balances."""

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from core.errors import TransferFailure, ValidationError
from core.types import Address, normalize_address

logger = logging.getLogger(__name__)

# hook(sender, amount) -> False to reject, may also raise
ReceiveHook = Callable[[Address, int], Union[Optional[bool], Awaitable[Optional[bool]]]]
# hook(from_addr, to_addr, amount), runs before balances move
TransferHook = Callable[[Address, Address, int], Union[None, Awaitable[None]]]


async def _invoke(hook: Callable[..., Any], *args: Any) -> Any:
    if inspect.iscoroutinefunction(hook):
        return await hook(*args)
    return hook(*args)


class TokenLedger:
    """Fungible token with balances and allowances.

    Transfers return False when the balance or allowance is too small,
    the way most deployed tokens report failure.
    """

    def __init__(
        self,
        address: str,
        symbol: str,
        before_transfer: Optional[TransferHook] = None
    ):
        """Initialize the token.

        Args:
            address: Token contract address
            symbol: Ticker used in logs
            before_transfer: Optional callback run before any balance moves
        """
        self.address = normalize_address(address)
        self.symbol = symbol
        self.before_transfer = before_transfer
        self.total_supply = 0
        self._balances: Dict[Address, int] = {}
        self._allowances: Dict[Address, Dict[Address, int]] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(normalize_address(owner), {}).get(
            normalize_address(spender), 0
        )

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise ValidationError("Approval amount must be non-negative")
        owner, spender = normalize_address(owner), normalize_address(spender)
        self._allowances.setdefault(owner, {})[spender] = amount
        return True

    def mint(self, to: str, amount: int) -> None:
        if amount < 0:
            raise ValidationError("Mint amount must be non-negative")
        to = normalize_address(to)
        self._balances[to] = self._balances.get(to, 0) + amount
        self.total_supply += amount

    async def transfer(self, sender: str, to: str, amount: int) -> bool:
        sender, to = normalize_address(sender), normalize_address(to)
        return await self._move(sender, to, amount)

    async def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        spender, owner, to = (
            normalize_address(spender), normalize_address(owner), normalize_address(to)
        )
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            logger.debug(f"{self.symbol}: allowance {allowed} below {amount} for {spender[:10]}...")
            return False

        if not await self._move(owner, to, amount):
            return False

        self._allowances[owner][spender] = allowed - amount
        return True

    async def _move(self, sender: Address, to: Address, amount: int) -> bool:
        if amount < 0:
            return False
        if self.before_transfer:
            await _invoke(self.before_transfer, sender, to, amount)

        balance = self._balances.get(sender, 0)
        if balance < amount:
            logger.debug(f"{self.symbol}: balance {balance} below {amount} for {sender[:10]}...")
            return False

        self._balances[sender] = balance - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        return True

    def _snapshot(self) -> tuple:
        return (
            self.total_supply,
            dict(self._balances),
            {owner: dict(spenders) for owner, spenders in self._allowances.items()},
        )

    def _restore(self, snapshot: tuple) -> None:
        self.total_supply, self._balances, self._allowances = snapshot


@dataclass
class LedgerSnapshot:
    """Balances captured at the start of a unit of work."""
    native: Dict[Address, int]
    tokens: Dict[Address, tuple]


class HostLedger:
    """The L1 host: native coin balances, deployed tokens and receive hooks.

    Calls into the gateway are serialized on `lock` and each runs inside
    `unit_of_work()`, so a failure anywhere restores all balances touched
    during the call. Readers that must not see an in-flight call take `lock`
    too.
    """

    def __init__(self):
        self.lock = asyncio.Lock()
        self._native: Dict[Address, int] = {}
        self._tokens: Dict[Address, TokenLedger] = {}
        self._receivers: Dict[Address, ReceiveHook] = {}
        logger.info("Initialized host ledger")

    def native_balance(self, account: str) -> int:
        return self._native.get(normalize_address(account), 0)

    def credit_native(self, account: str, amount: int) -> None:
        """Mint native coin (genesis allocations, tests)."""
        if amount < 0:
            raise ValidationError("Credit amount must be non-negative")
        account = normalize_address(account)
        self._native[account] = self._native.get(account, 0) + amount

    def register_token(self, token: TokenLedger) -> TokenLedger:
        self._tokens[token.address] = token
        logger.info(f"Registered token {token.symbol} at {token.address[:10]}...")
        return token

    def deploy_token(self, address: str, symbol: str) -> TokenLedger:
        return self.register_token(TokenLedger(address, symbol))

    def get_token(self, address: str) -> Optional[TokenLedger]:
        return self._tokens.get(normalize_address(address))

    def tokens(self) -> List[TokenLedger]:
        return list(self._tokens.values())

    def register_receiver(self, account: str, hook: ReceiveHook) -> None:
        """Attach code to an account that runs when it receives native coin."""
        self._receivers[normalize_address(account)] = hook

    async def transfer_native(self, sender: str, recipient: str, amount: int) -> None:
        """Move native coin, running the recipient's receive hook.

        Raises:
            TransferFailure: If the sender is short or the recipient rejects
        """
        sender, recipient = normalize_address(sender), normalize_address(recipient)
        if amount < 0:
            raise ValidationError("Transfer amount must be non-negative")

        async with self.unit_of_work():
            balance = self._native.get(sender, 0)
            if balance < amount:
                raise TransferFailure(
                    f"Native balance of {sender} is {balance}, need {amount}",
                    amount=amount
                )

            self._native[sender] = balance - amount
            self._native[recipient] = self._native.get(recipient, 0) + amount

            hook = self._receivers.get(recipient)
            if hook is None:
                return

            try:
                accepted = await _invoke(hook, sender, amount)
            except Exception as e:
                raise TransferFailure(
                    f"Recipient {recipient} rejected native payment: {e}",
                    amount=amount
                ) from e

            if accepted is False:
                raise TransferFailure(
                    f"Recipient {recipient} rejected native payment",
                    amount=amount
                )

    @asynccontextmanager
    async def unit_of_work(self):
        """Snapshot all balances and restore them if the block raises."""
        snapshot = LedgerSnapshot(
            native=dict(self._native),
            tokens={addr: token._snapshot() for addr, token in self._tokens.items()},
        )
        try:
            yield self
        except BaseException:
            self._native = snapshot.native
            for addr, token in self._tokens.items():
                if addr in snapshot.tokens:
                    token._restore(snapshot.tokens[addr])
            raise
