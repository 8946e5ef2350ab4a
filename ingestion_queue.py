"""Ingestion queue clients that accept encoded records for L2."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
from eth_abi import encode
from eth_utils import keccak, to_hex

from core.errors import QueueError
from core.types import Identifier

logger = logging.getLogger(__name__)


def message_id(index: int, record: bytes) -> Identifier:
    """Content-derived identifier: keccak256(abi.encode(index, record))."""
    return Identifier(to_hex(keccak(encode(["uint256", "bytes"], [index, record]))))


@dataclass
class QueuedMessage:
    """A record accepted by the in-process queue."""
    index: int
    identifier: Identifier
    record: bytes


class InMemoryIngestionQueue:
    """Ordered in-process queue, used by the service and the tests."""

    def __init__(self):
        self.messages: List[QueuedMessage] = []

    async def submit(self, record: bytes) -> Identifier:
        """Append a record and return its identifier."""
        index = len(self.messages)
        identifier = message_id(index, record)
        self.messages.append(QueuedMessage(index=index, identifier=identifier, record=record))
        logger.debug(f"Queued message #{index} {identifier[:18]}... ({len(record)} bytes)")
        return identifier

    def get(self, identifier: str) -> Optional[QueuedMessage]:
        for message in self.messages:
            if message.identifier == identifier:
                return message
        return None

    def __len__(self) -> int:
        return len(self.messages)


class HttpIngestionQueue:
    """JSON-RPC client for a remote ingestion queue."""

    def __init__(self, rpc_url: str, timeout: int = 30):
        """Create a new queue client.

        Args:
            rpc_url: URL of the queue's JSON-RPC endpoint
            timeout: Total request timeout in seconds
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        logger.info(f"Initializing ingestion queue client at {rpc_url}")

    async def start(self) -> None:
        """Open the HTTP session."""
        if self._session:
            return
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("Ingestion queue client stopped")

    async def submit(self, record: bytes) -> Identifier:
        """Submit a record and return the identifier the queue assigned."""
        result = await self._rpc_call("queue_submit", {"record": to_hex(record)})
        identifier = result.get("id") if isinstance(result, dict) else result
        if not identifier:
            raise QueueError("Missing message id in response", method="queue_submit")
        return Identifier(identifier)

    async def _rpc_call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a JSON-RPC call to the queue.

        Raises:
            QueueError: If the session is missing, the request fails or times
                out, or the response is not a JSON-RPC object or carries an error
        """
        if not self._session:
            raise QueueError("Session not initialized - call start() first", method=method)

        request_body = {
            "jsonrpc": "2.0",
            "id": "0",
            "method": method,
        }

        if params is not None:
            request_body["params"] = params

        try:
            async with self._session.post(self.rpc_url, json=request_body) as response:
                response_data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise QueueError("Failed to send RPC request", method=method, details=str(e)) from e
        except ValueError as e:
            raise QueueError("Invalid JSON in RPC response", method=method, details=str(e)) from e

        if not isinstance(response_data, dict):
            raise QueueError("Malformed RPC response", method=method, details=repr(response_data))

        if "error" in response_data and response_data["error"]:
            error = response_data["error"]
            raise QueueError(str(error), method=method, details=str(error))

        if "result" not in response_data:
            raise QueueError("Missing result in RPC response", method=method)

        return response_data["result"]

    async def __aenter__(self) -> "HttpIngestionQueue":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
