"""Event persistence for the bridge gateway."""

import asyncio
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from events import BridgeEvent, event_addresses, event_name, event_to_dict

logger = logging.getLogger(__name__)


class EventStore:
    """SQLite store of published bridge events."""

    def __init__(self, db_path: str = "bridge-events.db"):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file (":memory:" for tests)
        """
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None
        logger.info(f"Initialized event store at {db_path}")

    async def start(self) -> None:
        """Open the connection and create tables."""
        # Run blocking DB operations in executor
        await asyncio.get_running_loop().run_in_executor(None, self._init_db)
        logger.info("Event store started")

    def _init_db(self) -> None:
        """Internal: Initialize database connection and schema."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS bridge_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                message_id TEXT,
                payload TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS event_addresses (
                event_id INTEGER NOT NULL REFERENCES bridge_events(id),
                address TEXT NOT NULL,
                PRIMARY KEY (event_id, address)
            );

            CREATE INDEX IF NOT EXISTS idx_event_address
                ON event_addresses(address);
            CREATE INDEX IF NOT EXISTS idx_message_id
                ON bridge_events(message_id);
        """)
        self.conn.commit()

    async def stop(self) -> None:
        """Close database connection."""
        if self.conn:
            await asyncio.get_running_loop().run_in_executor(None, self.conn.close)
            self.conn = None
        logger.info("Event store stopped")

    async def record_event(self, event: BridgeEvent) -> int:
        """Persist an event; usable directly as an EventLog subscriber.

        Returns:
            Row id of the stored event
        """
        payload = event_to_dict(event)
        addresses = sorted({a.lower() for a in event_addresses(event)})

        def _save():
            cursor = self.conn.execute(
                """INSERT INTO bridge_events (name, message_id, payload)
                   VALUES (?, ?, ?)""",
                (event_name(event), payload.get("message_id"), json.dumps(payload))
            )
            event_id = cursor.lastrowid
            self.conn.executemany(
                """INSERT OR IGNORE INTO event_addresses (event_id, address)
                   VALUES (?, ?)""",
                [(event_id, address) for address in addresses]
            )
            self.conn.commit()
            return event_id

        event_id = await asyncio.get_running_loop().run_in_executor(None, _save)
        logger.debug(f"Stored {event_name(event)} as event #{event_id}")
        return event_id

    async def get_events(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent events first.

        Args:
            limit: Maximum number of events

        Returns:
            Event payloads
        """
        def _get():
            cursor = self.conn.execute(
                "SELECT payload FROM bridge_events ORDER BY id DESC LIMIT ?",
                (limit,)
            )
            return [json.loads(row["payload"]) for row in cursor.fetchall()]

        return await asyncio.get_running_loop().run_in_executor(None, _get)

    async def get_events_for_address(self, address: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Events naming an address as token, sender or recipient.

        Args:
            address: Address in any letter case
            limit: Maximum number of events

        Returns:
            Event payloads, most recent first
        """
        def _get():
            cursor = self.conn.execute(
                """SELECT e.payload FROM bridge_events e
                   JOIN event_addresses a ON a.event_id = e.id
                   WHERE a.address = ?
                   ORDER BY e.id DESC LIMIT ?""",
                (address.lower(), limit)
            )
            return [json.loads(row["payload"]) for row in cursor.fetchall()]

        return await asyncio.get_running_loop().run_in_executor(None, _get)

    async def get_event_by_message_id(self, message_id: str) -> Optional[Dict[str, Any]]:
        """Deposit event for a queue identifier, or None."""
        def _get():
            cursor = self.conn.execute(
                "SELECT payload FROM bridge_events WHERE message_id = ?",
                (message_id,)
            )
            row = cursor.fetchone()
            return json.loads(row["payload"]) if row else None

        return await asyncio.get_running_loop().run_in_executor(None, _get)
