"""
Tests for the FastAPI layer:
  - deposit / settlement endpoints and error status mapping
  - balances and event history
  - websocket heartbeat and event broadcast
"""

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.routes import websocket
from codec import encode_settlement_record
from config import GatewayConfig
from core.types import OperationTag, SettlementRecord, normalize_address
from events import NativeWithdrawn

from conftest import ALICE, AUTHORITY, BOB, BRIDGE, CAROL, STARTING_BALANCE, TOKEN


def _payload(tag, recipient, amount, token=None) -> str:
    record = SettlementRecord(
        tag=tag,
        token=normalize_address(token) if token else None,
        recipient=normalize_address(recipient),
        amount=amount,
    )
    return "0x" + encode_settlement_record(record).hex()


@pytest.fixture
def client():
    config = GatewayConfig(
        bridge_address=BRIDGE,
        settlement_authority=AUTHORITY,
        database_path=":memory:",
        genesis_balances={ALICE: STARTING_BALANCE},
    )
    with TestClient(create_app(config)) as client:
        yield client


def _as(address):
    return {"X-Caller-Address": address}


class TestHealth:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "online"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestDeposits:
    def test_native_deposit(self, client):
        response = client.post(
            "/api/deposits/native",
            json={"recipients": [BOB, CAROL], "amounts": [10, 20], "value": 30, "aux_data": "0xbeef"},
            headers=_as(ALICE),
        )
        assert response.status_code == 200
        message_id = response.json()["message_id"]

        event = client.get(f"/api/deposits/{message_id}").json()
        assert event["event"] == "NativeDeposited"
        assert event["amounts"] == ["10", "20"]
        assert event["aux_data"] == "0xbeef"

        balance = client.get(f"/api/balances/{BRIDGE}").json()
        assert balance["native"] == "30"

    def test_insufficient_funding(self, client):
        response = client.post(
            "/api/deposits/native",
            json={"recipients": [BOB, CAROL], "amounts": [10, 20], "value": 29},
            headers=_as(ALICE),
        )
        assert response.status_code == 422
        assert "Insufficient funding" in response.json()["detail"]
        assert client.get(f"/api/balances/{BRIDGE}").json()["native"] == "0"

    def test_length_mismatch(self, client):
        response = client.post(
            "/api/deposits/native",
            json={"recipients": [BOB], "amounts": [10, 20], "value": 30},
            headers=_as(ALICE),
        )
        assert response.status_code == 400

    def test_missing_caller_header(self, client):
        response = client.post(
            "/api/deposits/native",
            json={"recipients": [BOB], "amounts": [1], "value": 1},
        )
        assert response.status_code == 422

    def test_bad_aux_hex(self, client):
        response = client.post(
            "/api/deposits/native",
            json={"recipients": [BOB], "amounts": [1], "value": 1, "aux_data": "0xzz"},
            headers=_as(ALICE),
        )
        assert response.status_code == 422

    def test_token_deposit(self, client):
        token = client.app.state.service.ledger.deploy_token(TOKEN, "TKN")
        token.mint(ALICE, 100)
        token.approve(ALICE, BRIDGE, 100)

        response = client.post(
            "/api/deposits/token",
            json={"token": TOKEN, "sender": ALICE, "recipients": [BOB], "amounts": [60]},
            headers=_as(ALICE),
        )
        assert response.status_code == 200
        assert client.get(f"/api/balances/{BRIDGE}").json()["tokens"] == {"TKN": "60"}

    def test_token_deposit_without_allowance(self, client):
        client.app.state.service.ledger.deploy_token(TOKEN, "TKN")

        response = client.post(
            "/api/deposits/token",
            json={"token": TOKEN, "sender": ALICE, "recipients": [BOB], "amounts": [1]},
            headers=_as(ALICE),
        )
        assert response.status_code == 422

    def test_token_deposit_for_someone_else(self, client):
        token = client.app.state.service.ledger.deploy_token(TOKEN, "TKN")
        token.mint(ALICE, 100)
        token.approve(ALICE, BRIDGE, 100)

        response = client.post(
            "/api/deposits/token",
            json={"token": TOKEN, "sender": ALICE, "recipients": [BOB], "amounts": [60]},
            headers=_as(BOB),
        )
        assert response.status_code == 403
        assert token.balance_of(ALICE) == 100

    def test_unknown_deposit(self, client):
        assert client.get("/api/deposits/0x1234").status_code == 404


class TestSettlements:
    def _deposit(self, client, value=30):
        client.post(
            "/api/deposits/native",
            json={"recipients": [BOB], "amounts": [value], "value": value},
            headers=_as(ALICE),
        )

    def test_authority_settles(self, client):
        self._deposit(client)

        response = client.post(
            "/api/settlements",
            json={"payload": _payload(OperationTag.NATIVE_COIN, CAROL, 25)},
            headers=_as(AUTHORITY),
        )
        assert response.status_code == 200
        assert response.json() == {"accepted": True}
        assert client.get(f"/api/balances/{CAROL}").json()["native"] == "25"

        events = client.get(f"/api/events/{CAROL}").json()["events"]
        assert events[0]["event"] == "NativeWithdrawn"

    def test_other_caller_forbidden(self, client):
        self._deposit(client)

        response = client.post(
            "/api/settlements",
            json={"payload": _payload(OperationTag.NATIVE_COIN, CAROL, 25)},
            headers=_as(ALICE),
        )
        assert response.status_code == 403
        assert client.get(f"/api/balances/{BRIDGE}").json()["native"] == "30"

    def test_unknown_tag(self, client):
        response = client.post(
            "/api/settlements",
            json={"payload": _payload(5, CAROL, 25)},
            headers=_as(AUTHORITY),
        )
        assert response.json() == {"accepted": False}

    def test_transfer_failure(self, client):
        response = client.post(
            "/api/settlements",
            json={"payload": _payload(OperationTag.NATIVE_COIN, CAROL, 25)},
            headers=_as(AUTHORITY),
        )
        assert response.status_code == 422

    def test_malformed_payload(self, client):
        response = client.post(
            "/api/settlements", json={"payload": "0x0102"}, headers=_as(AUTHORITY)
        )
        assert response.status_code == 400


class TestEvents:
    def test_history_lists_newest_first(self, client):
        for value in (1, 2):
            client.post(
                "/api/deposits/native",
                json={"recipients": [BOB], "amounts": [value], "value": value},
                headers=_as(ALICE),
            )

        events = client.get("/api/events").json()["events"]
        assert [e["amounts"] for e in events] == [["2"], ["1"]]

    def test_bad_balance_address(self, client):
        assert client.get("/api/balances/nope").status_code == 400


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(message)


@pytest.fixture
def sockets():
    connections = []

    def add(address=None, fail=False):
        socket = FakeSocket(fail)
        websocket.manager.filters[socket] = address
        connections.append(socket)
        return socket

    yield add
    for socket in connections:
        websocket.manager.filters.pop(socket, None)


class TestWebSocket:
    def test_heartbeat(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            assert ws.receive_json()["type"] == "pong"

    def test_subscribe(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "subscribe", "address": BOB.lower()})
            assert ws.receive_json() == {"type": "subscribed", "address": normalize_address(BOB)}

            ws.send_json({"type": "subscribe", "address": "nope"})
            assert ws.receive_json()["type"] == "error"

    async def test_broadcast_event(self, sockets):
        everything = sockets()
        carol_only = sockets(normalize_address(CAROL))
        bob_only = sockets(normalize_address(BOB))

        await websocket.broadcast_event(
            NativeWithdrawn(recipient=normalize_address(CAROL), amount=3)
        )

        assert everything.sent[0]["type"] == "bridge_event"
        assert carol_only.sent[0]["event"]["amount"] == "3"
        assert bob_only.sent == []

    async def test_failed_client_is_dropped(self, sockets):
        broken = sockets(fail=True)

        await websocket.broadcast_event(
            NativeWithdrawn(recipient=normalize_address(CAROL), amount=3)
        )

        assert broken not in websocket.manager.filters
