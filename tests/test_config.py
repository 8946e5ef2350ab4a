"""
Tests for GatewayConfig loading and validation.
"""

import dataclasses

import pytest

from config import GatewayConfig
from core.errors import ConfigurationError

from conftest import ALICE, AUTHORITY, BRIDGE


def _write(tmp_path, text):
    path = tmp_path / "config.toml"
    path.write_text(text)
    return path


class TestFromFile:
    def test_full_file(self, tmp_path):
        path = _write(tmp_path, f"""
bridge_address = "{BRIDGE}"
settlement_authority = "{AUTHORITY}"
queue_rpc_url = "http://queue:9000/rpc"
refund_excess_value = true
api_port = 9100

[genesis]
"{ALICE}" = 500
""")
        config = GatewayConfig.from_file(path)

        assert config.bridge_address == BRIDGE
        assert config.queue_rpc_url == "http://queue:9000/rpc"
        assert config.refund_excess_value is True
        assert config.api_port == 9100
        assert config.genesis_balances == {ALICE: 500}
        config.validate()

    def test_defaults(self, tmp_path):
        path = _write(tmp_path, f'bridge_address = "{BRIDGE}"\nsettlement_authority = "{AUTHORITY}"\n')
        config = GatewayConfig.from_file(path)

        assert config.queue_rpc_url == ""
        assert config.refund_excess_value is False
        assert config.genesis_balances == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            GatewayConfig.from_file(tmp_path / "nope.toml")

    def test_missing_key(self, tmp_path):
        path = _write(tmp_path, f'bridge_address = "{BRIDGE}"\n')
        with pytest.raises(ConfigurationError, match="settlement_authority"):
            GatewayConfig.from_file(path)

    def test_unparseable(self, tmp_path):
        path = _write(tmp_path, "bridge_address = \n")
        with pytest.raises(ConfigurationError, match="parse"):
            GatewayConfig.from_file(path)


class TestFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_ADDRESS", BRIDGE)
        monkeypatch.setenv("SETTLEMENT_AUTHORITY", AUTHORITY)
        monkeypatch.setenv("REFUND_EXCESS_VALUE", "yes")
        monkeypatch.setenv("API_PORT", "8123")

        config = GatewayConfig.from_env()

        assert config.settlement_authority == AUTHORITY
        assert config.refund_excess_value is True
        assert config.api_port == 8123

    def test_bad_port(self, monkeypatch):
        monkeypatch.setenv("API_PORT", "eighty")
        with pytest.raises(ConfigurationError):
            GatewayConfig.from_env()


class TestValidate:
    def test_is_immutable(self, config):
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.settlement_authority = ALICE

    @pytest.mark.parametrize("changes,message", [
        ({"bridge_address": ""}, "bridge_address is required"),
        ({"settlement_authority": ""}, "settlement_authority is required"),
        ({"settlement_authority": "0x1234"}, "not a valid address"),
        ({"settlement_authority": BRIDGE}, "must differ"),
        ({"api_port": 0}, "api_port"),
        ({"genesis_balances": {"bogus": 1}}, "genesis address"),
        ({"genesis_balances": {ALICE: -1}}, "Negative genesis"),
    ])
    def test_rejects(self, config, changes, message):
        with pytest.raises(ConfigurationError, match=message):
            dataclasses.replace(config, **changes).validate()
