"""Configuration management for the bridge gateway."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import toml
from eth_utils import is_address

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable gateway configuration, fixed at startup."""

    # Identities
    bridge_address: str
    settlement_authority: str

    # Ingestion queue (empty means the in-process queue)
    queue_rpc_url: str = ""

    # Excess native value on deposits is retained unless this is set
    refund_excess_value: bool = False

    # Event persistence
    database_path: str = "bridge-events.db"

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Native balances seeded into the in-process host ledger
    genesis_balances: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_file(cls, config_path: Path) -> "GatewayConfig":
        """Load configuration from TOML file.

        Args:
            config_path: Path to configuration file

        Returns:
            GatewayConfig instance

        Raises:
            ConfigurationError: If config is invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading configuration from {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = toml.load(f)
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigurationError(f"Failed to parse configuration file: {e}") from e

        try:
            return cls(
                bridge_address=config_data["bridge_address"],
                settlement_authority=config_data["settlement_authority"],
                queue_rpc_url=config_data.get("queue_rpc_url", ""),
                refund_excess_value=bool(config_data.get("refund_excess_value", False)),
                database_path=config_data.get("database_path", "bridge-events.db"),
                api_host=config_data.get("api_host", "0.0.0.0"),
                api_port=int(config_data.get("api_port", 8000)),
                genesis_balances={
                    address: int(amount)
                    for address, amount in config_data.get("genesis", {}).items()
                },
            )
        except KeyError as e:
            raise ConfigurationError(f"Missing required configuration key: {e}") from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """Load configuration from environment variables."""
        try:
            return cls(
                bridge_address=os.getenv("BRIDGE_ADDRESS", ""),
                settlement_authority=os.getenv("SETTLEMENT_AUTHORITY", ""),
                queue_rpc_url=os.getenv("QUEUE_RPC_URL", ""),
                refund_excess_value=_env_flag("REFUND_EXCESS_VALUE"),
                database_path=os.getenv("DATABASE_PATH", "bridge-events.db"),
                api_host=os.getenv("API_HOST", "0.0.0.0"),
                api_port=int(os.getenv("API_PORT", "8000")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.bridge_address:
            raise ConfigurationError("bridge_address is required")
        if not self.settlement_authority:
            raise ConfigurationError("settlement_authority is required")

        for name in ("bridge_address", "settlement_authority"):
            if not is_address(getattr(self, name)):
                raise ConfigurationError(f"{name} is not a valid address")

        if self.bridge_address.lower() == self.settlement_authority.lower():
            raise ConfigurationError("settlement_authority must differ from bridge_address")

        if not 0 < self.api_port < 65536:
            raise ConfigurationError(f"api_port out of range: {self.api_port}")

        for address, amount in self.genesis_balances.items():
            if not is_address(address):
                raise ConfigurationError(f"Invalid genesis address: {address}")
            if amount < 0:
                raise ConfigurationError(f"Negative genesis balance for {address}")

        logger.info("Configuration validated successfully")
