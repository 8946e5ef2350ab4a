"""Main entry point for the L2 bridge gateway."""

import logging
import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from api.main import create_app
from config import GatewayConfig
from core.errors import ConfigurationError


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler("bridge-gateway.log"),
        ],
    )


def load_config() -> GatewayConfig:
    """Load configuration from CONFIG_PATH if set, else from the environment.

    Raises:
        ConfigurationError: If the configuration is missing or invalid
    """
    config_path = os.getenv("CONFIG_PATH")
    if config_path:
        config = GatewayConfig.from_file(Path(config_path))
    else:
        config = GatewayConfig.from_env()
    config.validate()
    return config


def main() -> None:
    """Main entry point."""
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    logger = logging.getLogger(__name__)
    logger.info("Starting L2 bridge gateway...")

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    uvicorn.run(
        create_app(config),
        host=config.api_host,
        port=config.api_port,
        log_level=os.getenv("LOG_LEVEL", "INFO").lower()
    )


if __name__ == "__main__":
    main()
