"""Entry point to start the light bridge.

Usage:
    uv run python scripts/run_bridge.py                  # Use ~/.smarthome/iot/config.json
    uv run python scripts/run_bridge.py --config x.json  # Use another config file
    uv run python scripts/run_bridge.py --history        # Log state history to DynamoDB

The bridge connects to AWS IoT Core and waits for commands on:
    smarthome/{device_id}/commands

Publishes on:
    smarthome/{device_id}/messages
    smarthome/{device_id}/status
    smarthome/{device_id}/warnings
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from lightsync.bridge.config import load_config
from lightsync.bridge.iot_bridge import IoTBridge
from lightsync.logging import DynamoStateLogger

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SMARTHOME_DIR = Path.home() / ".smarthome"
ENV_FILE = SMARTHOME_DIR / ".env"


async def main(args: argparse.Namespace) -> int:
    """Main entry point."""
    # Environment overrides (IOT_ENDPOINT, LIGHT_NAME, AWS profile, ...)
    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    try:
        config.validate()
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    if args.history:
        config.light.log_state_history = True
    state_logger = DynamoStateLogger(args.profile) if config.light.log_state_history else None

    bridge = IoTBridge(config, state_logger=state_logger)

    # Set up graceful shutdown
    shutdown_event = asyncio.Event()

    def handle_signal():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    logger.info("Starting light bridge...")
    if not await bridge.start():
        logger.error("Failed to start bridge")
        return 1

    logger.info(f"Bridge running. Light: {config.light.name} ({config.device_id})")
    logger.info(f"Listening on: {config.command_topic}")
    logger.info("Press Ctrl+C to stop")

    await shutdown_event.wait()

    logger.info("Stopping bridge...")
    await bridge.stop()
    logger.info("Bridge stopped")

    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the light bridge for AWS IoT Core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to IoT config file (default: ~/.smarthome/iot/config.json)",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Log every state snapshot to DynamoDB",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="AWS profile for the DynamoDB state history",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    sys.exit(asyncio.run(main(args)))
