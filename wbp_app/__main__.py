"""Run the background controller until interrupted."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

import structlog

from .app import GateApplication
from .config.loader import ConfigLoader
from .errors import ConfigurationError, StoreUnavailableError
from .logging.config import configure_logging

logger = structlog.get_logger("wbp_app")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wbp_app",
        description="Work Before Play background controller"
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory containing settings.yaml (default: the repository config/ directory)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines",
    )
    return parser.parse_args(argv)


async def run(app: GateApplication) -> None:
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    await app.start()
    logger.info("Waiting for exit signal")
    await shutdown.wait()
    await app.stop()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    overrides: dict = {}
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level
    if args.json_logs:
        overrides.setdefault("logging", {})["format_json"] = True

    try:
        config = ConfigLoader.create(args.config_dir).build_config(overrides)
    except ConfigurationError as e:
        configure_logging()
        for error in e.errors:
            logger.error("Invalid configuration", field=error.field, message=error.message)
        logger.error("Refusing to start", error=str(e))
        return 2

    configure_logging(level=config.logging.level, format_json=config.logging.format_json)

    try:
        app = GateApplication(config)
    except StoreUnavailableError as e:
        logger.error("Store could not be opened", error=str(e))
        return 1

    try:
        asyncio.run(run(app))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    return 0


if __name__ == "__main__":
    sys.exit(main())
