"""Command line entry point."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

import anyio

from .bridge.runtime import run_main_loop
from .config import DEFAULT_CONFIG_PATH, LOG_LEVELS, ConfigError, load_config
from .logging import get_logger, setup_logging

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="standup-irc",
        description="Relay standup status updates from IRC.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="path to the TOML config file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        type=str.lower,
        choices=LOG_LEVELS,
        default=None,
        help="override log.level from the config file",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        return 2

    setup_logging(
        level=args.log_level or config.log.level,
        console=config.log.console,
        file=config.log.file,
    )

    try:
        anyio.run(run_main_loop, config)
    except KeyboardInterrupt:
        logger.info("shutdown.interrupted")
        return 130
    except OSError as exc:
        logger.error("shutdown.connection_failed", error=str(exc))
        return 1
    logger.info("shutdown.disconnected")
    return 0


if __name__ == "__main__":
    sys.exit(main())
