"""Command line entry point: ``testnet-bot``."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from .config import ConfigError, load_run_config, settings
from .logging_config import setup_logging
from .runner import KeyFileError, load_private_keys, run_forever, run_wallets


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testnet-bot",
        description="Run on-chain testnet activity for a list of wallets",
    )
    parser.add_argument("--config", type=Path, help=f"Run configuration file (default: {settings.config_path})")
    parser.add_argument("--keys", type=Path, help=f"Private key file (default: {settings.keys_path})")
    parser.add_argument("--once", action="store_true", help="Process all wallets once and exit")
    parser.add_argument("--log-level", help=f"Log level (default: {settings.log_level})")
    return parser


async def run(args: argparse.Namespace) -> int:
    logger = structlog.get_logger("testnet_bot")

    try:
        run_config = load_run_config(args.config or settings.config_path)
        private_keys = load_private_keys(args.keys or settings.keys_path)
    except (ConfigError, KeyFileError) as e:
        logger.error(str(e))
        return 1

    if args.once:
        results = await run_wallets(private_keys, run_config, settings)
        return 0 if all(results) else 1

    await run_forever(private_keys, run_config, settings)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
