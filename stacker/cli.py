#!/usr/bin/env python3
"""
Run one round of pox-4 stacking for every configured account.

Usage:
    pox-stacker stacking.toml
    LOG_LEVEL=DEBUG pox-stacker stacking.toml

Configuration:
    [node]
    url = "http://localhost"
    port = 20443

    [[stackers]]
    secret_key = "<64 hex chars, optionally followed by 01>"
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from stacker.config.settings import load_settings
from stacker.logging_config import setup_loguru_config
from stacker.pox.errors import ConfigurationError, NodeRequestError
from stacker.runner import build_accounts, run_once


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pox-stacker",
        description="Stack or extend pox-4 locks for the configured accounts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("config", help="Path to the stacking TOML configuration")
    parser.add_argument(
        "--log-level", help="Override LOG_LEVEL (default: INFO)", default=None
    )
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        setup_loguru_config(args.log_level)
    except ConfigurationError as e:
        setup_loguru_config("INFO")
        logger.error(e.message)
        return 1

    try:
        settings = load_settings(args.config)
        accounts = build_accounts(settings)
    except ConfigurationError as e:
        logger.error(f"Failed to load {args.config}: {e.message}")
        return 1

    logger.info(
        f"Loaded {len(accounts)} stacker(s), node {settings.node.full_url}"
    )

    try:
        report = asyncio.run(run_once(settings, accounts))
    except NodeRequestError as e:
        logger.error(f"Failed to fetch pox info: {e.message}")
        return 1

    if report.skipped_reason:
        logger.info(f"Run skipped: {report.skipped_reason}")
        return 0

    logger.info(
        f"Run complete: {len(report.outcomes)} account(s), "
        f"{len(report.submitted)} transaction(s) submitted, "
        f"{len(report.failed)} failure(s)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
