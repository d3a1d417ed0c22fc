"""
Command-line trigger for a single onboarding import run.

Usage:
    python -m shopboost --shop-id <uuid> --intake-id <uuid>
    python -m shopboost --shop-id <uuid> --intake-id <uuid> --verbose --json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Sequence

from shopboost.core.config import configure_logging, get_settings
from shopboost.core.errors import ConfigError
from shopboost.ingest.orchestrator import run_shop_boost_import

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_CONFIG = 2
EXIT_ROW_ERRORS = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopboost",
        description="Import a shop's onboarding spreadsheets into the live schema.",
    )
    parser.add_argument("--shop-id", required=True, help="Tenant (shop) id")
    parser.add_argument("--intake-id", required=True, help="Shop Boost intake (run) id")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log at DEBUG regardless of LOG_LEVEL"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the run summary as JSON instead of one line"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when any row errored",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.verbose:
        settings = settings.model_copy(update={"LOG_LEVEL": "DEBUG"})
    configure_logging(settings)

    try:
        summary = asyncio.run(
            run_shop_boost_import(args.shop_id, args.intake_id, settings=settings)
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG

    if summary is None:
        print(f"Import {args.intake_id} aborted; see logs", file=sys.stderr)
        return EXIT_ABORTED

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2, default=str))
    else:
        print(summary.summary())

    if args.strict and summary.total_errored:
        return EXIT_ROW_ERRORS
    return EXIT_OK
