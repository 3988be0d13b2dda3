"""Command-line entry point.

Usage::

    python cli.py transactions.csv > accounts.csv
"""

import argparse
import sys
from typing import List, Optional

import structlog

from config import get_settings, get_settings_for_environment
from exceptions import MalformedRecordError
from ingest import process_stream, write_accounts
from ledger import Ledger
from logging_config import configure_logging

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Apply a CSV stream of transactions and print the final account balances.",
    )
    parser.add_argument("input", help="CSV file with type, client, tx, amount columns")
    parser.add_argument(
        "--env",
        choices=["development", "production", "testing"],
        help="use the defaults of this environment instead of the plain settings",
    )
    parser.add_argument(
        "--halt-on-error",
        action="store_true",
        default=None,
        help="stop at the first malformed or rejected row",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings_for_environment(args.env) if args.env else get_settings()
    configure_logging(settings)

    halt_on_error = settings.halt_on_error if args.halt_on_error is None else args.halt_on_error
    ledger = Ledger()

    try:
        with open(args.input, newline="") as stream:
            summary = process_stream(ledger, stream, halt_on_error=halt_on_error)
    except OSError as e:
        logger.error("Could not read input file", path=args.input, error=str(e))
        return 1
    except MalformedRecordError as e:
        logger.error("Input file is not a transaction CSV", path=args.input, error=str(e))
        return 1

    # The snapshot is written even when the run was halted.
    snapshots = sorted(ledger.accounts(), key=lambda snapshot: snapshot.client)
    write_accounts(snapshots, sys.stdout)

    return 1 if summary.halted else 0


if __name__ == "__main__":
    sys.exit(main())
