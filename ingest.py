"""CSV ingest and export around the ledger.

Input rows look like ``type, client, tx, amount`` with whitespace allowed
around every cell; dispute, resolve and chargeback rows may leave the amount
column empty or drop it entirely. Output rows are
``client,available,held,total,locked``.
"""

import csv
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, Iterator, Optional, TextIO, Tuple

import structlog
from pydantic import ValidationError

from domain import AccountSnapshot, Transaction
from exceptions import LedgerError, MalformedRecordError
from ledger import Ledger
from models import TransactionRow

logger = structlog.get_logger()

REQUIRED_COLUMNS = ("type", "client", "tx")
OUTPUT_COLUMNS = ("client", "available", "held", "total", "locked")


@dataclass
class StreamSummary:
    applied: int = 0
    rejected: int = 0
    malformed: int = 0
    halted: bool = False


def read_rows(stream: TextIO) -> Iterator[Tuple[int, Dict[str, str]]]:
    """Yield ``(line_number, fields)`` for every non-blank data row."""
    reader = csv.reader(stream)
    header = None
    for row in reader:
        cells = [cell.strip() for cell in row]
        if not any(cells):
            continue
        if header is None:
            header = [cell.lower() for cell in cells]
            missing = [column for column in REQUIRED_COLUMNS if column not in header]
            if missing:
                raise MalformedRecordError(
                    f"header is missing columns: {', '.join(missing)}", line=reader.line_num
                )
            continue
        yield reader.line_num, dict(zip(header, cells))


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


def parse_row(fields: Dict[str, str], line: Optional[int] = None) -> Transaction:
    """Turn one CSV row into a transaction variant."""
    try:
        return TransactionRow.model_validate(fields).to_transaction()
    except ValidationError as e:
        raise MalformedRecordError(_describe(e), line=line) from None
    except (ValueError, LedgerError) as e:
        # amounts that can't be represented exactly, or overflow
        raise MalformedRecordError(str(e), line=line) from None


def process_stream(ledger: Ledger, stream: TextIO, halt_on_error: bool = False) -> StreamSummary:
    """Feed every row of ``stream`` to the ledger in order.

    Malformed rows and rejected transactions are logged and skipped, unless
    ``halt_on_error`` is set, in which case processing stops at the first one.
    """
    summary = StreamSummary()

    for line, fields in read_rows(stream):
        try:
            transaction = parse_row(fields, line)
        except MalformedRecordError as e:
            summary.malformed += 1
            logger.warning("Skipping malformed row", line=line, error=str(e))
            if halt_on_error:
                summary.halted = True
                break
            continue

        try:
            ledger.apply(transaction)
        except LedgerError as e:
            summary.rejected += 1
            logger.debug("Row rejected by ledger", line=line, error_code=e.code)
            if halt_on_error:
                summary.halted = True
                break
            continue

        summary.applied += 1

    logger.info("Transaction stream processed", **asdict(summary))
    return summary


def write_accounts(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> int:
    """Write one CSV row per account. Returns the number of rows written."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_COLUMNS)
    count = 0
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client,
            str(snapshot.available),
            str(snapshot.held),
            str(snapshot.total),
            "true" if snapshot.locked else "false",
        ])
        count += 1
    return count
