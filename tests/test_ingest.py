import io

import pytest
from unittest.mock import patch

from amount import Amount
from domain import AccountSnapshot, Chargeback, Deposit, Dispute, Withdrawal
from exceptions import MalformedRecordError
from ingest import parse_row, process_stream, read_rows, write_accounts
from ledger import Ledger


def csv_stream(*lines):
    return io.StringIO("\n".join(lines) + "\n")


class TestReadRows:
    """Test CSV row reading."""

    def test_whitespace_is_trimmed(self):
        rows = list(read_rows(csv_stream(
            "type, client, tx, amount",
            "deposit,   1,  1,   1.0",
        )))

        assert rows == [(2, {"type": "deposit", "client": "1", "tx": "1", "amount": "1.0"})]

    def test_short_rows_and_blank_lines_are_allowed(self):
        rows = list(read_rows(csv_stream(
            "type,client,tx,amount",
            "",
            "dispute,1,1",
            "resolve,1,1,",
        )))

        assert rows[0] == (3, {"type": "dispute", "client": "1", "tx": "1"})
        assert rows[1] == (4, {"type": "resolve", "client": "1", "tx": "1", "amount": ""})

    def test_header_without_required_columns(self):
        with pytest.raises(MalformedRecordError):
            list(read_rows(csv_stream("kind,who,amount", "deposit,1,1.0")))


class TestParseRow:
    """Test turning rows into transactions."""

    def test_every_kind(self):
        assert parse_row({"type": "deposit", "client": "1", "tx": "2", "amount": "1.5"}) == \
            Deposit(2, 1, Amount.parse("1.5"))
        assert parse_row({"type": "withdrawal", "client": "1", "tx": "3", "amount": "0.25"}) == \
            Withdrawal(3, 1, Amount.parse("0.25"))
        assert parse_row({"type": "dispute", "client": "1", "tx": "2"}) == Dispute(1, 2)
        assert parse_row({"type": "chargeback", "client": "1", "tx": "2", "amount": ""}) == Chargeback(1, 2)

    @pytest.mark.parametrize("fields", [
        {"type": "deposit", "client": "1", "tx": "1"},
        {"type": "withdrawal", "client": "1", "tx": "1", "amount": ""},
        {"type": "dispute", "client": "1", "tx": "1", "amount": "1.0"},
        {"type": "transfer", "client": "1", "tx": "1", "amount": "1.0"},
        {"type": "deposit", "client": "-1", "tx": "1", "amount": "1.0"},
        {"type": "deposit", "client": "70000", "tx": "1", "amount": "1.0"},
        {"type": "deposit", "client": "1", "tx": "4294967296", "amount": "1.0"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "-1.0"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "1.00001"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "lots"},
        {"type": "deposit", "client": "x", "tx": "1", "amount": "1.0"},
    ])
    def test_malformed_rows_are_rejected(self, fields):
        with pytest.raises(MalformedRecordError):
            parse_row(fields, line=7)

    def test_error_mentions_line(self):
        with pytest.raises(MalformedRecordError) as exc_info:
            parse_row({"type": "deposit", "client": "1", "tx": "1"}, line=7)

        assert exc_info.value.line == 7
        assert "line 7" in str(exc_info.value)


class TestProcessStream:
    """Test driving the ledger from a CSV stream."""

    def test_example_stream(self):
        ledger = Ledger()
        summary = process_stream(ledger, csv_stream(
            "type, client, tx, amount",
            "deposit, 1, 1, 1.0",
            "deposit, 2, 2, 2.0",
            "deposit, 1, 3, 2.0",
            "withdrawal, 1, 4, 1.5",
            "withdrawal, 2, 5, 3.0",
        ))

        assert summary.applied == 4
        assert summary.rejected == 1
        assert ledger.account(1).available == Amount.parse("1.5")
        assert ledger.account(2).available == Amount.parse("2")

    def test_errors_do_not_stop_the_stream(self):
        ledger = Ledger()
        summary = process_stream(ledger, csv_stream(
            "type,client,tx,amount",
            "deposit,1,1,10",
            "bogus,1,2,1",
            "dispute,1,99,",
            "dispute,1,1,",
            "chargeback,1,1,",
            "deposit,1,3,4",
        ))

        assert summary.applied == 4
        assert summary.rejected == 1
        assert summary.malformed == 1
        assert not summary.halted
        snapshot = ledger.account(1)
        assert snapshot.total == Amount.parse("4")
        assert snapshot.locked is True

    def test_halt_on_error_stops_at_first_failure(self):
        ledger = Ledger()
        summary = process_stream(ledger, csv_stream(
            "type,client,tx,amount",
            "deposit,1,1,10",
            "withdrawal,1,2,20",
            "deposit,1,3,4",
        ), halt_on_error=True)

        assert summary.halted
        assert summary.applied == 1
        assert ledger.transaction(3) is None

    @patch('ingest.logger')
    def test_malformed_row_is_logged(self, mock_logger):
        process_stream(Ledger(), csv_stream("type,client,tx,amount", "deposit,1,1,"))

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["line"] == 2
        mock_logger.info.assert_called_once()


class TestWriteAccounts:
    """Test the account CSV output."""

    def test_rows(self):
        out = io.StringIO()
        count = write_accounts([
            AccountSnapshot(1, Amount.parse("1.5"), Amount.zero(), Amount.parse("1.5"), False),
            AccountSnapshot(2, Amount.parse("-2"), Amount.parse("3"), Amount.parse("1"), True),
        ], out)

        assert count == 2
        assert out.getvalue().splitlines() == [
            "client,available,held,total,locked",
            "1,1.5000,0.0000,1.5000,false",
            "2,-2.0000,3.0000,1.0000,true",
        ]

    def test_empty_ledger_writes_header_only(self):
        out = io.StringIO()

        assert write_accounts([], out) == 0
        assert out.getvalue() == "client,available,held,total,locked\n"
