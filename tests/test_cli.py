import pytest

import cli
from cli import main
from config import TestingSettings
from logging_config import configure_logging


@pytest.fixture(autouse=True)
def stderr_logging(monkeypatch):
    """Route logs to the session stderr once, so captured stdout holds only the CSV."""
    configure_logging(TestingSettings())
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)


def write_csv(tmp_path, *lines):
    path = tmp_path / "transactions.csv"
    path.write_text("\n".join(lines) + "\n")
    return str(path)


class TestCli:
    """Test the command-line entry point."""

    def test_prints_final_balances_sorted_by_client(self, tmp_path, capsys):
        path = write_csv(
            tmp_path,
            "type, client, tx, amount",
            "deposit, 2, 1, 2.0",
            "deposit, 1, 2, 10.0",
            "deposit, 1, 3, 5.0",
            "withdrawal, 1, 4, 3.0",
            "dispute, 1, 2,",
            "chargeback, 1, 2,",
        )

        assert main([path, "--env", "testing"]) == 0

        out = capsys.readouterr().out
        assert out.splitlines() == [
            "client,available,held,total,locked",
            "1,2.0000,0.0000,2.0000,true",
            "2,2.0000,0.0000,2.0000,false",
        ]

    def test_rejected_rows_do_not_change_exit_code(self, tmp_path, capsys):
        path = write_csv(
            tmp_path,
            "type,client,tx,amount",
            "deposit,1,1,1.0",
            "withdrawal,1,2,5.0",
            "resolve,1,1,",
            "nonsense",
        )

        assert main([path, "--env", "testing"]) == 0
        assert capsys.readouterr().out.splitlines()[1] == "1,1.0000,0.0000,1.0000,false"

    def test_halt_on_error_still_writes_snapshot(self, tmp_path, capsys):
        path = write_csv(
            tmp_path,
            "type,client,tx,amount",
            "deposit,1,1,1.0",
            "withdrawal,1,2,5.0",
            "deposit,1,3,1.0",
        )

        assert main([path, "--env", "testing", "--halt-on-error"]) == 1
        assert capsys.readouterr().out.splitlines() == [
            "client,available,held,total,locked",
            "1,1.0000,0.0000,1.0000,false",
        ]

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.csv"), "--env", "testing"]) == 1
        assert capsys.readouterr().out == ""

    def test_file_without_header_columns(self, tmp_path, capsys):
        path = write_csv(tmp_path, "a,b,c", "1,2,3")

        assert main([path, "--env", "testing"]) == 1
        assert capsys.readouterr().out == ""
