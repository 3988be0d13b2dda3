"""Ledger and ingest errors."""

from typing import Optional


class LedgerError(Exception):
    """Base class for transactions the ledger refused to apply."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, tx: Optional[int] = None, client: Optional[int] = None):
        super().__init__(message)
        self.tx = tx
        self.client = client


class DuplicateTransactionIdError(LedgerError):
    """A deposit or withdrawal reused a transaction id already in the history."""

    code = "DUPLICATE_TRANSACTION_ID"


class ClientLockedError(LedgerError):
    """A withdrawal was attempted on an account locked by a chargeback."""

    code = "CLIENT_LOCKED"


class InsufficientFundsError(LedgerError):
    """Available funds do not cover the withdrawal."""

    code = "INSUFFICIENT_FUNDS"


class TransactionDoesntExistError(LedgerError):
    """A dispute, resolve or chargeback referenced an unknown transaction."""

    code = "TRANSACTION_DOESNT_EXIST"


class TransactionAlreadyDisputedError(LedgerError):
    """The referenced transaction has already left the normal state."""

    code = "TRANSACTION_ALREADY_DISPUTED"


class TransactionNotDisputedError(LedgerError):
    """Resolve or chargeback on a transaction that is not under dispute."""

    code = "TRANSACTION_NOT_DISPUTED"


class AmountOverflowError(LedgerError):
    """An amount left the representable fixed-point range."""

    code = "AMOUNT_OVERFLOW"


class MalformedRecordError(ValueError):
    """An input row could not be turned into a transaction."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message if line is None else f"line {line}: {message}")
        self.line = line
