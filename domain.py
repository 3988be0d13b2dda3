"""Core ledger types: transaction variants, history records and accounts."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from amount import Amount
from exceptions import InsufficientFundsError

ClientId = int
TransactionId = int

MAX_CLIENT_ID = 2 ** 16 - 1
MAX_TRANSACTION_ID = 2 ** 32 - 1


def _check_ids(client: ClientId, tx: TransactionId) -> None:
    if not 0 <= client <= MAX_CLIENT_ID:
        raise ValueError(f"client id out of range: {client}")
    if not 0 <= tx <= MAX_TRANSACTION_ID:
        raise ValueError(f"transaction id out of range: {tx}")


@dataclass(frozen=True)
class Deposit:
    tx: TransactionId
    client: ClientId
    amount: Amount

    def __post_init__(self):
        _check_ids(self.client, self.tx)
        if self.amount.is_negative():
            raise ValueError(f"deposit amount must not be negative, got {self.amount}")


@dataclass(frozen=True)
class Withdrawal:
    tx: TransactionId
    client: ClientId
    amount: Amount

    def __post_init__(self):
        _check_ids(self.client, self.tx)
        if self.amount.is_negative():
            raise ValueError(f"withdrawal amount must not be negative, got {self.amount}")


@dataclass(frozen=True)
class Dispute:
    client: ClientId
    tx: TransactionId

    def __post_init__(self):
        _check_ids(self.client, self.tx)


@dataclass(frozen=True)
class Resolve:
    client: ClientId
    tx: TransactionId

    def __post_init__(self):
        _check_ids(self.client, self.tx)


@dataclass(frozen=True)
class Chargeback:
    client: ClientId
    tx: TransactionId

    def __post_init__(self):
        _check_ids(self.client, self.tx)


Transaction = Union[Deposit, Withdrawal, Dispute, Resolve, Chargeback]


class DisputeState(str, Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


@dataclass(frozen=True)
class TransactionRecord:
    """What the ledger remembers about a deposit or withdrawal.

    ``amount`` is the signed effect on the balance: positive for deposits,
    negative for withdrawals.
    """

    owner_client: ClientId
    amount: Amount
    dispute_state: DisputeState = DisputeState.NORMAL


@dataclass(frozen=True)
class AccountSnapshot:
    client: ClientId
    available: Amount
    held: Amount
    total: Amount
    locked: bool


@dataclass
class Account:
    """Balance state of one client.

    The methods only move money; whether a move is allowed is decided by the
    Ledger. Every method computes all new values before assigning any, so an
    overflow leaves the account untouched.
    """

    client_id: ClientId
    available: Amount = field(default_factory=Amount.zero)
    held: Amount = field(default_factory=Amount.zero)
    locked: bool = False

    @property
    def total(self) -> Amount:
        return self.available + self.held

    def credit_available(self, amount: Amount) -> None:
        self.available = self.available + amount

    def debit_available(self, amount: Amount) -> None:
        if self.available < amount:
            raise InsufficientFundsError(
                f"available {self.available} is less than {amount}",
                client=self.client_id,
            )
        self.available = self.available - amount

    def move_to_held(self, amount: Amount) -> None:
        # amount may be negative when a withdrawal is disputed
        available, held = self.available - amount, self.held + amount
        self.available, self.held = available, held

    def move_from_held(self, amount: Amount) -> None:
        available, held = self.available + amount, self.held - amount
        self.available, self.held = available, held

    def remove_from_held(self, amount: Amount) -> None:
        self.held = self.held - amount

    def lock(self) -> None:
        self.locked = True

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )
