from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, Iterator, Optional

from domain import Account, ClientId, DisputeState, TransactionId, TransactionRecord


class AccountRepository(ABC):
    @abstractmethod
    def get(self, client_id: ClientId) -> Optional[Account]:
        """Get a working copy of the account. Returns None if it doesn't exist."""
        pass

    @abstractmethod
    def save(self, account: Account) -> None:
        """Store the account, creating it if needed."""
        pass

    @abstractmethod
    def __iter__(self) -> Iterator[Account]:
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class TransactionRepository(ABC):
    @abstractmethod
    def get(self, tx: TransactionId) -> Optional[TransactionRecord]:
        """Get a stored record. Returns None if the id was never recorded."""
        pass

    @abstractmethod
    def add(self, tx: TransactionId, record: TransactionRecord) -> None:
        """Record a new deposit or withdrawal."""
        pass

    @abstractmethod
    def set_state(self, tx: TransactionId, state: DisputeState) -> None:
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self._accounts: Dict[ClientId, Account] = {}

    def get(self, client_id: ClientId) -> Optional[Account]:
        account = self._accounts.get(client_id)
        return None if account is None else replace(account)

    def save(self, account: Account) -> None:
        self._accounts[account.client_id] = replace(account)

    def __iter__(self) -> Iterator[Account]:
        for account in self._accounts.values():
            yield replace(account)

    def count(self) -> int:
        return len(self._accounts)


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        self._records: Dict[TransactionId, TransactionRecord] = {}

    def get(self, tx: TransactionId) -> Optional[TransactionRecord]:
        return self._records.get(tx)

    def add(self, tx: TransactionId, record: TransactionRecord) -> None:
        if tx in self._records:
            raise KeyError(f"transaction {tx} already recorded")
        self._records[tx] = record

    def set_state(self, tx: TransactionId, state: DisputeState) -> None:
        self._records[tx] = replace(self._records[tx], dispute_state=state)

    def count(self) -> int:
        return len(self._records)
