from typing import Iterator, Optional

import structlog

from domain import (
    Account,
    AccountSnapshot,
    Chargeback,
    ClientId,
    Deposit,
    Dispute,
    DisputeState,
    Resolve,
    Transaction,
    TransactionId,
    TransactionRecord,
    Withdrawal,
)
from exceptions import (
    ClientLockedError,
    DuplicateTransactionIdError,
    InsufficientFundsError,
    LedgerError,
    TransactionAlreadyDisputedError,
    TransactionDoesntExistError,
    TransactionNotDisputedError,
)
from repositories import (
    AccountRepository,
    InMemoryAccountRepository,
    InMemoryTransactionRepository,
    TransactionRepository,
)

logger = structlog.get_logger()


class Ledger:
    """Applies transactions to client accounts and tracks the dispute life cycle.

    Every handler validates first and mutates a working copy of the account,
    committing to the stores only once nothing can fail. A rejected
    transaction therefore leaves the ledger exactly as it was.
    """

    def __init__(
        self,
        accounts: Optional[AccountRepository] = None,
        transactions: Optional[TransactionRepository] = None,
    ):
        self._accounts = accounts if accounts is not None else InMemoryAccountRepository()
        self._transactions = transactions if transactions is not None else InMemoryTransactionRepository()
        self._handlers = {
            Deposit: self._deposit,
            Withdrawal: self._withdraw,
            Dispute: self._dispute,
            Resolve: self._resolve,
            Chargeback: self._chargeback,
        }

    def apply(self, transaction: Transaction) -> None:
        """Apply one transaction, raising a LedgerError if it is rejected."""
        handler = self._handlers.get(type(transaction))
        if handler is None:
            raise TypeError(f"not a transaction: {transaction!r}")

        kind = type(transaction).__name__.lower()
        try:
            handler(transaction)
        except LedgerError as e:
            logger.warning(
                "Transaction rejected",
                kind=kind,
                tx=transaction.tx,
                client=transaction.client,
                error_code=e.code,
                reason=str(e),
            )
            raise

        logger.debug("Transaction applied", kind=kind, tx=transaction.tx, client=transaction.client)

    # Read accessors

    def accounts(self) -> Iterator[AccountSnapshot]:
        for account in self._accounts:
            yield account.snapshot()

    def account(self, client_id: ClientId) -> Optional[AccountSnapshot]:
        account = self._accounts.get(client_id)
        return None if account is None else account.snapshot()

    def transaction(self, tx: TransactionId) -> Optional[TransactionRecord]:
        return self._transactions.get(tx)

    @property
    def accounts_count(self) -> int:
        return self._accounts.count()

    @property
    def transactions_count(self) -> int:
        return self._transactions.count()

    # Handlers

    def _deposit(self, deposit: Deposit) -> None:
        self._ensure_new_id(deposit.tx, deposit.client)
        account = self._working_account(deposit.client)

        account.credit_available(deposit.amount)

        self._accounts.save(account)
        self._transactions.add(deposit.tx, TransactionRecord(deposit.client, deposit.amount))

    def _withdraw(self, withdrawal: Withdrawal) -> None:
        self._ensure_new_id(withdrawal.tx, withdrawal.client)
        account = self._working_account(withdrawal.client)

        if account.locked:
            raise ClientLockedError(
                f"client {withdrawal.client} is locked",
                tx=withdrawal.tx,
                client=withdrawal.client,
            )
        if account.available < withdrawal.amount:
            raise InsufficientFundsError(
                f"available {account.available} is less than {withdrawal.amount}",
                tx=withdrawal.tx,
                client=withdrawal.client,
            )

        account.debit_available(withdrawal.amount)

        self._accounts.save(account)
        # Recorded with its signed effect on the balance, so disputing a
        # withdrawal moves a negative amount into held.
        self._transactions.add(withdrawal.tx, TransactionRecord(withdrawal.client, -withdrawal.amount))

    def _dispute(self, dispute: Dispute) -> None:
        record = self._existing_record(dispute.tx, dispute.client)
        if record.dispute_state is not DisputeState.NORMAL:
            raise TransactionAlreadyDisputedError(
                f"transaction {dispute.tx} is {record.dispute_state.value}",
                tx=dispute.tx,
                client=dispute.client,
            )

        # The client named in the dispute is trusted; it is not checked
        # against record.owner_client.
        account = self._working_account(dispute.client)
        account.move_to_held(record.amount)

        self._accounts.save(account)
        self._transactions.set_state(dispute.tx, DisputeState.DISPUTED)

    def _resolve(self, resolve: Resolve) -> None:
        record = self._disputed_record(resolve.tx, resolve.client)

        account = self._working_account(resolve.client)
        account.move_from_held(record.amount)

        self._accounts.save(account)
        self._transactions.set_state(resolve.tx, DisputeState.RESOLVED)

    def _chargeback(self, chargeback: Chargeback) -> None:
        record = self._disputed_record(chargeback.tx, chargeback.client)

        account = self._working_account(chargeback.client)
        account.remove_from_held(record.amount)
        account.lock()

        self._accounts.save(account)
        self._transactions.set_state(chargeback.tx, DisputeState.CHARGED_BACK)

    # Helpers

    def _working_account(self, client_id: ClientId) -> Account:
        account = self._accounts.get(client_id)
        return account if account is not None else Account(client_id)

    def _ensure_new_id(self, tx: TransactionId, client_id: ClientId) -> None:
        if self._transactions.get(tx) is not None:
            raise DuplicateTransactionIdError(
                f"transaction {tx} already exists", tx=tx, client=client_id
            )

    def _existing_record(self, tx: TransactionId, client_id: ClientId) -> TransactionRecord:
        record = self._transactions.get(tx)
        if record is None:
            raise TransactionDoesntExistError(
                f"transaction {tx} doesn't exist", tx=tx, client=client_id
            )
        return record

    def _disputed_record(self, tx: TransactionId, client_id: ClientId) -> TransactionRecord:
        record = self._existing_record(tx, client_id)
        if record.dispute_state is not DisputeState.DISPUTED:
            raise TransactionNotDisputedError(
                f"transaction {tx} is not disputed", tx=tx, client=client_id
            )
        return record


# Process-wide ledger used by the HTTP API
_ledger = Ledger()


def get_ledger() -> Ledger:
    return _ledger


def reset_ledger() -> None:
    """Replace the shared ledger with an empty one (for testing only)."""
    global _ledger
    _ledger = Ledger()
