from pydantic import BaseModel, Field, field_validator, model_validator
from enum import Enum
from typing import Annotated, Literal, Optional
from datetime import datetime
from decimal import Decimal

from amount import Amount, SCALE
from domain import (
    AccountSnapshot,
    Chargeback,
    Deposit,
    Dispute,
    MAX_CLIENT_ID,
    MAX_TRANSACTION_ID,
    Resolve,
    Transaction,
    Withdrawal,
)


class TransactionKind(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


AMOUNT_KINDS = {TransactionKind.deposit, TransactionKind.withdrawal}


class TransactionRow(BaseModel):
    type: TransactionKind = Field(..., description="Transaction type")
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client identifier")
    tx: int = Field(
        ...,
        ge=0,
        le=MAX_TRANSACTION_ID,
        description="Transaction id, or the referenced transaction for disputes",
    )
    amount: Optional[Annotated[Decimal, Field(ge=0, decimal_places=SCALE)]] = Field(
        None,
        description="Required for deposits and withdrawals, absent otherwise",
    )

    @field_validator('amount', mode='before')
    @classmethod
    def blank_amount_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def validate_amount_presence(self):
        if self.type in AMOUNT_KINDS and self.amount is None:
            raise ValueError(f'{self.type.value} requires an amount')
        if self.type not in AMOUNT_KINDS and self.amount is not None:
            raise ValueError(f'{self.type.value} must not carry an amount')
        return self

    def to_transaction(self) -> Transaction:
        if self.type == TransactionKind.deposit:
            return Deposit(self.tx, self.client, Amount.from_decimal(self.amount))
        if self.type == TransactionKind.withdrawal:
            return Withdrawal(self.tx, self.client, Amount.from_decimal(self.amount))
        if self.type == TransactionKind.dispute:
            return Dispute(self.client, self.tx)
        if self.type == TransactionKind.resolve:
            return Resolve(self.client, self.tx)
        return Chargeback(self.client, self.tx)


class AccountRow(BaseModel):
    client: int = Field(..., description="Client identifier")
    available: Decimal = Field(..., description="Funds available for withdrawal")
    held: Decimal = Field(..., description="Funds held by open disputes")
    total: Decimal = Field(..., description="available + held")
    locked: bool = Field(..., description="Whether a chargeback locked the account")

    @classmethod
    def from_snapshot(cls, snapshot: AccountSnapshot) -> "AccountRow":
        return cls(
            client=snapshot.client,
            available=snapshot.available.to_decimal(),
            held=snapshot.held.to_decimal(),
            total=snapshot.total.to_decimal(),
            locked=snapshot.locked,
        )


class TransactionResult(BaseModel):
    tx: int = Field(..., description="Transaction id from the request")
    type: TransactionKind = Field(..., description="Transaction type")
    status: Literal["processed"] = Field(..., description="Transaction status")
    account: AccountRow = Field(..., description="Account state after the transaction")
    timestamp: datetime = Field(default_factory=datetime.now, description="Processing timestamp")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.now)
    accounts_count: int = Field(..., description="Number of accounts in the ledger")
    transactions_recorded: int = Field(..., description="Deposits and withdrawals in the history")
