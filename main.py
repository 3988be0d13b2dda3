from fastapi import FastAPI, HTTPException, Request, Depends, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import structlog
import time
from contextlib import asynccontextmanager
from typing import List

from models import AccountRow, TransactionRow, TransactionResult, ErrorResponse, HealthResponse
from ledger import Ledger, get_ledger
from exceptions import (
    AmountOverflowError,
    ClientLockedError,
    DuplicateTransactionIdError,
    InsufficientFundsError,
    LedgerError,
    TransactionAlreadyDisputedError,
    TransactionDoesntExistError,
    TransactionNotDisputedError,
)
from config import get_settings
from logging_config import configure_logging

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger()

# HTTP status for each kind of rejected transaction
ERROR_STATUS = {
    DuplicateTransactionIdError: status.HTTP_409_CONFLICT,
    TransactionAlreadyDisputedError: status.HTTP_409_CONFLICT,
    TransactionNotDisputedError: status.HTTP_409_CONFLICT,
    TransactionDoesntExistError: status.HTTP_404_NOT_FOUND,
    ClientLockedError: status.HTTP_403_FORBIDDEN,
    InsufficientFundsError: status.HTTP_400_BAD_REQUEST,
    AmountOverflowError: 422,
}

# Rate limiting
limiter = Limiter(key_func=get_remote_address)


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Transaction Ledger API")
    yield
    logger.info("Shutting down Transaction Ledger API")


app = FastAPI(
    title=settings.app_name,
    description="Applies deposits, withdrawals and the dispute life cycle to client accounts",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2)
    )

    return response


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check API health and get ledger statistics"
)
async def health_check(ledger: Ledger = Depends(get_ledger)):
    return HealthResponse(
        status="healthy",
        accounts_count=ledger.accounts_count,
        transactions_recorded=ledger.transactions_count
    )


@app.post(
    "/transactions",
    response_model=TransactionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Apply Transaction",
    description="Apply a deposit, withdrawal, dispute, resolve or chargeback",
    responses={
        201: {"description": "Transaction applied"},
        400: {"description": "Insufficient funds"},
        403: {"description": "Client account is locked"},
        404: {"description": "Referenced transaction doesn't exist"},
        409: {"description": "Duplicate id or invalid dispute state"},
        422: {"description": "Validation error"},
        429: {"description": "Rate limit exceeded"}
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def create_transaction(
    request: Request,
    row: TransactionRow,
    ledger: Ledger = Depends(get_ledger)
):
    try:
        transaction = row.to_transaction()
    except ValueError as e:
        return validation_error_response(str(e))

    # apply() is synchronous, so requests are applied one at a time in arrival order
    ledger.apply(transaction)
    snapshot = ledger.account(row.client)

    logger.info(
        "Transaction processed",
        type=row.type.value,
        tx=row.tx,
        client=row.client,
        available=str(snapshot.available),
        held=str(snapshot.held),
        locked=snapshot.locked
    )

    return TransactionResult(
        tx=row.tx,
        type=row.type,
        status="processed",
        account=AccountRow.from_snapshot(snapshot)
    )


@app.get(
    "/accounts",
    response_model=List[AccountRow],
    summary="List Accounts",
    description="Current state of every account, ordered by client id"
)
async def list_accounts(ledger: Ledger = Depends(get_ledger)):
    snapshots = sorted(ledger.accounts(), key=lambda snapshot: snapshot.client)
    return [AccountRow.from_snapshot(snapshot) for snapshot in snapshots]


@app.get(
    "/accounts/{client_id}",
    response_model=AccountRow,
    summary="Get Account",
    responses={404: {"description": "Account not found"}}
)
async def get_account(client_id: int, ledger: Ledger = Depends(get_ledger)):
    snapshot = ledger.account(client_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountRow.from_snapshot(snapshot)


def validation_error_response(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            detail=detail,
            error_code="VALIDATION_ERROR"
        ).model_dump(mode="json")
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"] if part != "body")
        messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    logger.info("Request rejected by validation", path=request.url.path, errors=len(messages))
    return validation_error_response("; ".join(messages))


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    return JSONResponse(
        status_code=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST),
        content=ErrorResponse(
            detail=str(exc),
            error_code=exc.code
        ).model_dump(mode="json")
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.detail,
            error_code=f"HTTP_{exc.status_code}"
        ).model_dump(mode="json")
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception while serving ledger request",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail="Internal server error",
            error_code="INTERNAL_ERROR"
        ).model_dump(mode="json")
    )


@app.get("/", include_in_schema=False)
async def root():
    return {"message": settings.app_name, "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
