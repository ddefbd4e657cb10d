import json
import logging
import time
from contextlib import asynccontextmanager
from threading import Lock
from typing import Annotated

from fastapi import Depends, FastAPI, Header, HTTPException, Path, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from .amounts import decode_amount, encode_amount
from .config import settings
from .db import SessionLocal, engine
from .exceptions import (
    AccountNotFound,
    DuplicateTransaction,
    InsufficientFunds,
    InvalidRequest,
    StorageFailure,
)
from .lifecycle import ShutdownQueue
from .logs import configure_logging
from .schemas import BalanceResult, TransactionRequest, TransactionResult
from .service import Adjustment, AdjustmentKind, LedgerService, SourceType

logger = logging.getLogger("balance_ledger.audit")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    shutdown_queue = ShutdownQueue()
    shutdown_queue.add(engine.dispose)
    app.state.shutdown_queue = shutdown_queue
    logger.info(json.dumps({"event": "service_started", "service": settings.service_name}))
    try:
        yield
    finally:
        logger.info(json.dumps({"event": "service_stopping", "service": settings.service_name}))
        shutdown_queue.shutdown(timeout=settings.shutdown_timeout_seconds)


app = FastAPI(
    title="Balance Ledger Service",
    version="1.0.0",
    description="Idempotent, transactional per-account balance ledger.",
    lifespan=lifespan,
)

ledger_service = LedgerService(SessionLocal)
metrics_lock = Lock()
metrics_counters = {
    "requests_total": 0,
    "balance_reads_total": 0,
    "adjustments_success_total": 0,
    "invalid_requests_total": 0,
    "not_found_total": 0,
    "insufficient_funds_total": 0,
    "duplicate_transactions_total": 0,
    "storage_failures_total": 0,
}
METRIC_HELP = {
    "requests_total": "Total handled ledger requests.",
    "balance_reads_total": "Successful balance reads.",
    "adjustments_success_total": "Successfully applied adjustments.",
    "invalid_requests_total": "Rejected malformed requests.",
    "not_found_total": "Account not found errors.",
    "insufficient_funds_total": "Insufficient funds errors.",
    "duplicate_transactions_total": "Duplicate transaction id rejections.",
    "storage_failures_total": "Requests that failed in the storage layer.",
}
APP_START_MONOTONIC = time.monotonic()

MAX_ACCOUNT_ID = 2**63 - 1
UserId = Annotated[int, Path(gt=0, le=MAX_ACCOUNT_ID)]


def _inc_counter(key: str, value: int = 1) -> None:
    with metrics_lock:
        metrics_counters[key] = int(metrics_counters.get(key, 0)) + value


class BodyTooLarge(HTTPException):
    def __init__(self):
        super().__init__(status_code=413, detail="Request body too large")


class RequestBodyLimit:
    """Reject request bodies above max_bytes with 413, whether declared or streamed."""

    def __init__(self, app, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = dict(scope["headers"]).get(b"content-length", b"")
        if declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(scope, receive, send)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise BodyTooLarge()
            return message

        try:
            await self.app(scope, limited_receive, send)
        except BodyTooLarge:
            await self._reject(scope, receive, send)

    async def _reject(self, scope, receive, send):
        _inc_counter("invalid_requests_total")
        response = JSONResponse(status_code=413, content={"detail": "Request body too large"})
        await response(scope, receive, send)


app.add_middleware(RequestBodyLimit, max_bytes=settings.max_request_body_bytes)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_ledger_service() -> LedgerService:
    return ledger_service


def require_metrics_token(
    x_metrics_token: Annotated[str | None, Header(alias="X-Metrics-Token")] = None,
    authorization: Annotated[str | None, Header(alias="Authorization")] = None,
):
    if not settings.metrics_token:
        return
    bearer_token = ""
    if authorization and authorization.startswith("Bearer "):
        bearer_token = authorization.split(" ", 1)[1]
    if x_metrics_token != settings.metrics_token and bearer_token != settings.metrics_token:
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    _inc_counter("invalid_requests_total")
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


@app.get("/healthz")
def healthz():
    return {"status": "ok", "service": settings.service_name}


@app.get("/readyz")
def readyz(db: Annotated[Session, Depends(get_db)]):
    db.execute(text("SELECT 1"))
    return {"status": "ready"}


@app.get("/metrics")
def metrics(_: Annotated[None, Depends(require_metrics_token)]):
    uptime_seconds = int(time.monotonic() - APP_START_MONOTONIC)
    with metrics_lock:
        snapshot = dict(metrics_counters)
    lines = [
        "# HELP balance_ledger_uptime_seconds Process uptime in seconds.",
        "# TYPE balance_ledger_uptime_seconds gauge",
        f"balance_ledger_uptime_seconds {uptime_seconds}",
    ]
    for key, help_text in METRIC_HELP.items():
        lines.extend(
            [
                f"# HELP balance_ledger_{key} {help_text}",
                f"# TYPE balance_ledger_{key} counter",
                f"balance_ledger_{key} {snapshot.get(key, 0)}",
            ]
        )
    return Response(content="\n".join(lines) + "\n", media_type="text/plain; version=0.0.4")


@app.get("/user/{user_id}/balance", response_model=BalanceResult)
def get_balance_endpoint(
    user_id: UserId,
    service: Annotated[LedgerService, Depends(get_ledger_service)],
):
    _inc_counter("requests_total")
    try:
        balance = service.get_balance(user_id)
    except AccountNotFound as exc:
        _inc_counter("not_found_total")
        raise HTTPException(status_code=404, detail="User not found") from exc
    except StorageFailure as exc:
        _inc_counter("storage_failures_total")
        logger.exception(json.dumps({"event": "balance_read_failed", "user_id": user_id}))
        raise HTTPException(status_code=500, detail="Internal error") from exc
    _inc_counter("balance_reads_total")
    logger.info(json.dumps({"event": "balance_read", "user_id": user_id}))
    return BalanceResult(user_id=user_id, balance=encode_amount(balance))


@app.post("/user/{user_id}/transaction", response_model=TransactionResult)
def transaction_endpoint(
    user_id: UserId,
    payload: TransactionRequest,
    service: Annotated[LedgerService, Depends(get_ledger_service)],
    source_type: Annotated[str | None, Header(alias="Source-Type")] = None,
):
    _inc_counter("requests_total")
    outcome = "applied"
    try:
        adjustment = Adjustment(
            account_id=user_id,
            kind=AdjustmentKind.from_state(payload.state),
            amount_minor=decode_amount(payload.amount),
            transaction_id=payload.transaction_id,
            source=SourceType.parse(source_type),
        )
        service.apply_adjustment(adjustment)
        _inc_counter("adjustments_success_total")
        return TransactionResult()
    except InvalidRequest as exc:
        outcome = "invalid_request"
        _inc_counter("invalid_requests_total")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except AccountNotFound as exc:
        outcome = "not_found"
        _inc_counter("not_found_total")
        raise HTTPException(status_code=404, detail="User not found") from exc
    except DuplicateTransaction as exc:
        outcome = "duplicate_transaction"
        _inc_counter("duplicate_transactions_total")
        raise HTTPException(status_code=409, detail="Duplicate transaction") from exc
    except InsufficientFunds as exc:
        outcome = "insufficient_funds"
        _inc_counter("insufficient_funds_total")
        raise HTTPException(status_code=409, detail="Insufficient funds") from exc
    except StorageFailure as exc:
        outcome = "storage_failure"
        _inc_counter("storage_failures_total")
        logger.exception(
            json.dumps(
                {
                    "event": "transaction_failed",
                    "user_id": user_id,
                    "transaction_id": payload.transaction_id,
                }
            )
        )
        raise HTTPException(status_code=500, detail="Internal error") from exc
    finally:
        logger.info(
            json.dumps(
                {
                    "event": "transaction_attempt",
                    "user_id": user_id,
                    "state": payload.state,
                    "source_type": source_type,
                    "transaction_id": payload.transaction_id,
                    "outcome": outcome,
                }
            )
        )
