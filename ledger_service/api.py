"""
HTTP routes for accounts, entries and transfers.
"""
import logging
from fastapi import Depends, FastAPI, Path, Query, Request
from sqlalchemy.exc import SQLAlchemyError
from ledger_common.error_handling import BusinessLogicError, ServiceError, ErrorCodes, add_error_handlers
from ledger_common.schemas import (
    AccountList, AccountResponse, CreateAccountRequest, EntryList, EntryResponse,
    TransferList, TransferRequest, TransferResponse, TransferTxResponse,
)
from ledger_common.settings import settings
from ledger_common.tracing import TraceSpan, request_span, tracing_middleware
from ledger_service.models import Account
from ledger_service.store import SQLStore, TransactionRollbackError, TransferTxParams

logger = logging.getLogger(__name__)

MIN_PAGE_SIZE = 5
MAX_PAGE_SIZE = 10


class Page:
    """page_id/page_size query parameters turned into limit/offset."""

    def __init__(
        self,
        page_id: int = Query(..., ge=1),
        page_size: int = Query(..., ge=MIN_PAGE_SIZE, le=MAX_PAGE_SIZE),
    ):
        self.limit = page_size
        self.offset = (page_id - 1) * page_size


def create_app(store: SQLStore) -> FastAPI:
    app = FastAPI(title="Ledger Service", version="1.0.0")
    app.state.store = store
    add_error_handlers(app)

    app.middleware("http")(tracing_middleware)

    def existing_account(account_id: int) -> Account:
        account = store.get_account(account_id)
        if account is None:
            raise BusinessLogicError(
                ErrorCodes.ACCOUNT_NOT_FOUND,
                f"account [{account_id}] not found",
                context={"account_id": account_id},
            )
        return account

    def valid_account(account_id: int, currency: str) -> Account:
        account = existing_account(account_id)
        if account.currency != currency:
            raise BusinessLogicError(
                ErrorCodes.CURRENCY_MISMATCH,
                f"account [{account.id}] currency mismatch: {account.currency} vs {currency}",
                field="currency",
                context={"account_id": account.id, "account_currency": account.currency},
            )
        return account

    @app.get("/health")
    async def health():
        return {"ok": True, "service": settings.service_name}

    # accounts

    @app.post("/accounts", response_model=AccountResponse)
    def create_account(req: CreateAccountRequest):
        try:
            return store.create_account(owner_name=req.owner_name, currency=req.currency)
        except SQLAlchemyError as e:
            raise ServiceError(ErrorCodes.DATABASE_ERROR, "could not create account", e)

    @app.get("/accounts/{account_id}", response_model=AccountResponse)
    def get_account(account_id: int = Path(..., ge=1)):
        return existing_account(account_id)

    @app.get("/accounts", response_model=AccountList)
    def list_accounts(page: Page = Depends()):
        return store.list_accounts(limit=page.limit, offset=page.offset)

    # entries

    @app.get("/entries/{entry_id}", response_model=EntryResponse)
    def get_entry(entry_id: int = Path(..., ge=1)):
        entry = store.get_entry(entry_id)
        if entry is None:
            raise BusinessLogicError(ErrorCodes.ENTRY_NOT_FOUND, f"entry [{entry_id}] not found")
        return entry

    @app.get("/entries", response_model=EntryList)
    def list_entries(account_id: int = Query(...), page: Page = Depends()):
        return store.list_entries(account_id, limit=page.limit, offset=page.offset)

    # transfers

    @app.post("/transfers", response_model=TransferTxResponse)
    def create_transfer(req: TransferRequest, request: Request):
        valid_account(req.from_account_id, req.currency)
        valid_account(req.to_account_id, req.currency)

        params = TransferTxParams(
            from_account_id=req.from_account_id,
            to_account_id=req.to_account_id,
            amount=req.amount,
        )
        parent = request_span(request)
        span = parent.child("transfer_tx") if parent else TraceSpan("transfer_tx")
        try:
            with span:
                result = store.transfer_tx(params, span=span)
        except (SQLAlchemyError, TransactionRollbackError) as e:
            raise ServiceError(ErrorCodes.TRANSFER_FAILED, str(e), e)

        logger.info(
            f"💸 Transfer {result.transfer.id}: {params.from_account_id} -> {params.to_account_id}, "
            f"{params.amount} {req.currency}"
        )
        return TransferTxResponse.model_validate(result)

    @app.get("/transfers/{transfer_id}", response_model=TransferResponse)
    def get_transfer(transfer_id: int = Path(..., ge=1)):
        transfer = store.get_transfer(transfer_id)
        if transfer is None:
            raise BusinessLogicError(ErrorCodes.TRANSFER_NOT_FOUND, f"transfer [{transfer_id}] not found")
        return transfer

    @app.get("/transfers", response_model=TransferList)
    def list_transfers(
        from_account_id: int = Query(...),
        to_account_id: int = Query(...),
        page: Page = Depends(),
    ):
        return store.list_transfers(from_account_id, to_account_id, limit=page.limit, offset=page.offset)

    return app
