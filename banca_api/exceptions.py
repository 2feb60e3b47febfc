"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientFundsError)
without importing HTTP concepts. The handlers registered here translate them
into the API's JSON envelope:

    {"success": false, "message": "...", "error_type": "..."}

Exception hierarchy:
    BankAPIError (base)
    ├── InsufficientFundsError   — debit/transfer when balance too low      (400)
    ├── InvalidTransferError     — transfer from an account to itself       (400)
    ├── AccountNotFoundError     — account missing or inactive              (404)
    ├── TransactionNotFoundError — ledger record missing                    (404)
    ├── UserNotFoundError        — user missing or inactive                 (404)
    ├── DuplicateUserError       — email/username/DPI already registered    (409)
    ├── DuplicateAccountError    — user already owns an account             (409)
    ├── InvalidCredentialsError  — login failed                             (401)
    └── StorageError             — the store could not complete a write     (500)

Request validation errors and any SQLAlchemyError are mapped here as well, so
every failure leaves the API in the same envelope shape.
"""

import logging
import traceback
import uuid
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from banca_api.config import settings


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankAPIError(Exception):
    """Base exception for all Banca API domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class InsufficientFundsError(BankAPIError):
    """
    Raised when a purchase or transfer would cause a negative balance.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested: The amount the caller tried to debit.
        available: The current balance of the account.
    """

    def __init__(self, account_id: uuid.UUID, requested: Decimal, available: Decimal):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds: requested {requested}, available {available}"
        )


class InvalidTransferError(BankAPIError):
    """Raised when a transfer names the same account as source and destination."""

    def __init__(self, account_id: uuid.UUID):
        self.account_id = account_id
        super().__init__(f"Cannot transfer from account {account_id} to itself")


class AccountNotFoundError(BankAPIError):
    """Raised when an account does not exist (or is inactive, where that matters)."""

    def __init__(self, account_id: uuid.UUID, detail: str | None = None):
        self.account_id = account_id
        super().__init__(detail or f"Account {account_id} not found or inactive")


class TransactionNotFoundError(BankAPIError):
    """Raised when a transaction id does not resolve."""

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class UserNotFoundError(BankAPIError):
    """Raised when a user does not exist or has been deactivated."""

    def __init__(self, user_id: uuid.UUID, detail: str | None = None):
        self.user_id = user_id
        super().__init__(detail or f"User {user_id} not found or inactive")


class DuplicateUserError(BankAPIError):
    """Raised when a unique user field (email, username, dpi) is already taken."""

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"The {field} {value} is already registered")


class DuplicateAccountError(BankAPIError):
    """Raised when opening an account for a user who already owns one."""

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} already has an account")


class InvalidCredentialsError(BankAPIError):
    """Raised when login credentials are incorrect or the user is deactivated."""

    def __init__(self):
        super().__init__("Invalid credentials or deactivated user")


class StorageError(BankAPIError):
    """Raised when the backing store cannot complete an operation."""


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _envelope(status_code: int, message: str, error_type: str, **extra) -> JSONResponse:
    content = {"success": False, "message": message, "error_type": error_type}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def _internal_error(exc: Exception, error_type: str) -> JSONResponse:
    # Details only leave the process outside production
    if settings.is_production:
        return _envelope(500, "Internal server error, please try again later", error_type)
    return _envelope(
        500,
        "Internal server error",
        error_type,
        error=str(exc),
        stack=traceback.format_exception(type(exc), exc, exc.__traceback__),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Called once during app creation in main.py.
    """

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"] if part != "body"),
                "message": err["msg"],
                "value": err.get("input"),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(
                {
                    "success": False,
                    "message": "Invalid request fields",
                    "error_type": "validation_error",
                    "errors": errors,
                }
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        return _envelope(
            400,
            exc.detail,
            "insufficient_funds",
            requested=str(exc.requested),
            available=str(exc.available),
        )

    @app.exception_handler(InvalidTransferError)
    async def invalid_transfer_handler(
        request: Request, exc: InvalidTransferError
    ) -> JSONResponse:
        return _envelope(400, exc.detail, "invalid_transfer")

    @app.exception_handler(AccountNotFoundError)
    async def account_not_found_handler(
        request: Request, exc: AccountNotFoundError
    ) -> JSONResponse:
        return _envelope(404, exc.detail, "account_not_found")

    @app.exception_handler(TransactionNotFoundError)
    async def transaction_not_found_handler(
        request: Request, exc: TransactionNotFoundError
    ) -> JSONResponse:
        return _envelope(404, exc.detail, "transaction_not_found")

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(
        request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        return _envelope(404, exc.detail, "user_not_found")

    @app.exception_handler(DuplicateUserError)
    async def duplicate_user_handler(
        request: Request, exc: DuplicateUserError
    ) -> JSONResponse:
        return _envelope(409, exc.detail, "duplicate_user", field=exc.field)

    @app.exception_handler(DuplicateAccountError)
    async def duplicate_account_handler(
        request: Request, exc: DuplicateAccountError
    ) -> JSONResponse:
        return _envelope(409, exc.detail, "duplicate_account")

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        return _envelope(401, exc.detail, "invalid_credentials")

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc.detail)
        return _internal_error(exc, "storage_error")

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        logger.exception("Database failure on %s %s", request.method, request.url.path)
        return _internal_error(exc, "storage_error")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _internal_error(exc, "internal_error")
