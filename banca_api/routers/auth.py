"""
Authentication router — registration and login endpoints.

These are the only public (unauthenticated) endpoints in the API besides
the health check. Everything else requires a valid JWT token.

Endpoints:
  POST /auth/register  — Register a customer, open their account, get a token
  POST /auth/login     — Authenticate with email or username and get a token

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - JWT tokens appear only in response bodies, which are not logged.
  - SQLAlchemy's echo mode (DEBUG=True) logs SQL statements, but only
    the Argon2 hash is included in INSERT statements — never the plaintext.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.database import get_db
from banca_api.schemas.auth import (
    UserRegisterRequest,
    UserLoginRequest,
    UserSummary,
    RegisteredAccount,
    RegisterResponse,
    LoginDetails,
    LoginResponse,
)
from banca_api.services import auth_service

router = APIRouter()


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new customer",
)
async def register(
    request: UserRegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new bank customer.

    Creates the User (role CLIENTE) and its GTQ Account in a single atomic
    transaction. Returns a JWT token so the user is immediately logged in.

    - **email**, **username**, **dpi**: Must not already be registered
    - **password**: At least 8 characters, with a lowercase letter and a digit
    - **phone**: 8 digits; **dpi**: 13 digits
    - **monthlyIncome**: At least 100
    """
    user, account, token = await auth_service.register(
        db=db,
        name=request.name,
        surname=request.surname,
        username=request.username,
        email=request.email,
        password=request.password,
        phone=request.phone,
        dpi=request.dpi,
        address=request.address,
        job_name=request.job_name,
        monthly_income=request.monthly_income,
    )

    return RegisterResponse(
        message="User registered",
        user=UserSummary.model_validate(user),
        account=RegisteredAccount.model_validate(account),
        token=token,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email or username plus password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all subsequent requests:

        Authorization: Bearer <token>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 60).
    """
    user, token = await auth_service.login(
        db=db,
        password=request.password,
        email=request.email,
        username=request.username,
    )

    return LoginResponse(
        message="Login successful",
        user_details=LoginDetails(token=token, user=UserSummary.model_validate(user)),
    )
