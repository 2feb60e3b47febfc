"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Logging — configured once, at import time, from LOG_LEVEL
  2. Lifespan manager — handles startup/shutdown (DB tables, default users)
  3. CORS middleware — allows frontend origins to make cross-origin requests
  4. Exception handlers — maps domain errors to the JSON error envelope
  5. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn banca_api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from banca_api.config import settings
from banca_api.database import engine, Base, AsyncSessionLocal
from banca_api.exceptions import register_exception_handlers
from banca_api.routers import auth, users, accounts, transactions
from banca_api.services.user_service import create_default_users


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Creates all database tables if they don't exist, then provisions the
      default user for each role (when SEED_DEFAULT_USERS is enabled).

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.SEED_DEFAULT_USERS:
        async with AsyncSessionLocal() as session:
            created = await create_default_users(session)
            await session.commit()
        if created:
            logger.info("Provisioned %d default user(s)", len(created))

    logger.info("%s %s started (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Banking REST API: users, accounts, deposits, transfers, purchases and credits",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers and container orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
