"""
Account model — the single bank account owned by a User.

Each account has:
  - A unique account number (12 uppercase hex characters, generated once)
  - A balance, stored as NUMERIC(18, 2) and handled as decimal.Decimal
  - A currency code (GTQ by default, ISO 4217)
  - A status flag: False means the account was soft-deleted

Balance management:
  The balance is changed only by the transaction service (or an admin
  correction) while the row is locked for update. A CHECK constraint rejects
  any write that would leave the balance negative, the last line of defense
  behind the service's insufficient-funds check.

Why Decimal?
  Binary floats cannot represent most cent values exactly (0.1 + 0.2 != 0.3),
  so balances built from many small deposits drift. NUMERIC columns with
  Decimal arithmetic keep every amount exact to the cent.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from banca_api.database import Base


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_non_negative_balance"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Owner: UNIQUE enforces one account per user
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )

    account_number: Mapped[str] = mapped_column(
        String(12),
        unique=True,
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0"),
    )

    # ISO 4217 currency code
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="GTQ",
    )

    status: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    user: Mapped["User"] = relationship(
        back_populates="account",
    )
