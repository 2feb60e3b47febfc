"""
Transaction model — the ledger record of every money movement.

Every deposit, purchase and credit files one Transaction against the account
it touched. A transfer files TWO: one against the source account and one
against the destination, each pointing at the other side through
`related_account_id`. The two records are siblings; nothing else ties them.

Key fields:
  - type: DEPOSITO, TRANSFERENCIA, COMPRA or CREDITO
  - amount: never negative (CHECK constraint); the API requires > 0
  - related_account_id: the counterparty of a transfer, NULL otherwise
  - reversed: advisory flag for admin corrections, never set by an operation

Corrections:
  Admins may patch or delete records. Neither touches any balance: the
  ledger is a record of what happened, not the source of the balance.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from banca_api.database import Base


class TransactionType(str, enum.Enum):
    DEPOSITO = "DEPOSITO"
    TRANSFERENCIA = "TRANSFERENCIA"
    COMPRA = "COMPRA"
    CREDITO = "CREDITO"


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_non_negative_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # The account this record is filed against
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
    )

    # Counterparty of a transfer (NULL for deposits, purchases and credits)
    related_account_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=True,
        index=True,
    )

    # When the movement happened, indexed for listing by date
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    reversed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

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

    # --- Relationships (loaded explicitly with selectinload for display) ---
    account: Mapped["Account"] = relationship(
        foreign_keys=[account_id],
    )
    related_account: Mapped[Optional["Account"]] = relationship(
        foreign_keys=[related_account_id],
    )
