"""
User model — the authentication identity and customer profile.

Each User represents a login credential (email/username + hashed password),
the personal data the bank keeps on file, and a role that decides which
operations the access gate lets through.

User roles:
  - ADMIN_GLOBAL: System administrator, every operation
  - GERENTE_SUCURSAL: Branch manager, account/user management and ledger edits
  - CAJERO: Cashier, deposits, credits and ledger reads
  - CLIENTE: Bank customer, the role assigned at registration

The password is stored as an Argon2id hash, never in plaintext.

Soft delete:
  `status` = False deactivates the user. Deactivated users cannot log in and
  their tokens are rejected, but their data (and account) is preserved.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Enum, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from banca_api.database import Base


class UserRole(str, enum.Enum):
    """
    The role a user holds within the bank.

    Inherits from str so the value serializes naturally to JSON.
    """
    ADMIN_GLOBAL = "ADMIN_GLOBAL"
    GERENTE_SUCURSAL = "GERENTE_SUCURSAL"
    CAJERO = "CAJERO"
    CLIENTE = "CLIENTE"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    surname: Mapped[str] = mapped_column(String(50), nullable=False)

    # Login identifiers: both unique, either can be used to log in
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2 hash of the password
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # 8-digit local phone number
    phone: Mapped[str] = mapped_column(String(8), nullable=False)

    # Documento Personal de Identificación: 13-digit national id
    dpi: Mapped[str] = mapped_column(
        String(13),
        unique=True,
        nullable=False,
    )

    address: Mapped[str] = mapped_column(String(100), nullable=False)
    job_name: Mapped[str] = mapped_column(String(50), nullable=False)

    monthly_income: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.CLIENTE,
        nullable=False,
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
    # One-to-one: the UNIQUE constraint on accounts.user_id backs uselist=False
    account: Mapped["Account"] = relationship(
        back_populates="user",
        uselist=False,
    )
