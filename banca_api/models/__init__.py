"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all runs
  2. String-based relationship targets ("Account", "User") resolve
"""

from banca_api.models.user import User, UserRole  # noqa: F401
from banca_api.models.account import Account  # noqa: F401
from banca_api.models.transaction import Transaction, TransactionType  # noqa: F401
