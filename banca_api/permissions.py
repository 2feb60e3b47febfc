"""
Role table and the Caller capability object.

The access gate (banca_api.dependencies) authenticates the request, looks up
which roles may run the requested operation in PERMISSIONS, and hands the
route a Caller. Services receive that Caller as an explicit argument instead
of reading the user from ambient request state; they use it to attribute
log lines, never to re-check roles.
"""

import uuid
from dataclasses import dataclass

from banca_api.models.user import User, UserRole


ADMIN = UserRole.ADMIN_GLOBAL
MANAGER = UserRole.GERENTE_SUCURSAL
CASHIER = UserRole.CAJERO
CLIENT = UserRole.CLIENTE

ALL_ROLES = frozenset(UserRole)

# Operation name -> roles allowed to invoke it
PERMISSIONS: dict[str, frozenset[UserRole]] = {
    # Ledger
    "transactions:read": frozenset({ADMIN, MANAGER, CASHIER}),
    "transactions:deposit": frozenset({ADMIN, CASHIER, CLIENT}),
    "transactions:transfer": frozenset({ADMIN, CLIENT}),
    "transactions:purchase": frozenset({ADMIN, CLIENT}),
    "transactions:credit": frozenset({ADMIN, CASHIER}),
    "transactions:update": frozenset({ADMIN, MANAGER}),
    "transactions:delete": frozenset({ADMIN}),
    # Accounts
    "accounts:create": frozenset({ADMIN, MANAGER}),
    "accounts:list": frozenset({ADMIN, MANAGER}),
    "accounts:read": ALL_ROLES,
    "accounts:update": frozenset({ADMIN, MANAGER}),
    "accounts:deactivate": frozenset({ADMIN}),
    # Users
    "users:list": frozenset({ADMIN, MANAGER}),
    "users:read": ALL_ROLES,
    "users:update": frozenset({ADMIN, MANAGER}),
    "users:deactivate": frozenset({ADMIN}),
}


@dataclass(frozen=True)
class Caller:
    """An authenticated, active user as seen by the service layer."""
    user_id: uuid.UUID
    username: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(user_id=user.id, username=user.username, role=user.role)

    def can(self, operation: str) -> bool:
        return self.role in PERMISSIONS[operation]

    def __str__(self) -> str:
        return f"{self.username} ({self.role.value})"
