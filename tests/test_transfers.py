"""
Tests for POST /transactions/transfer.

These tests verify:
  - A transfer debits the source and credits the destination exactly
  - Two sibling TRANSFERENCIA records are filed, linked by relatedAccount
  - Transfers are rejected when the source balance is too low, with no writes
  - Transfers to the same account are rejected by validation and by the service
  - Missing or inactive accounts on either side are rejected (404)
  - A storage failure after both sides are written leaves nothing applied
"""

import uuid
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from banca_api.exceptions import InvalidTransferError
from banca_api.models.account import Account
from banca_api.models.transaction import Transaction, TransactionType
from banca_api.models.user import UserRole
from banca_api.permissions import Caller
from banca_api.services import transaction_service


def transfer_body(source, dest, amount: str) -> dict:
    return {
        "fromAccountId": source.account_id,
        "toAccountId": dest.account_id,
        "amount": amount,
    }


class TestTransfer:

    async def test_transfer_moves_money(self, client, cliente, second_cliente, deposit_as, balance_of):
        """Scenario: A=100, B=0, transfer 40 -> A=60, B=40."""
        await deposit_as(cliente, "100.00")

        response = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, second_cliente, "40.00"),
            headers=cliente.headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert Decimal(data["balances"]["from"]) == Decimal("60.00")
        assert Decimal(data["balances"]["to"]) == Decimal("40.00")

        assert await balance_of(cliente) == Decimal("60.00")
        assert await balance_of(second_cliente) == Decimal("40.00")

    async def test_transfer_files_linked_records(self, client, cliente, second_cliente, deposit_as):
        await deposit_as(cliente, "100.00")

        response = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, second_cliente, "25.50"),
            headers=cliente.headers,
        )
        outgoing = response.json()["transactions"]["out"]
        incoming = response.json()["transactions"]["in"]

        assert outgoing["type"] == incoming["type"] == "TRANSFERENCIA"
        assert Decimal(outgoing["amount"]) == Decimal(incoming["amount"]) == Decimal("25.50")
        assert outgoing["accountId"] == cliente.account_id
        assert outgoing["relatedAccountId"] == second_cliente.account_id
        assert incoming["accountId"] == second_cliente.account_id
        assert incoming["relatedAccountId"] == cliente.account_id
        assert outgoing["id"] != incoming["id"]

    async def test_transfer_insufficient_funds(
        self, client, cliente, second_cliente, admin, deposit_as, balance_of
    ):
        await deposit_as(cliente, "10.00")

        response = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, second_cliente, "10.01"),
            headers=cliente.headers,
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "insufficient_funds"
        assert Decimal(response.json()["available"]) == Decimal("10.00")

        assert await balance_of(cliente) == Decimal("10.00")
        assert await balance_of(second_cliente) == Decimal("0")
        ledger = await client.get("/transactions/all", headers=admin.headers)
        assert [t["type"] for t in ledger.json()["transactions"]] == ["DEPOSITO"]

    async def test_transfer_entire_balance(self, client, cliente, second_cliente, deposit_as, balance_of):
        await deposit_as(cliente, "33.33")

        response = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, second_cliente, "33.33"),
            headers=cliente.headers,
        )
        assert response.status_code == 201
        assert await balance_of(cliente) == Decimal("0")
        assert await balance_of(second_cliente) == Decimal("33.33")

    async def test_transfer_to_same_account_rejected(self, client, cliente, deposit_as):
        await deposit_as(cliente, "50.00")

        response = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, cliente, "10.00"),
            headers=cliente.headers,
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "validation_error"

    async def test_transfer_to_unknown_account(self, client, cliente, deposit_as, balance_of):
        await deposit_as(cliente, "50.00")

        response = await client.post(
            "/transactions/transfer",
            json={
                "fromAccountId": cliente.account_id,
                "toAccountId": str(uuid.uuid4()),
                "amount": "10.00",
            },
            headers=cliente.headers,
        )
        assert response.status_code == 404
        assert await balance_of(cliente) == Decimal("50.00")

    async def test_transfer_to_inactive_account(
        self, client, cliente, second_cliente, admin, deposit_as, balance_of
    ):
        await deposit_as(cliente, "50.00")
        await client.put(f"/accounts/delete/{second_cliente.account_id}", headers=admin.headers)

        response = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, second_cliente, "10.00"),
            headers=cliente.headers,
        )
        assert response.status_code == 404
        assert await balance_of(cliente) == Decimal("50.00")

    async def test_transfer_from_inactive_account(
        self, client, cliente, second_cliente, admin, deposit_as
    ):
        await deposit_as(cliente, "50.00")
        await client.put(f"/accounts/delete/{cliente.account_id}", headers=admin.headers)

        response = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, second_cliente, "10.00"),
            headers=cliente.headers,
        )
        assert response.status_code == 404

    async def test_opposite_transfers_both_apply(self, client, cliente, second_cliente, deposit_as, balance_of):
        """Lock ordering is by id, not by direction; both directions work."""
        await deposit_as(cliente, "100.00")
        await deposit_as(second_cliente, "100.00")

        first = await client.post(
            "/transactions/transfer",
            json=transfer_body(cliente, second_cliente, "30.00"),
            headers=cliente.headers,
        )
        second = await client.post(
            "/transactions/transfer",
            json=transfer_body(second_cliente, cliente, "50.00"),
            headers=second_cliente.headers,
        )
        assert first.status_code == second.status_code == 201
        assert await balance_of(cliente) == Decimal("120.00")
        assert await balance_of(second_cliente) == Decimal("80.00")


class TestTransferAtomicity:
    """A failure after both sides were written must not leave a half-applied transfer."""

    async def test_failure_after_flush_rolls_back_both_sides(
        self, client, cliente, second_cliente, admin, deposit_as, balance_of
    ):
        await deposit_as(cliente, "100.00")
        written = []
        real_flush = AsyncSession.flush

        async def flush_then_fail(self, objects=None):
            # Both balance UPDATEs and both INSERTs are sent, then the store fails
            await real_flush(self, objects)
            result = await self.execute(
                select(Account.balance).where(
                    Account.id.in_([uuid.UUID(cliente.account_id), uuid.UUID(second_cliente.account_id)])
                )
            )
            written.append(sorted(result.scalars().all()))
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        with patch.object(AsyncSession, "flush", flush_then_fail):
            response = await client.post(
                "/transactions/transfer",
                json=transfer_body(cliente, second_cliente, "40.00"),
                headers=cliente.headers,
            )

        assert response.status_code == 500
        assert response.json()["error_type"] == "storage_error"
        # The debit and credit had reached the database before the failure
        assert written == [[Decimal("40.00"), Decimal("60.00")]]

        assert await balance_of(cliente) == Decimal("100.00")
        assert await balance_of(second_cliente) == Decimal("0")
        ledger = await client.get("/transactions/all", headers=admin.headers)
        assert [t["type"] for t in ledger.json()["transactions"]] == ["DEPOSITO"]


class TestTransferService:

    async def test_service_rejects_same_account(self, db_session, cliente, deposit_as):
        await deposit_as(cliente, "50.00")
        caller = Caller(user_id=uuid.UUID(cliente.user_id), username=cliente.username, role=UserRole.CLIENTE)
        account_id = uuid.UUID(cliente.account_id)

        with pytest.raises(InvalidTransferError):
            await transaction_service.transfer(
                db_session, caller, account_id, account_id, Decimal("10.00")
            )

        account = await db_session.get(Account, account_id)
        assert account.balance == Decimal("50.00")
        records = await db_session.execute(
            select(Transaction).where(Transaction.type == TransactionType.TRANSFERENCIA.value)
        )
        assert records.scalars().all() == []
