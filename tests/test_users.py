"""
Tests for user management endpoints.
"""

import uuid
from decimal import Decimal


class TestUserReads:

    async def test_list_active_users(self, client, cliente, second_cliente, admin):
        await client.put(f"/users/delete/{second_cliente.user_id}", headers=admin.headers)

        response = await client.get("/users/all", headers=admin.headers)
        assert response.status_code == 200
        ids = {user["id"] for user in response.json()["users"]}
        assert cliente.user_id in ids
        assert admin.user_id in ids
        assert second_cliente.user_id not in ids

    async def test_users_never_expose_password_hash(self, client, cliente, gerente):
        response = await client.get("/users/all", headers=gerente.headers)
        for user in response.json()["users"]:
            assert "hashedPassword" not in user
            assert "password" not in user

    async def test_get_user(self, client, cliente, cajero):
        response = await client.get(f"/users/user/{cliente.user_id}", headers=cajero.headers)
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["username"] == cliente.username
        assert user["role"] == "CLIENTE"
        assert Decimal(user["monthlyIncome"]) == Decimal("5000.00")

    async def test_get_unknown_user(self, client, cliente):
        response = await client.get(f"/users/user/{uuid.uuid4()}", headers=cliente.headers)
        assert response.status_code == 404


class TestAdminUpdate:

    async def test_update_profile_and_role(self, client, cliente, admin):
        response = await client.put(
            f"/users/update/{cliente.user_id}",
            json={"jobName": "Analyst", "role": "CAJERO", "email": "NEW@example.com"},
            headers=admin.headers,
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["jobName"] == "Analyst"
        assert user["role"] == "CAJERO"
        assert user["email"] == "new@example.com"

        # The new role takes effect on the existing token
        ledger = await client.get("/transactions/all", headers=cliente.headers)
        assert ledger.status_code == 200

    async def test_update_to_taken_username(self, client, cliente, second_cliente, gerente):
        response = await client.put(
            f"/users/update/{cliente.user_id}",
            json={"username": second_cliente.username},
            headers=gerente.headers,
        )
        assert response.status_code == 409
        assert response.json()["field"] == "username"

    async def test_update_keeping_own_email(self, client, cliente, admin):
        response = await client.put(
            f"/users/update/{cliente.user_id}",
            json={"email": cliente.email},
            headers=admin.headers,
        )
        assert response.status_code == 200

    async def test_update_invalid_role(self, client, cliente, admin):
        response = await client.put(
            f"/users/update/{cliente.user_id}",
            json={"role": "SUPERUSER"},
            headers=admin.headers,
        )
        assert response.status_code == 400

    async def test_cliente_cannot_update_users(self, client, cliente, second_cliente):
        response = await client.put(
            f"/users/update/{second_cliente.user_id}",
            json={"role": "ADMIN_GLOBAL"},
            headers=cliente.headers,
        )
        assert response.status_code == 403


class TestDeactivation:

    async def test_deactivated_user_locked_out(self, client, cliente, admin):
        response = await client.put(f"/users/delete/{cliente.user_id}", headers=admin.headers)
        assert response.status_code == 200
        assert response.json()["user"]["status"] is False

        blocked = await client.get(f"/accounts/{cliente.account_id}", headers=cliente.headers)
        assert blocked.status_code == 401

    async def test_deactivate_twice(self, client, cliente, admin):
        await client.put(f"/users/delete/{cliente.user_id}", headers=admin.headers)
        response = await client.put(f"/users/delete/{cliente.user_id}", headers=admin.headers)
        assert response.status_code == 404


class TestUpdateMe:

    async def test_update_own_profile(self, client, cliente):
        response = await client.put(
            "/users/me",
            json={"phone": "44443333", "address": "Antigua Guatemala"},
            headers=cliente.headers,
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["phone"] == "44443333"
        assert user["address"] == "Antigua Guatemala"
        assert user["id"] == cliente.user_id

    async def test_change_password(self, client, cliente):
        response = await client.put(
            "/users/me",
            json={"password": "Nueva2024pass"},
            headers=cliente.headers,
        )
        assert response.status_code == 200

        old = await client.post(
            "/auth/login",
            json={"username": cliente.username, "password": "SecurePass123!"},
        )
        new = await client.post(
            "/auth/login",
            json={"username": cliente.username, "password": "Nueva2024pass"},
        )
        assert old.status_code == 401
        assert new.status_code == 200

    async def test_cannot_change_own_role(self, client, cliente):
        response = await client.put(
            "/users/me",
            json={"role": "ADMIN_GLOBAL"},
            headers=cliente.headers,
        )
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "CLIENTE"

    async def test_low_income_rejected(self, client, cliente):
        response = await client.put(
            "/users/me",
            json={"monthlyIncome": "50"},
            headers=cliente.headers,
        )
        assert response.status_code == 400

    async def test_requires_authentication(self, client):
        response = await client.put("/users/me", json={"phone": "44443333"})
        assert response.status_code == 401
