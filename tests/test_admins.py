"""Admin relay test suite — create, list and delete HR staff accounts."""

from __future__ import annotations

from sqlalchemy import select

from hr_portal.admins.models import Admin
from hr_portal.auth.models import UserAccount

NEW_ADMIN = {
    "name": "Kabir Malhotra",
    "email": "kabir@example.com",
    "password": "admin-pass-1",
}


class TestCreateAdmin:

    async def test_creates_admin_with_default_title(self, client, db, admin_headers):
        resp = await client.post("/api/admins", json=NEW_ADMIN, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["admin"]["role"] == "HR Manager"
        assert body["admin"]["email"] == "kabir@example.com"
        assert body["message"] == "Admin Kabir Malhotra created successfully"

        account = (
            await db.execute(select(UserAccount).where(UserAccount.email == "kabir@example.com"))
        ).scalars().one()
        assert account.role.value == "admin"

    async def test_custom_title(self, client, admin_headers):
        resp = await client.post(
            "/api/admins", json={**NEW_ADMIN, "role": "Payroll Lead"}, headers=admin_headers,
        )
        assert resp.json()["admin"]["role"] == "Payroll Lead"

    async def test_new_admin_can_use_admin_portal(self, client, admin_headers):
        await client.post("/api/admins", json=NEW_ADMIN, headers=admin_headers)

        resp = await client.post(
            "/api/auth/login",
            json={"email": NEW_ADMIN["email"], "password": NEW_ADMIN["password"], "portal": "admin"},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "admin"
        assert resp.json()["user"]["title"] == "HR Manager"

    async def test_duplicate_email(self, client, admin_headers, make_admin):
        await make_admin(email="kabir@example.com")

        resp = await client.post("/api/admins", json=NEW_ADMIN, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json()["detail"] == "An admin with this email already exists"

    async def test_missing_fields(self, client, admin_headers):
        resp = await client.post("/api/admins", json={"name": "No Email"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["errors"]["missing"] == ["email", "password"]

    async def test_short_password(self, client, admin_headers):
        resp = await client.post(
            "/api/admins", json={**NEW_ADMIN, "password": "1234567"}, headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Password must be at least 8 characters"

    async def test_employee_forbidden(self, client, employee_headers):
        resp = await client.post("/api/admins", json=NEW_ADMIN, headers=employee_headers)
        assert resp.status_code == 403


class TestDeleteAdmin:

    async def test_delete_other_admin(self, client, db, admin_headers, make_admin):
        other = await make_admin(name="Leaving Admin")
        account_id = other.account_id

        resp = await client.delete(f"/api/admins/{other.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Admin Leaving Admin deleted successfully"}

        db.expunge_all()
        assert await db.get(Admin, other.id) is None
        assert await db.get(UserAccount, account_id) is None

    async def test_cannot_delete_self(self, client, admin, admin_headers):
        resp = await client.delete(f"/api/admins/{admin.id}", headers=admin_headers)
        assert resp.status_code == 403

    async def test_list_admins(self, client, admin, admin_headers, make_admin):
        await make_admin(name="Second Admin")

        resp = await client.get("/api/admins", headers=admin_headers)
        assert resp.status_code == 200
        assert {a["name"] for a in resp.json()} == {admin.name, "Second Admin"}
