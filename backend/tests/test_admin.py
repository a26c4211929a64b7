"""
Tests for admin user management, notices and record management.
"""
from decimal import Decimal

import pytest
from httpx import AsyncClient

from app.core.access import ALL_TABS
from app.models.user import UserRole


class TestUserAdministration:

    @pytest.mark.asyncio
    async def test_register_user(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/admin/users",
            json={
                "email": "Usher.Two@RhemaChurch.org",
                "full_name": "Usher Two",
                "password": "Secret123",
                "passwordConfirm": "Secret123",
                "role": "usher",
                "branch": "Moshi",
                "allowed_tabs": ["mahadhurio", "home"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        data = response.json()
        assert data["email"] == "usher.two@rhemachurch.org"
        assert data["allowed_tabs"] == ["mahadhurio", "home"]

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "usher.two@rhemachurch.org", "password": "Secret123"},
        )
        assert login.status_code == 200
        assert login.json()["tabs"] == ["mahadhurio", "home"]

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, admin_user, admin_headers: dict):
        response = await client.post(
            "/api/v1/admin/users",
            json={
                "email": admin_user.email,
                "full_name": "Copy",
                "password": "Secret123",
                "passwordConfirm": "Secret123",
            },
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_register_unknown_tab(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/admin/users",
            json={
                "email": "someone@rhemachurch.org",
                "full_name": "Someone",
                "password": "Secret123",
                "passwordConfirm": "Secret123",
                "allowed_tabs": ["casino"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_non_admin_is_refused(self, client: AsyncClient, pastor_headers: dict):
        response = await client.get("/api/v1/admin/users", headers=pastor_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_users_grouped_by_role(
        self, client: AsyncClient, admin_headers: dict, pastor_user, usher_user
    ):
        response = await client.get("/api/v1/admin/users", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["all_tabs"] == list(ALL_TABS)
        assert [u["user"]["id"] for u in data["groups"]["pastor"]] == [pastor_user.id]
        assert data["groups"]["usher"][0]["tabs"] == ["home", "usajili", "reports", "profile"]
        assert data["groups"]["admin"][0]["tabs"] == list(ALL_TABS)

    @pytest.mark.asyncio
    async def test_replace_and_clear_tabs(self, client: AsyncClient, admin_headers: dict, usher_user):
        response = await client.put(
            f"/api/v1/admin/users/{usher_user.id}/tabs",
            json={"allowed_tabs": ["wokovu", "ushuhuda"]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["tabs"] == ["wokovu", "ushuhuda"]

        response = await client.put(
            f"/api/v1/admin/users/{usher_user.id}/tabs",
            json={"allowed_tabs": []},
            headers=admin_headers,
        )
        assert response.json()["tabs"] == ["home", "usajili", "reports", "profile"]
        assert usher_user.allowed_tabs is None

    @pytest.mark.asyncio
    async def test_toggle_tab(self, client: AsyncClient, admin_headers: dict, finance_user):
        response = await client.post(
            f"/api/v1/admin/users/{finance_user.id}/tabs/toggle",
            json={"tab": "bajeti"},
            headers=admin_headers,
        )
        assert response.json()["tabs"] == ["finance", "profile", "messages", "bajeti"]

        response = await client.post(
            f"/api/v1/admin/users/{finance_user.id}/tabs/toggle",
            json={"tab": "messages"},
            headers=admin_headers,
        )
        assert response.json()["tabs"] == ["finance", "profile", "bajeti"]

    @pytest.mark.asyncio
    async def test_update_role_and_branch(self, client: AsyncClient, admin_headers: dict, plain_user):
        response = await client.patch(
            f"/api/v1/admin/users/{plain_user.id}",
            json={"role": "media", "branch": "Dodoma"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["role"] == "media"
        assert data["user"]["branch"] == "Dodoma"
        assert data["tabs"] == ["media", "profile", "messages"]

    @pytest.mark.asyncio
    async def test_delete_user(self, client: AsyncClient, admin_headers: dict, admin_user, plain_user):
        response = await client.delete(f"/api/v1/admin/users/{plain_user.id}", headers=admin_headers)
        assert response.status_code == 204

        response = await client.get(f"/api/v1/admin/users/{plain_user.id}", headers=admin_headers)
        assert response.status_code == 404

        own = await client.delete(f"/api/v1/admin/users/{admin_user.id}", headers=admin_headers)
        assert own.status_code == 400

    @pytest.mark.asyncio
    async def test_inactive_list_shows_countdown(self, client: AsyncClient, admin_headers: dict, make_user):
        await make_user(UserRole.USHER, is_active=False)
        response = await client.get("/api/v1/admin/users/inactive", headers=admin_headers)
        assert response.status_code == 200
        items = response.json()
        assert len(items) == 1
        assert items[0]["can_reactivate"] is False
        assert items[0]["message"] == "This account has not requested reactivation."


class TestNotices:

    @pytest.mark.asyncio
    async def test_notice_lifecycle(self, client: AsyncClient, admin_headers: dict):
        empty = await client.get("/api/v1/notices/latest")
        assert empty.status_code == 200
        assert empty.json() is None

        first = await client.post(
            "/api/v1/admin/notices",
            json={"title": "Ibada", "message": "Ibada ya Jumapili saa 3 asubuhi"},
            headers=admin_headers,
        )
        assert first.status_code == 201

        listing = await client.get("/api/v1/admin/notices", headers=admin_headers)
        assert listing.json()["totalItems"] == 1

        latest = await client.get("/api/v1/notices/latest")
        assert latest.json()["title"] == "Ibada"

        deleted = await client.delete(f"/api/v1/admin/notices/{first.json()['id']}", headers=admin_headers)
        assert deleted.status_code == 204
        assert (await client.get("/api/v1/notices/latest")).json() is None


class TestRecordManagement:

    async def _attendance(self, client: AsyncClient, headers: dict, member_id: str, day: str) -> dict:
        response = await client.post(
            "/api/v1/registration/attendance",
            json={
                "member_id": member_id,
                "attendance_date": day,
                "attendance_type": "mshiriki",
                "service_type": "Ibada ya kwanza",
            },
            headers=headers,
        )
        assert response.status_code == 200, response.text
        return response.json()["record"]

    @pytest.mark.asyncio
    async def test_edit_member_and_attendance(self, client: AsyncClient, admin_headers: dict, test_member):
        tables = await client.get("/api/v1/admin/records", headers=admin_headers)
        assert tables.json()["tables"] == [
            "members", "attendance", "salvations", "testimonies", "trainings", "contributions",
        ]

        member = await client.patch(
            f"/api/v1/admin/records/members/{test_member.id}",
            json={"full_name": "Neema J. Mushi", "phone": None},
            headers=admin_headers,
        )
        assert member.status_code == 200, member.text
        assert member.json()["full_name"] == "Neema J. Mushi"
        assert member.json()["phone"] is None
        assert member.json()["member_number"] == "RHEMA001"

        row = await self._attendance(client, admin_headers, test_member.id, "2024-07-07")
        edited = await client.patch(
            f"/api/v1/admin/records/attendance/{row['id']}",
            json={"service_type": "Ibada ya pili"},
            headers=admin_headers,
        )
        assert edited.json()["service_type"] == "Ibada ya pili"

        listing = await client.get("/api/v1/admin/records/attendance", headers=admin_headers)
        assert listing.json()["totalItems"] == 1
        assert listing.json()["items"][0]["service_type"] == "Ibada ya pili"

    @pytest.mark.asyncio
    async def test_edit_rejects_bad_input(self, client: AsyncClient, admin_headers: dict, test_member):
        url = f"/api/v1/admin/records/members/{test_member.id}"

        number = await client.patch(url, json={"member_number": "RHEMA999"}, headers=admin_headers)
        assert number.status_code == 422

        empty = await client.patch(url, json={}, headers=admin_headers)
        assert empty.status_code == 400

        null_name = await client.patch(url, json={"full_name": None}, headers=admin_headers)
        assert null_name.status_code == 422
        assert "full_name" in null_name.json()["detail"]

        unknown_table = await client.patch(
            f"/api/v1/admin/records/budgets/{test_member.id}", json={"title": "x"}, headers=admin_headers
        )
        assert unknown_table.status_code == 404

        missing = await client.patch(
            "/api/v1/admin/records/members/doesnotexist123", json={"full_name": "x"}, headers=admin_headers
        )
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_training_status_is_not_editable(self, client: AsyncClient, admin_headers: dict, test_member):
        await client.post(
            "/api/v1/registration/salvations",
            json={"member_id": test_member.id, "salvation_date": "2024-06-02"},
            headers=admin_headers,
        )
        training = await client.post(
            "/api/v1/registration/trainings",
            json={"member_id": test_member.id, "lesson": "Ubatizo", "training_date": "2024-06-09"},
            headers=admin_headers,
        )
        assert training.status_code == 201

        response = await client.patch(
            f"/api/v1/admin/records/trainings/{training.json()['id']}",
            json={"status": "approved"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_moving_attendance_onto_taken_day_conflicts(
        self, client: AsyncClient, admin_headers: dict, test_member
    ):
        await self._attendance(client, admin_headers, test_member.id, "2024-07-07")
        second = await self._attendance(client, admin_headers, test_member.id, "2024-07-14")

        clash = await client.patch(
            f"/api/v1/admin/records/attendance/{second['id']}",
            json={"attendance_date": "2024-07-07"},
            headers=admin_headers,
        )
        assert clash.status_code == 409
        assert clash.json()["detail"]["code"] == "duplicate_record"

        listing = await client.get("/api/v1/admin/records/attendance", headers=admin_headers)
        dates = sorted(row["attendance_date"] for row in listing.json()["items"])
        assert dates == ["2024-07-07", "2024-07-14"]

    @pytest.mark.asyncio
    async def test_contribution_edit_recomputes_remaining(self, client: AsyncClient, admin_headers: dict):
        created = await client.post(
            "/api/v1/finance/contributions",
            json={"full_name": "Mgeni", "contribution_type": "Jengo", "pledged": "100000", "paid": "20000"},
            headers=admin_headers,
        )
        assert created.status_code == 201, created.text

        edited = await client.patch(
            f"/api/v1/admin/records/contributions/{created.json()['id']}",
            json={"paid": "50000", "discount": "10000"},
            headers=admin_headers,
        )
        assert edited.status_code == 200, edited.text
        assert Decimal(edited.json()["remaining"]) == Decimal("40000")

        overpaid = await client.patch(
            f"/api/v1/admin/records/contributions/{created.json()['id']}",
            json={"pledged": "30000"},
            headers=admin_headers,
        )
        assert Decimal(overpaid.json()["remaining"]) == Decimal("0")

        negative = await client.patch(
            f"/api/v1/admin/records/contributions/{created.json()['id']}",
            json={"paid": "-5"},
            headers=admin_headers,
        )
        assert negative.status_code == 422

    @pytest.mark.asyncio
    async def test_bulk_delete_reports_missing_ids(self, client: AsyncClient, admin_headers: dict):
        ids = []
        for witness in ("Neema", "Baraka", "Upendo"):
            response = await client.post(
                "/api/v1/registration/testimonies",
                json={"testimony_date": "2024-06-02", "witness_name": witness, "testimony": "Nimepona"},
                headers=admin_headers,
            )
            ids.append(response.json()["id"])

        response = await client.post(
            "/api/v1/admin/records/testimonies/bulk-delete",
            json={"ids": [ids[0], ids[1], ids[0], "doesnotexist123"]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"deleted": 2, "missing": ["doesnotexist123"]}

        listing = await client.get("/api/v1/admin/records/testimonies", headers=admin_headers)
        assert [row["id"] for row in listing.json()["items"]] == [ids[2]]

        empty = await client.post(
            "/api/v1/admin/records/testimonies/bulk-delete", json={"ids": []}, headers=admin_headers
        )
        assert empty.status_code == 422

    @pytest.mark.asyncio
    async def test_deleting_member_removes_their_attendance(
        self, client: AsyncClient, admin_headers: dict, test_member
    ):
        await self._attendance(client, admin_headers, test_member.id, "2024-07-07")

        response = await client.delete(f"/api/v1/admin/records/members/{test_member.id}", headers=admin_headers)
        assert response.status_code == 204

        members = await client.get("/api/v1/admin/records/members", headers=admin_headers)
        assert members.json()["totalItems"] == 0
        attendance = await client.get("/api/v1/admin/records/attendance", headers=admin_headers)
        assert attendance.json()["totalItems"] == 0

        again = await client.delete(f"/api/v1/admin/records/members/{test_member.id}", headers=admin_headers)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_non_admin_is_refused(self, client: AsyncClient, usher_headers: dict, test_member):
        edit = await client.patch(
            f"/api/v1/admin/records/members/{test_member.id}",
            json={"full_name": "Mtu Mwingine"},
            headers=usher_headers,
        )
        assert edit.status_code == 403

        bulk = await client.post(
            "/api/v1/admin/records/members/bulk-delete", json={"ids": [test_member.id]}, headers=usher_headers
        )
        assert bulk.status_code == 403
