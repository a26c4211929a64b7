"""
Tests for login checks, reactivation and the password reset sequence.
"""
import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient

from app.models.user import UserRole, ResetStatus
from app.core.security import verify_password

PASSWORD = "TestPass123"


async def login(client: AsyncClient, email: str, password: str = PASSWORD):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, pastor_user):
        response = await login(client, pastor_user.email)
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["token"]
        assert data["record"]["email"] == pastor_user.email
        assert "summary" in data["tabs"]
        assert data["panels"] == ["pastor"]
        assert pastor_user.last_login is not None
        assert pastor_user.login_attempts == 0

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: AsyncClient):
        response = await login(client, "nobody@rhemachurch.org")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_inactive_account(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.USHER, is_active=False)
        response = await login(client, user.email)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "inactive"

    @pytest.mark.asyncio
    async def test_expired_account(self, client: AsyncClient, make_user):
        user = await make_user(
            UserRole.USHER,
            active_until=datetime.now(timezone.utc) - timedelta(days=1),
        )
        response = await login(client, user.email)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "expired"
        assert user.reset_status == ResetStatus.EXPIRED.value
        assert user.active_until is None

    @pytest.mark.asyncio
    async def test_wrong_password_counts_attempts(self, client: AsyncClient, usher_user):
        response = await login(client, usher_user.email, "wrong-password")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_credentials"
        assert usher_user.login_attempts == 1
        assert usher_user.last_failed_login is not None

    @pytest.mark.asyncio
    async def test_lockout_after_five_failures(self, client: AsyncClient, usher_user):
        for _ in range(5):
            response = await login(client, usher_user.email, "wrong-password")
            assert response.status_code == 400

        # Even the right password is refused inside the lockout window
        response = await login(client, usher_user.email)
        assert response.status_code == 429
        assert response.json()["detail"]["code"] == "locked_out"
        assert usher_user.is_active is True

    @pytest.mark.asyncio
    async def test_lockout_expires_after_an_hour(self, client: AsyncClient, make_user):
        user = await make_user(
            UserRole.USHER,
            login_attempts=5,
            last_failed_login=datetime.now(timezone.utc) - timedelta(minutes=61),
        )
        response = await login(client, user.email)
        assert response.status_code == 200
        assert user.login_attempts == 0

    @pytest.mark.asyncio
    async def test_tenth_failure_deactivates(self, client: AsyncClient, make_user):
        user = await make_user(
            UserRole.USHER,
            login_attempts=9,
            last_failed_login=datetime.now(timezone.utc) - timedelta(hours=2),
        )
        response = await login(client, user.email, "wrong-password")
        assert response.status_code == 400
        assert user.login_attempts == 10
        assert user.is_active is False

        response = await login(client, user.email)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "inactive"

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, plain_user, user_headers: dict):
        response = await client.patch(
            "/api/v1/auth/me",
            json={"full_name": "Baraka Mollel", "phone": "0755000000"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.json()["full_name"] == "Baraka Mollel"
        assert plain_user.phone == "0755000000"

    @pytest.mark.asyncio
    async def test_refresh(self, client: AsyncClient, user_headers: dict):
        response = await client.post("/api/v1/auth/refresh", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["token"]


class TestReactivation:

    @pytest.mark.asyncio
    async def test_request_records_timestamp(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.USHER, is_active=False)
        response = await client.post("/api/v1/auth/request-reactivation", json={"email": user.email})
        assert response.status_code == 200
        assert user.reactivation_requested_at is not None

    @pytest.mark.asyncio
    async def test_active_account_cannot_request(self, client: AsyncClient, usher_user):
        response = await client.post("/api/v1/auth/request-reactivation", json={"email": usher_user.email})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_reactivate_before_48_hours_is_refused(
        self, client: AsyncClient, make_user, admin_headers: dict
    ):
        user = await make_user(
            UserRole.USHER,
            is_active=False,
            reactivation_requested_at=datetime.now(timezone.utc) - timedelta(hours=47, minutes=59),
        )
        response = await client.post(f"/api/v1/admin/users/{user.id}/reactivate", headers=admin_headers)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "reactivation_wait"
        assert detail["remaining"].startswith("0h ")
        assert user.is_active is False

    @pytest.mark.asyncio
    async def test_reactivate_without_request(self, client: AsyncClient, make_user, admin_headers: dict):
        user = await make_user(UserRole.USHER, is_active=False)
        response = await client.post(f"/api/v1/admin/users/{user.id}/reactivate", headers=admin_headers)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "no_request"
        assert detail["message"] == "This account has not requested reactivation."

    @pytest.mark.asyncio
    async def test_reactivate_after_48_hours(self, client: AsyncClient, make_user, admin_headers: dict):
        user = await make_user(
            UserRole.USHER,
            is_active=False,
            login_attempts=10,
            reactivation_requested_at=datetime.now(timezone.utc) - timedelta(hours=48, seconds=1),
        )
        response = await client.post(f"/api/v1/admin/users/{user.id}/reactivate", headers=admin_headers)
        assert response.status_code == 200
        assert user.is_active is True
        assert user.login_attempts == 0
        assert user.reactivation_requested_at is None

        inactive = await client.get("/api/v1/admin/users/inactive", headers=admin_headers)
        assert inactive.json() == []


class TestPasswordReset:

    @staticmethod
    def move_ready_time_to_past(user):
        meta = dict(user.meta)
        meta["password_reset_ready_at"] = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
        user.meta = meta

    @pytest.mark.asyncio
    async def test_full_reset_sequence(
        self, client: AsyncClient, db_session, make_user, admin_headers: dict
    ):
        user = await make_user(UserRole.USHER, allowed_tabs=["mahadhurio"])

        # Admin starts the reset and receives the code
        response = await client.post(f"/api/v1/admin/users/{user.id}/password-reset", headers=admin_headers)
        assert response.status_code == 200
        otp = response.json()["otp"]
        assert len(otp) == 6
        assert user.reset_status == ResetStatus.WAITING_APPROVAL.value

        wrong = await client.post("/api/v1/auth/verify-otp", json={"email": user.email, "otp": "000000"})
        assert wrong.json()["valid"] is False
        right = await client.post("/api/v1/auth/verify-otp", json={"email": user.email, "otp": otp})
        assert right.json()["valid"] is True

        # Approval is only possible from waiting_approval
        response = await client.post(
            f"/api/v1/admin/users/{user.id}/password-reset/approve", headers=admin_headers
        )
        assert response.status_code == 200
        again = await client.post(
            f"/api/v1/admin/users/{user.id}/password-reset/approve", headers=admin_headers
        )
        assert again.status_code == 409

        # First login after approval starts the one hour wait
        response = await login(client, user.email)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "reset_wait_started"
        assert user.reset_status == ResetStatus.READY_FOR_USER.value

        response = await login(client, user.email)
        assert response.json()["detail"]["code"] == "reset_wait"

        early = await client.post(
            "/api/v1/auth/set-password",
            json={"email": user.email, "otp": otp, "password": "NewPass456", "passwordConfirm": "NewPass456"},
        )
        assert early.status_code == 403
        assert early.json()["detail"]["code"] == "reset_not_ready"

        # After the wait, login asks for a new password
        self.move_ready_time_to_past(user)
        await db_session.flush()
        response = await login(client, user.email)
        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["code"] == "password_reset_required"
        assert "user_id" not in detail

        mismatch = await client.post(
            "/api/v1/auth/set-password",
            json={"email": user.email, "otp": otp, "password": "NewPass456", "passwordConfirm": "NewPass789"},
        )
        assert mismatch.status_code == 400

        response = await client.post(
            "/api/v1/auth/set-password",
            json={"email": user.email, "otp": otp, "password": "NewPass456", "passwordConfirm": "NewPass456"},
        )
        assert response.status_code == 200
        assert "password_reset_otp" not in user.meta
        assert user.reset_status == ResetStatus.WAIT_BEFORE_LOGIN.value
        assert verify_password("NewPass456", user.password_hash)
        assert user.active_until > datetime.now(timezone.utc) + timedelta(days=364)
        # Explicit tabs survive the reset bookkeeping
        assert user.allowed_tabs == ["mahadhurio"]

        # Another hour before logging in
        response = await login(client, user.email, "NewPass456")
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "login_wait"

        self.move_ready_time_to_past(user)
        await db_session.flush()
        response = await login(client, user.email, "NewPass456")
        assert response.status_code == 200, response.text
        assert user.reset_status is None
        assert user.allowed_tabs == ["mahadhurio"]

    @pytest.mark.asyncio
    async def test_set_password_without_reset(self, client: AsyncClient, usher_user):
        response = await client.post(
            "/api/v1/auth/set-password",
            json={"email": usher_user.email, "otp": "123456", "password": "NewPass456", "passwordConfirm": "NewPass456"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_reset_status_reports_countdown(
        self, client: AsyncClient, make_user, admin_headers: dict
    ):
        user = await make_user(UserRole.USHER, email="countdown@rhemachurch.org")

        response = await client.get("/api/v1/auth/reset-status", params={"email": user.email})
        assert response.json()["reset_status"] is None
        assert response.json()["can_proceed"] is False

        await client.post(f"/api/v1/admin/users/{user.id}/password-reset", headers=admin_headers)
        await client.post(f"/api/v1/admin/users/{user.id}/password-reset/approve", headers=admin_headers)
        await login(client, user.email)

        response = await client.get("/api/v1/auth/reset-status", params={"email": "COUNTDOWN@rhemachurch.org"})
        data = response.json()
        assert data["reset_status"] == ResetStatus.READY_FOR_USER.value
        assert data["can_proceed"] is False
        assert data["remaining"].startswith("0h 59m") or data["remaining"] == "1h 0m 0s"

        self.move_ready_time_to_past(user)
        response = await client.get("/api/v1/auth/reset-status", params={"email": user.email})
        assert response.json()["can_proceed"] is True
        assert response.json()["remaining"] is None

    @pytest.mark.asyncio
    async def test_reset_status_unknown_account(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/reset-status", params={"email": "nobody@rhemachurch.org"})
        assert response.status_code == 404

    async def _approved_reset_at_password_step(self, client, db_session, user, admin_headers) -> str:
        started = await client.post(f"/api/v1/admin/users/{user.id}/password-reset", headers=admin_headers)
        await client.post(f"/api/v1/admin/users/{user.id}/password-reset/approve", headers=admin_headers)
        await login(client, user.email, "wrong")
        self.move_ready_time_to_past(user)
        await db_session.flush()
        return started.json()["otp"]

    @pytest.mark.asyncio
    async def test_email_alone_cannot_set_password(
        self, client: AsyncClient, db_session, make_user, admin_headers: dict
    ):
        user = await make_user(UserRole.USHER, email="victim@rhemachurch.org")
        old_hash = user.password_hash
        await self._approved_reset_at_password_step(client, db_session, user, admin_headers)

        response = await login(client, user.email, "wrong")
        assert response.json()["detail"]["code"] == "password_reset_required"
        assert user.id not in response.text

        status_response = await client.get("/api/v1/auth/reset-status", params={"email": user.email})
        assert user.id not in status_response.text

        takeover = await client.post(
            "/api/v1/auth/set-password",
            json={"email": user.email, "otp": "999999", "password": "Hijacked1", "passwordConfirm": "Hijacked1"},
        )
        assert takeover.status_code == 403
        assert takeover.json()["detail"]["code"] == "invalid_code"
        assert user.password_hash == old_hash
        assert user.reset_status == ResetStatus.READY_FOR_USER.value

    @pytest.mark.asyncio
    async def test_wrong_codes_cancel_the_reset(
        self, client: AsyncClient, db_session, make_user, admin_headers: dict
    ):
        user = await make_user(UserRole.USHER, email="guessing@rhemachurch.org", allowed_tabs=["wokovu"])
        otp = await self._approved_reset_at_password_step(client, db_session, user, admin_headers)
        wrong_code = "100000" if otp != "100000" else "100001"
        body = {"email": user.email, "otp": wrong_code, "password": "Guess1234", "passwordConfirm": "Guess1234"}

        for _ in range(4):
            response = await client.post("/api/v1/auth/set-password", json=body)
            assert response.json()["detail"]["code"] == "invalid_code"
        response = await client.post("/api/v1/auth/set-password", json=body)
        assert response.json()["detail"]["code"] == "reset_cancelled"
        assert user.reset_status is None
        assert user.allowed_tabs == ["wokovu"]

        # The real code no longer works either
        body["otp"] = otp
        response = await client.post("/api/v1/auth/set-password", json=body)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "reset_not_ready"
