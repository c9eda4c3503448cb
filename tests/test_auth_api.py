"""End-to-end tests for the /auth endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptmart.models.user import User

REGISTER = {"name": "Carol", "email": "carol@example.com", "password": "password123"}


async def _register(client: AsyncClient, body: dict = REGISTER):
    return await client.post("/api/auth/register", json=body)


@pytest.mark.asyncio
async def test_register_verify_sets_httponly_cookie(async_client: AsyncClient, notifier):
    resp = await _register(async_client)
    assert resp.status_code == 201
    data = resp.json()
    assert data["success"] is True
    user_id = data["user_id"]
    assert notifier.sent[-1][0] == "carol@example.com"

    resp = await async_client.post(
        "/api/auth/verify-otp",
        json={"user_id": user_id, "otp": notifier.last_code("carol@example.com")},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["is_verified"] is True
    assert "hashed_password" not in body["user"]
    assert "otp_code_hash" not in body["user"]

    set_cookie = resp.headers.get("set-cookie")
    assert set_cookie.startswith("token=")
    assert "HttpOnly" in set_cookie
    assert "SameSite=lax" in set_cookie

    # The cookie alone authenticates
    me = await async_client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"


@pytest.mark.asyncio
async def test_second_verification_is_rejected(async_client: AsyncClient, notifier):
    user_id = (await _register(async_client)).json()["user_id"]
    code = notifier.last_code("carol@example.com")

    first = await async_client.post("/api/auth/verify-otp", json={"user_id": user_id, "otp": code})
    second = await async_client.post("/api/auth/verify-otp", json={"user_id": user_id, "otp": code})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["detail"] == "User is already verified"


@pytest.mark.asyncio
async def test_wrong_otp_is_rejected(async_client: AsyncClient, notifier):
    user_id = (await _register(async_client)).json()["user_id"]
    resp = await async_client.post("/api/auth/verify-otp", json={"user_id": user_id, "otp": ""})
    assert resp.status_code == 400
    assert resp.json() == {"detail": "Invalid or expired OTP", "success": False}


@pytest.mark.asyncio
async def test_verify_unknown_user_is_404(async_client: AsyncClient):
    resp = await async_client.post("/api/auth/verify-otp", json={"user_id": 999, "otp": "123456"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_duplicate_registration_rejected(async_client: AsyncClient):
    assert (await _register(async_client)).status_code == 201
    resp = await _register(async_client, {**REGISTER, "email": "CAROL@example.com"})
    assert resp.status_code == 400
    assert "already exists" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_register_validation(async_client: AsyncClient):
    resp = await _register(async_client, {**REGISTER, "email": "not-an-email"})
    assert resp.status_code == 422
    resp = await _register(async_client, {**REGISTER, "password": "123"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_failed_delivery_leaves_no_account(
    async_client: AsyncClient, notifier, db_session: AsyncSession
):
    notifier.fail = True
    resp = await _register(async_client)
    assert resp.status_code == 500
    assert resp.json()["success"] is False

    result = await db_session.execute(select(User).where(User.email == "carol@example.com"))
    assert result.scalar_one_or_none() is None

    notifier.fail = False
    assert (await _register(async_client)).status_code == 201


@pytest.mark.asyncio
async def test_resend_otp(async_client: AsyncClient, notifier):
    user_id = (await _register(async_client)).json()["user_id"]
    resp = await async_client.post("/api/auth/resend-otp", json={"user_id": user_id})
    assert resp.status_code == 200
    assert len(notifier.sent) == 2

    resp = await async_client.post(
        "/api/auth/verify-otp",
        json={"user_id": user_id, "otp": notifier.last_code("carol@example.com")},
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_requires_verification(async_client: AsyncClient):
    await _register(async_client)
    resp = await async_client.post(
        "/api/auth/login", json={"email": "carol@example.com", "password": "password123"}
    )
    assert resp.status_code == 401
    assert "verify" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_login_success(async_client: AsyncClient, create_verified_user):
    user_id, _headers = await create_verified_user("dave@example.com")
    resp = await async_client.post(
        "/api/auth/login", json={"email": "Dave@Example.com", "password": "password123"}
    )
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == user_id
    assert "token" in resp.cookies

    token = resp.json()["access_token"]
    async_client.cookies.clear()
    me = await async_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_login_failures_do_not_enumerate_users(async_client: AsyncClient, create_verified_user):
    await create_verified_user("erin@example.com")

    wrong_password = await async_client.post(
        "/api/auth/login", json={"email": "erin@example.com", "password": "wrong-password"}
    )
    unknown_email = await async_client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "password123"}
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


@pytest.mark.asyncio
async def test_login_missing_credentials(async_client: AsyncClient):
    resp = await async_client.post("/api/auth/login", json={"email": "x@example.com"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please provide an email and password"


@pytest.mark.asyncio
async def test_forgot_and_reset_password(async_client: AsyncClient, notifier, create_verified_user):
    user_id, _ = await create_verified_user("frank@example.com")

    resp = await async_client.post("/api/auth/forgot-password", json={"email": "frank@example.com"})
    assert resp.status_code == 200
    assert resp.json()["user_id"] == user_id

    resp = await async_client.put(
        "/api/auth/reset-password",
        json={
            "user_id": user_id,
            "otp": notifier.last_code("frank@example.com"),
            "new_password": "new-password-1",
        },
    )
    assert resp.status_code == 200
    # No session is issued by a reset
    assert "token" not in resp.cookies

    old = await async_client.post(
        "/api/auth/login", json={"email": "frank@example.com", "password": "password123"}
    )
    new = await async_client.post(
        "/api/auth/login", json={"email": "frank@example.com", "password": "new-password-1"}
    )
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_forgot_password_delivery_failure(
    async_client: AsyncClient, notifier, create_verified_user, db_session: AsyncSession
):
    user_id, _ = await create_verified_user("gina@example.com")
    notifier.fail = True

    resp = await async_client.post("/api/auth/forgot-password", json={"email": "gina@example.com"})
    assert resp.status_code == 500

    user = await db_session.get(User, user_id)
    assert user is not None
    assert user.is_verified is True
    assert user.otp is None

    notifier.fail = False
    resp = await async_client.post("/api/auth/forgot-password", json={"email": "gina@example.com"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_forgot_password_unknown_email(async_client: AsyncClient):
    resp = await async_client.post("/api/auth/forgot-password", json={"email": "who@example.com"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_me_requires_session(async_client: AsyncClient):
    resp = await async_client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_me_rejects_tampered_token(async_client: AsyncClient, create_verified_user):
    _user_id, headers = await create_verified_user("hank@example.com")
    token = headers["Authorization"].removeprefix("Bearer ")
    header, payload, signature = token.split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
    tampered = f"{header}.{payload}.{flipped}"

    resp = await async_client.get("/api/auth/me", headers={"Authorization": f"Bearer {tampered}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_logout_expires_cookie(async_client: AsyncClient, create_verified_user):
    _user_id, headers = await create_verified_user("ivy@example.com")
    resp = await async_client.get("/api/auth/logout", headers=headers)
    assert resp.status_code == 200

    set_cookie = resp.headers.get("set-cookie")
    assert set_cookie.startswith("token=")
    assert "Max-Age=0" in set_cookie
    assert "HttpOnly" in set_cookie
