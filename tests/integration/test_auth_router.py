"""HTTP tests for the authentication API."""

import pytest

from clientportal.domain.services.totp_service import totp_service

PASSWORD = "Str0ng!Passw0rd"
NEW_PASSWORD = "N3w!Passw0rd-X"

pytestmark = pytest.mark.integration

REGISTER = {
    "email": "ada@example.com",
    "password": PASSWORD,
    "firstName": "Ada",
    "lastName": "Lovelace",
}


async def _register_and_verify(client, mailbox, payload=REGISTER):
    res = await client.post("/api/auth/register", json=payload)
    assert res.status_code == 201
    token = await mailbox.last_token("Verify your account", to=payload["email"])
    res = await client.post("/api/auth/verify-email", json={"token": token})
    assert res.status_code == 200
    return res.json()["user"]


async def _login(client, email="ada@example.com", password=PASSWORD, **extra):
    return await client.post("/api/auth/login", json={"email": email, "password": password, **extra})


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_health(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_register_returns_camel_case_profile(client, mailbox):
    res = await client.post("/api/auth/register", json={**REGISTER, "clientName": "Engines Ltd"})

    assert res.status_code == 201
    user = res.json()["user"]
    assert user["email"] == "ada@example.com"
    assert user["firstName"] == "Ada"
    assert user["role"] == "client"
    assert user["isEmailVerified"] is False
    assert user["mfaEnabled"] is False
    assert user["clientAccountId"]
    assert "passwordHash" not in user and "mfaSecret" not in user
    assert len(await mailbox.messages()) == 1


@pytest.mark.asyncio
async def test_register_cannot_choose_role(client):
    res = await client.post("/api/auth/register", json={**REGISTER, "role": "admin"})

    assert res.status_code == 201
    assert res.json()["user"]["role"] == "client"


@pytest.mark.asyncio
async def test_register_weak_password(client):
    res = await client.post("/api/auth/register", json={**REGISTER, "password": "password"})

    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "validation_failed"
    assert body["details"] == {"code": "password_too_short"}


@pytest.mark.asyncio
async def test_register_duplicate_email(client, mailbox):
    await _register_and_verify(client, mailbox)

    res = await client.post("/api/auth/register", json=REGISTER)

    assert res.status_code == 409
    assert res.json() == {"error": "conflict", "message": "Email already in use"}


@pytest.mark.asyncio
async def test_verify_email_bad_token(client):
    res = await client.post("/api/auth/verify-email", json={"token": "deadbeef"})

    assert res.status_code == 400
    assert res.json()["error"] == "validation_failed"


@pytest.mark.asyncio
async def test_login_sets_cookies_and_me(client, mailbox):
    await _register_and_verify(client, mailbox)

    res = await _login(client)

    assert res.status_code == 200
    body = res.json()
    assert set(body) == {"token", "refreshToken", "user"}
    assert res.cookies.get("accessToken") == body["token"]
    assert res.cookies.get("refreshToken") == body["refreshToken"]
    set_cookie = ",".join(res.headers.get_list("set-cookie")).lower()
    assert "httponly" in set_cookie

    me = await client.get("/api/auth/me", headers=_bearer(body["token"]))
    assert me.status_code == 200
    assert me.json()["user"]["isEmailVerified"] is True

    client.cookies.clear()
    client.cookies.set("accessToken", body["token"])
    assert (await client.get("/api/auth/me")).status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client, mailbox):
    await _register_and_verify(client, mailbox)

    res = await _login(client, password="Wr0ng!Passw0rd")

    assert res.status_code == 401
    assert res.json() == {"error": "unauthorized", "message": "Invalid credentials"}
    assert res.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_lockout_returns_423(client, mailbox, settings):
    await _register_and_verify(client, mailbox)
    for _ in range(settings.max_failed_login_attempts):
        assert (await _login(client, password="Wr0ng!Passw0rd")).status_code == 401

    res = await _login(client)

    assert res.status_code == 423
    body = res.json()
    assert body["error"] == "locked"
    assert body["message"] == f"Account locked. Try again in {settings.lockout_minutes} minutes."
    assert body["details"] == {"minutes_remaining": settings.lockout_minutes}


@pytest.mark.asyncio
async def test_me_requires_authentication(client):
    res = await client.get("/api/auth/me")

    assert res.status_code == 401
    assert res.json()["message"] == "Unauthorized"


@pytest.mark.asyncio
async def test_refresh_from_cookie_and_body(client, mailbox):
    await _register_and_verify(client, mailbox)
    login = (await _login(client)).json()

    res = await client.post("/api/auth/refresh")
    assert res.status_code == 200
    rotated = res.json()
    assert set(rotated) == {"token", "refreshToken"}
    assert client.cookies.get("refreshToken") == rotated["refreshToken"]

    client.cookies.clear()
    replay = await client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
    assert replay.status_code == 401
    assert replay.json()["message"] == "Invalid refresh token"

    res = await client.post("/api/auth/refresh", json={"refreshToken": rotated["refreshToken"]})
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_refresh_missing_token(client):
    res = await client.post("/api/auth/refresh")

    assert res.status_code == 401
    assert res.json()["message"] == "Refresh token missing"


@pytest.mark.asyncio
async def test_logout_clears_cookies_and_revokes(client, mailbox):
    await _register_and_verify(client, mailbox)
    login = (await _login(client)).json()

    res = await client.post("/api/auth/logout")

    assert res.status_code == 204
    assert "accessToken" not in client.cookies
    client.cookies.clear()
    res = await client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_logout_everywhere(client, mailbox):
    await _register_and_verify(client, mailbox)
    first = (await _login(client)).json()
    second = (await _login(client)).json()
    client.cookies.clear()

    res = await client.post("/api/auth/logout", headers=_bearer(second["token"]))

    assert res.status_code == 204
    for session in (first, second):
        res = await client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]})
        assert res.status_code == 401


@pytest.mark.asyncio
async def test_logout_requires_authentication(client):
    assert (await client.post("/api/auth/logout")).status_code == 401


@pytest.mark.asyncio
async def test_forgot_password_never_reveals_accounts(client, mailbox):
    await _register_and_verify(client, mailbox)
    sent_before = len(await mailbox.messages())

    known = await client.post("/api/auth/password/forgot", json={"email": "ada@example.com"})
    unknown = await client.post("/api/auth/password/forgot", json={"email": "ghost@example.com"})

    assert known.status_code == unknown.status_code == 204
    assert known.content == unknown.content == b""
    assert len(await mailbox.messages()) == sent_before + 1


@pytest.mark.asyncio
async def test_password_reset_flow(client, mailbox, listen):
    user = await _register_and_verify(client, mailbox)
    login = (await _login(client)).json()
    listener = listen(user["id"])
    client.cookies.clear()

    await client.post("/api/auth/password/forgot", json={"email": "ada@example.com"})
    token = await mailbox.last_token("Password reset instructions")

    res = await client.post("/api/auth/password/reset", json={"token": token, "password": NEW_PASSWORD})
    assert res.status_code == 200
    assert res.json()["user"]["passwordChangedAt"] is not None
    assert listener.events == [("session:revoked", {"reason": "password_reset"})]

    res = await client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
    assert res.status_code == 401

    res = await client.post("/api/auth/password/reset", json={"token": token, "password": NEW_PASSWORD})
    assert res.status_code == 400

    assert (await _login(client, password=NEW_PASSWORD)).status_code == 200


@pytest.mark.asyncio
async def test_change_password(client, mailbox):
    await _register_and_verify(client, mailbox)
    token = (await _login(client)).json()["token"]

    res = await client.post(
        "/api/auth/password/change",
        json={"currentPassword": "Wr0ng!Passw0rd", "newPassword": NEW_PASSWORD},
        headers=_bearer(token),
    )
    assert res.status_code == 401
    assert res.json()["message"] == "Current password is incorrect"

    res = await client.post(
        "/api/auth/password/change",
        json={"currentPassword": PASSWORD, "newPassword": NEW_PASSWORD},
        headers=_bearer(token),
    )
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_resend_verification(client, mailbox):
    await client.post("/api/auth/register", json=REGISTER)
    token = (await _login(client)).json()["token"]

    res = await client.post("/api/auth/resend-verification", headers=_bearer(token))

    assert res.status_code == 204
    assert [m["subject"] for m in (await mailbox.messages())] == ["Verify your account"] * 2


@pytest.mark.asyncio
async def test_mfa_enrollment_and_login(client, mailbox):
    await _register_and_verify(client, mailbox)
    token = (await _login(client)).json()["token"]
    client.cookies.clear()

    setup = await client.post("/api/auth/mfa/setup", headers=_bearer(token))
    assert setup.status_code == 200
    secret = setup.json()["secret"]
    assert setup.json()["otpauth"].startswith("otpauth://totp/")

    res = await client.post(
        "/api/auth/mfa/verify",
        json={"token": totp_service.current_code(secret)},
        headers=_bearer(token),
    )
    assert res.status_code == 200
    assert res.json()["user"]["mfaEnabled"] is True

    pending = await _login(client)
    assert pending.status_code == 200
    assert pending.json() == {"mfaRequired": True}
    assert "accessToken" not in pending.cookies

    res = await _login(client, mfaCode=totp_service.current_code(secret))
    assert res.status_code == 200
    assert res.json()["user"]["mfaEnabled"] is True

    res = await client.post(
        "/api/auth/mfa/disable", json={"password": PASSWORD}, headers=_bearer(token)
    )
    assert res.status_code == 204
    assert set((await _login(client)).json()) == {"token", "refreshToken", "user"}


@pytest.mark.asyncio
async def test_login_rate_limited_per_client(client, mailbox):
    await _register_and_verify(client, mailbox)
    for _ in range(10):
        assert (await _login(client, password="Wr0ng!Passw0rd")).status_code in (401, 423)

    res = await _login(client)

    assert res.status_code == 429
    body = res.json()
    assert body["error"] == "rate_limited"
    assert body["message"] == "Too many requests. Please try again later."
    assert int(res.headers["retry-after"]) == body["details"]["retry_after"] >= 1
