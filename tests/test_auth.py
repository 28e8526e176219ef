"""
Test registration, login, sessions and email verification.
"""

from datetime import timedelta

from jose import jwt
from sqlalchemy import delete, update

from conftest import DEFAULT_PASSWORD, error_of, run_db, signup, verification_token
from config import get_settings
from core.dates import utcnow
from core.sessions import sign_session_token, unsign_session_token
from domain.user.models import EmailVerificationToken, User
from routers import auth as auth_router

COOKIE = get_settings().session_cookie_name


def replace_cookie(client, value):
    client.cookies.clear()
    client.cookies.set(COOKIE, value)


def test_register_signs_in_and_sends_verification(client, sent_emails, sample_user_data):
    response = client.post("/api/auth/register", json=sample_user_data)
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "test@example.com"
    assert user["emailVerified"] is False
    assert "hashedPassword" not in user

    assert COOKIE in response.cookies
    assert client.get("/api/auth/session").json()["user"]["id"] == user["id"]

    assert len(sent_emails) == 1
    assert sent_emails[0]["to"] == ["test@example.com"]
    assert "/verify-email?token=" in sent_emails[0]["html"]


def test_register_normalizes_email(client, sent_emails):
    response = client.post(
        "/api/auth/register",
        json={"email": "  Mixed@Example.COM ", "password": DEFAULT_PASSWORD, "name": "Mixed"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "mixed@example.com"


def test_register_rejects_invalid_input(client):
    cases = [
        ({"email": "a@example.com", "password": DEFAULT_PASSWORD}, "Email, password, and name are required."),
        ({"email": "nope", "password": DEFAULT_PASSWORD, "name": "Nope"}, "Invalid email address."),
        ({"email": "a@example.com", "password": "short", "name": "Al"}, "Password must be at least 8 characters long."),
        ({"email": "a@example.com", "password": DEFAULT_PASSWORD, "name": "A"}, "Name must be between 2 and 100 characters."),
    ]
    for body, message in cases:
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 400, body
        assert error_of(response)["message"] == message


def test_register_duplicate_email(client, sent_emails, user):
    response = client.post(
        "/api/auth/register",
        json={"email": "test@example.com", "password": DEFAULT_PASSWORD, "name": "Again"},
    )
    assert response.status_code == 409
    assert error_of(response)["message"] == "Email already registered."


def test_register_race_on_unique_email_is_a_conflict(client, sent_emails, user, monkeypatch):
    async def not_taken(session, email):
        return False

    # A concurrent request inserted the same address after the check ran
    monkeypatch.setattr(auth_router, "_email_taken", not_taken)

    response = client.post(
        "/api/auth/register",
        json={"email": "test@example.com", "password": DEFAULT_PASSWORD, "name": "Again"},
    )
    assert response.status_code == 409
    assert error_of(response)["code"] == "DUPLICATE_RESOURCE"
    assert len(sent_emails) == 1


def test_register_survives_email_failure(client, sent_emails, monkeypatch):
    from services.email_service import get_email_service

    service = get_email_service()
    monkeypatch.setattr(service, "api_key", None)

    response = client.post(
        "/api/auth/register",
        json={"email": "quiet@example.com", "password": DEFAULT_PASSWORD, "name": "Quiet"},
    )
    assert response.status_code == 200
    assert sent_emails == []


def test_login_requires_verified_email(client, sent_emails):
    signup(client, sent_emails, verify=False)
    client.post("/api/auth/logout")

    response = client.post(
        "/api/auth/login", json={"email": "test@example.com", "password": DEFAULT_PASSWORD}
    )
    assert response.status_code == 403
    assert error_of(response)["code"] == "EMAIL_NOT_VERIFIED"


def test_login_logout_roundtrip(client, user):
    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/session").status_code == 401

    response = client.post(
        "/api/auth/login", json={"email": "TEST@example.com", "password": DEFAULT_PASSWORD}
    )
    assert response.status_code == 200
    assert response.json()["user"]["emailVerified"] is True
    assert client.get("/api/auth/session").json()["user"]["id"] == user["id"]


def test_login_rejects_bad_credentials(client, user):
    wrong = client.post(
        "/api/auth/login", json={"email": "test@example.com", "password": "wrong-password"}
    )
    assert wrong.status_code == 401
    assert error_of(wrong)["message"] == "Invalid email or password."

    unknown = client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": DEFAULT_PASSWORD}
    )
    assert unknown.status_code == 401

    missing = client.post("/api/auth/login", json={"email": "test@example.com"})
    assert missing.status_code == 400


def test_login_rotates_previous_session(client, user):
    old_cookie = client.cookies.get(COOKIE)
    response = client.post(
        "/api/auth/login", json={"email": "test@example.com", "password": DEFAULT_PASSWORD}
    )
    assert response.status_code == 200
    new_cookie = client.cookies.get(COOKIE)
    assert new_cookie != old_cookie

    replace_cookie(client, old_cookie)
    assert client.get("/api/auth/session").status_code == 401


def test_session_without_cookie(client):
    response = client.get("/api/auth/session")
    assert response.status_code == 401
    assert error_of(response)["message"] == "Not authenticated."


def test_tampered_cookie_is_cleared(client, user):
    token = unsign_session_token(client.cookies.get(COOKIE))
    replace_cookie(client, f"{token}.forged-signature")

    response = client.get("/api/auth/session")
    assert response.status_code == 401
    assert error_of(response)["message"] == "Session invalid."
    assert f"{COOKIE}=" in response.headers["set-cookie"]
    assert "max-age=0" in response.headers["set-cookie"].lower()


def test_session_for_deleted_user_is_cleared(client, user):
    async def remove_user(session):
        await session.execute(delete(User).where(User.email == "test@example.com"))

    run_db(remove_user)

    response = client.get("/api/projects")
    assert response.status_code == 401
    assert "max-age=0" in response.headers["set-cookie"].lower()

    # Cookie is gone: now simply anonymous
    response = client.get("/api/auth/session")
    assert error_of(response)["message"] == "Not authenticated."


def test_session_signature_roundtrip():
    signed = sign_session_token("A" * 43)
    assert unsign_session_token(signed) == "A" * 43
    assert unsign_session_token(signed + "x") is None
    assert unsign_session_token("no-signature") is None
    assert unsign_session_token(None) is None


def test_session_cookie_signed_with_other_secret_is_rejected():
    forged = jwt.encode(
        {"sid": "A" * 43, "type": "session"}, "some-other-secret", algorithm="HS256"
    )
    assert unsign_session_token(forged) is None

    settings = get_settings()
    expired = jwt.encode(
        {"sid": "A" * 43, "type": "session", "exp": utcnow() - timedelta(seconds=1)},
        settings.session_secret,
        algorithm=settings.session_algorithm,
    )
    assert unsign_session_token(expired) is None


def test_verify_email_flow(client, sent_emails):
    signup(client, sent_emails, verify=False)
    token = verification_token(sent_emails, "test@example.com")

    response = client.get("/api/auth/verify-email", params={"token": token})
    assert response.status_code == 200
    assert response.json()["message"] == "Email verified successfully. You can now log in."
    assert client.get("/api/auth/session").json()["user"]["emailVerified"] is True

    # The token is single use
    again = client.get("/api/auth/verify-email", params={"token": token})
    assert again.status_code == 404


def test_verify_email_errors(client, sent_emails):
    assert client.get("/api/auth/verify-email").status_code == 400
    assert client.get("/api/auth/verify-email", params={"token": "f" * 64}).status_code == 404

    signup(client, sent_emails, verify=False)
    token = verification_token(sent_emails, "test@example.com")

    async def expire(session):
        await session.execute(
            update(EmailVerificationToken).values(expires_at=utcnow().replace(year=2000))
        )

    run_db(expire)
    response = client.get("/api/auth/verify-email", params={"token": token})
    assert response.status_code == 410


def test_resend_verification_is_rate_limited(client, sent_emails):
    signup(client, sent_emails, verify=False)
    sent_before = len(sent_emails)

    first = client.post("/api/auth/resend-verification", json={"email": "test@example.com"})
    assert first.status_code == 200
    assert len(sent_emails) == sent_before + 1

    second = client.post("/api/auth/resend-verification", json={"email": "test@example.com"})
    assert second.status_code == 429
    assert error_of(second)["details"]["retryAfterMs"] > 0
    assert len(sent_emails) == sent_before + 1


def test_resend_verification_unknown_and_verified(client, sent_emails, user):
    unknown = client.post("/api/auth/resend-verification", json={"email": "ghost@example.com"})
    assert unknown.status_code == 200
    assert unknown.json()["message"] == "Verification email sent. Please check your inbox."

    verified = client.post("/api/auth/resend-verification", json={"email": "test@example.com"})
    assert verified.status_code == 200
    assert "already verified" in verified.json()["message"]

    assert client.post("/api/auth/resend-verification", json={}).status_code == 400
