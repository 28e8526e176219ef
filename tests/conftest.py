"""
Pytest configuration and fixtures for the test suite.
"""

import asyncio
import json
import os
import re
import tempfile
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

_TMP_DIR = Path(tempfile.mkdtemp(prefix="entipedia-tests-"))
_DIST_DIR = _TMP_DIR / "dist"
(_DIST_DIR / "assets").mkdir(parents=True)
(_DIST_DIR / "index.html").write_text(
    '<!DOCTYPE html><html><body><div id="root"></div></body></html>',
    encoding="utf-8",
)
(_DIST_DIR / "assets" / "app.js").write_text("console.log('app');", encoding="utf-8")
(_DIST_DIR / "favicon.ico").write_bytes(b"\x00\x00\x01\x00")

# Set test environment variables before importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ["SESSION_SECRET"] = "test-session-secret-for-testing-32chars-minimum"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_STORAGE_PATH"] = str(_TMP_DIR / "uploads")
os.environ["FRONTEND_DIST_DIR"] = str(_DIST_DIR)
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["APP_URL"] = "http://testserver"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("FRONTEND_DEV_SERVER_URL", None)

VERIFY_TOKEN_PATTERN = re.compile(r"token=([0-9a-f]{64})")
DEFAULT_PASSWORD = "testpassword123"


def run_db(coro_fn, *args):
    """Run ``coro_fn(session, *args)`` in a fresh session and commit."""
    from core.database import async_session

    async def runner():
        async with async_session() as session:
            result = await coro_fn(session, *args)
            await session.commit()
            return result

    return asyncio.run(runner())


@pytest.fixture
def sent_emails():
    """Capture Resend API calls made by the email service."""
    from services.email_service import EmailService, set_email_service

    outbox = []

    def handler(request: httpx.Request) -> httpx.Response:
        outbox.append(json.loads(request.content))
        return httpx.Response(200, json={"id": f"email_{len(outbox)}"})

    set_email_service(
        EmailService(
            api_key="re_test_key",
            app_url="http://testserver",
            sender="Entipedia <no-reply@entipedia.test>",
            transport=httpx.MockTransport(handler),
        )
    )
    yield outbox
    set_email_service(None)


@pytest.fixture
def app(sent_emails):
    """Fresh schema for every test."""
    from core.database import drop_database, init_database
    from main import app as fastapi_app

    async def reset():
        await drop_database()
        await init_database()

    asyncio.run(reset())
    return fastapi_app


@pytest.fixture
def client(app):
    """
    Create a test client for the FastAPI application.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def other_client(app, client):
    """Second browser, for cross-tenant checks."""
    with TestClient(app) as test_client:
        yield test_client


def verification_token(sent_emails, email):
    for message in reversed(sent_emails):
        if email in message["to"]:
            return VERIFY_TOKEN_PATTERN.search(message["html"]).group(1)
    raise AssertionError(f"no verification email sent to {email}")


def signup(client, sent_emails, email="test@example.com", name="Test User", verify=True):
    """Register (which signs the browser in) and optionally verify the address."""
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": DEFAULT_PASSWORD, "name": name},
    )
    assert response.status_code == 200, response.text
    if verify:
        token = verification_token(sent_emails, email)
        assert client.get("/api/auth/verify-email", params={"token": token}).status_code == 200
    return response.json()["user"]


@pytest.fixture
def user(client, sent_emails):
    """A verified, signed-in user on ``client``."""
    return signup(client, sent_emails)


@pytest.fixture
def other_user(other_client, sent_emails):
    return signup(other_client, sent_emails, email="other@example.com", name="Other User")


@pytest.fixture
def sample_user_data():
    """
    Sample user data for testing.
    """
    return {"email": "test@example.com", "password": DEFAULT_PASSWORD, "name": "Test User"}


def error_of(response):
    return response.json()["error"]
