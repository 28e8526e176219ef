"""
Test application assembly: startup validation and error rendering.
"""

import pytest

import main
from conftest import error_of


def test_production_rejects_default_session_secret(monkeypatch):
    monkeypatch.setattr(main.settings, "environment", "production")
    monkeypatch.setattr(main.settings, "session_secret", "INSECURE-DEFAULT-CHANGE-ME-32CHARS-MIN")
    with pytest.raises(RuntimeError, match="Security validation failed"):
        main._validate_security_config()


def test_production_rejects_short_session_secret(monkeypatch):
    monkeypatch.setattr(main.settings, "environment", "production")
    monkeypatch.setattr(main.settings, "session_secret", "too-short")
    with pytest.raises(RuntimeError):
        main._validate_security_config()


def test_missing_r2_settings_fail_startup(monkeypatch):
    monkeypatch.setattr(main.settings, "storage_backend", "r2")
    for name in ("r2_account_id", "r2_access_key_id", "r2_secret_access_key", "r2_bucket_name"):
        monkeypatch.setattr(main.settings, name, None)
    with pytest.raises(RuntimeError, match="Missing R2_ACCOUNT_ID environment variable."):
        main._validate_storage_config()


def test_validation_message_strips_value_error_prefix():
    errors = [{"type": "value_error", "loc": ("body", "name"), "msg": "Value error, Name is required."}]
    assert main._validation_message(errors) == "Name is required."
    assert main._validation_message([{"type": "json_invalid", "loc": ("body", 1), "msg": "x"}]) == (
        "Invalid JSON body."
    )
    assert main._validation_message([]) == "Invalid request."


def test_error_shape(client, user):
    response = client.get("/api/tasks/not-a-uuid/status")
    assert response.status_code == 404
    body = response.json()
    assert set(body["error"]) == {"code", "message", "details"}

    invalid = client.patch("/api/tasks/not-a-uuid", json={"title": "x"})
    assert invalid.status_code == 400
    assert error_of(invalid) == {
        "code": "VALIDATION_ERROR",
        "message": "Invalid task id.",
        "details": {"field": "id"},
    }
