from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from momofin.base_microservice import BaseMicroservice, LogEntry, LoggingService
from momofin.config import Settings


def test_log_event_and_error(caplog):
    base_service = BaseMicroservice()
    with caplog.at_level("INFO"):
        base_service.log_event("pytest_log_event", {"foo": "bar"})
        assert any("pytest_log_event" in m for m in caplog.text.splitlines())
    with caplog.at_level("ERROR"):
        try:
            raise ValueError("test error")
        except Exception as e:
            base_service.log_error(e, context="pytest")
        assert any("test error" in m for m in caplog.text.splitlines())


@pytest.mark.asyncio
async def test_logging_service_persists_entry(db, caplog):
    logging_service = LoggingService()
    with caplog.at_level("INFO"):
        await logging_service.log(db, "info", "Successful login for user: a from organization: b", "/auth/login")

    assert "Successful login for user: a from organization: b" in caplog.text
    result = await db.execute(select(LogEntry))
    entry = result.scalar_one()
    assert entry.level == "INFO"
    assert entry.path == "/auth/login"
    assert entry.created_at is not None


@pytest.mark.asyncio
async def test_logging_service_survives_store_failure(caplog):
    db = MagicMock()
    db.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("database is locked")))
    db.rollback = AsyncMock()

    logging_service = LoggingService()
    with caplog.at_level("INFO"):
        await logging_service.log(db, "ERROR", "Failed login attempt", "/auth/login")

    db.rollback.assert_awaited_once()
    assert "Failed login attempt" in caplog.text
    assert "database is locked" in caplog.text


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "env-secret")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "90")
    monkeypatch.setenv("HMAC_ALGORITHM", "HmacSHA512")
    monkeypatch.delenv("HMAC_SECRET_KEY", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()
    assert settings.signing_secret == "env-secret"
    assert settings.access_token_expires.total_seconds() == 90 * 60
    assert settings.hmac_algorithm == "HmacSHA512"
    assert settings.hmac_secret is None
    assert settings.log_level == "DEBUG"


def test_settings_defaults(monkeypatch):
    for name in ("JWT_SECRET_KEY", "ACCESS_TOKEN_EXPIRE_MINUTES", "HMAC_ALGORITHM", "BCRYPT_ROUNDS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()
    assert settings.signing_secret is None
    assert settings.access_token_expire_minutes == 24 * 60
    assert settings.hmac_algorithm == "HmacSHA256"
    assert settings.bcrypt_rounds == 12
