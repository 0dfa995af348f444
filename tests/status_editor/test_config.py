import pytest

from status_editor.config import load_settings


def test_defaults(monkeypatch):
    for name in ("MAX_MEDIA_ATTACHMENTS", "POLL_CREATION_IS_CHANGE", "POLL_NOTIFICATION_DELAY_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.max_media_attachments == 4
    assert settings.poll_creation_is_change is True
    assert settings.poll_notification_delay.total_seconds() == 300


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("MAX_STATUS_CHARACTERS", "1000")
    monkeypatch.setenv("POLL_CREATION_IS_CHANGE", "false")
    monkeypatch.setenv("POLL_NOTIFICATION_DELAY_SECONDS", "60")

    settings = load_settings()

    assert settings.max_status_characters == 1000
    assert settings.poll_creation_is_change is False
    assert settings.poll_notification_delay.total_seconds() == 60


def test_invalid_value(monkeypatch):
    monkeypatch.setenv("MAX_POLL_OPTIONS", "many")

    with pytest.raises(RuntimeError, match="Invalid settings"):
        load_settings()


def test_engine_uses_configured_database_url():
    from status_editor.db import base

    assert base.DATABASE_URL == load_settings().database_url
    assert base.engine.url.render_as_string(hide_password=False) == base.DATABASE_URL


def test_job_stale_after(monkeypatch):
    monkeypatch.delenv("JOB_STALE_AFTER_SECONDS", raising=False)
    assert load_settings().job_stale_after.total_seconds() == 900

    monkeypatch.setenv("JOB_STALE_AFTER_SECONDS", "60")
    assert load_settings().job_stale_after.total_seconds() == 60
