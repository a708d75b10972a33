import pytest
from pydantic import ValidationError

from kube_observer.config import Settings, get_settings


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("KUBE_OBSERVER_REQUEST_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("KUBE_OBSERVER_MAILBOX_CAPACITY", "8")

    settings = get_settings()

    assert settings.request_timeout_seconds == 2.5
    assert settings.mailbox_capacity == 8
    assert settings.keepalive_interval_seconds == 50.0


def test_keepalive_must_be_shorter_than_liveness():
    with pytest.raises(ValidationError):
        Settings(keepalive_interval_seconds=60, liveness_timeout_seconds=60)


def test_zero_timeout_is_rejected():
    with pytest.raises(ValidationError):
        Settings(request_timeout_seconds=0)
