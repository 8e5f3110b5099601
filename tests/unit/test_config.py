from datetime import timedelta

from sessionkeeper.config import Settings


def test_defaults():
    s = Settings()
    assert s.cookie_name == "shelf_session_id"
    assert s.lifetime == timedelta(hours=36)
    assert s.snapshot_path is None
    assert s.admin_enabled is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SK_SESSION_LIFETIME", "600")
    monkeypatch.setenv("SK_COOKIE_NAME", "sid")
    monkeypatch.setenv("SK_SNAPSHOT_PATH", "/tmp/sessions.json")

    s = Settings()

    assert s.lifetime == timedelta(minutes=10)
    assert s.cookie_name == "sid"
    assert s.snapshot_path == "/tmp/sessions.json"
