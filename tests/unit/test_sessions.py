import threading
from datetime import timedelta

import pytest

from sessionkeeper.services.cookies import DEFAULT_COOKIE_NAME, SessionCookieCodec
from sessionkeeper.services.sessions import DEFAULT_LIFETIME, Session, SessionStore


def test_default_lifetime_is_36_hours():
    assert DEFAULT_LIFETIME == timedelta(hours=36)


def test_resolve_prefers_cookie_id(store):
    headers = {"Cookie": f"{DEFAULT_COOKIE_NAME}=existing-id"}
    assert store.resolve_or_create_id(headers) == "existing-id"


def test_resolve_generates_without_creating_session(store):
    sid = store.resolve_or_create_id({})
    assert len(sid) == 32
    assert store.get_session(sid) is None
    assert len(store) == 0


def test_resolve_uses_store_codec(clock):
    store = SessionStore(codec=SessionCookieCodec("app_sid"), clock=clock)
    assert store.resolve_or_create_id({"Cookie": "app_sid=abc"}) == "abc"


def test_create_session_sets_expiry_and_empty_data(store, clock):
    session = store.create_session("s1")
    assert session.id == "s1"
    assert session.data == {}
    assert session.expires == clock.now + timedelta(hours=36)
    assert store.get_session("s1") is session


def test_create_replaces_existing_session(store):
    first = store.create_session("s1")
    first.data["user"] = "alice"
    second = store.create_session("s1")

    assert second is not first
    assert second.data == {}
    assert store.get_session("s1") is second


def test_delete_then_get_returns_none(store):
    store.create_session("s1")
    store.delete_session("s1")
    assert store.get_session("s1") is None
    # deleting an unknown id is a no-op
    store.delete_session("missing")
    assert store.get_session("missing") is None


def test_sweep_on_lookup_evicts_expired_sessions(store, clock):
    now = clock.now
    store.replace_all([
        Session(id="old", expires=now - timedelta(seconds=1)),
        Session(id="new", expires=now + timedelta(hours=1)),
    ])

    live = store.get_session("new")
    assert live is not None and live.id == "new"
    assert "old" not in store
    assert store.get_session("old") is None


def test_sweep_on_lookup_of_expired_id(store, clock):
    now = clock.now
    store.replace_all([
        Session(id="old", expires=now - timedelta(seconds=1)),
        Session(id="new", expires=now + timedelta(hours=1)),
    ])

    assert store.get_session("old") is None
    assert len(store) == 1


def test_session_expiring_exactly_now_is_still_live(store, clock):
    store.replace_all([Session(id="edge", expires=clock.now)])
    assert store.get_session("edge") is not None


def test_get_never_returns_expired_session(store, clock):
    for i in range(10):
        store.create_session(f"s{i}")
        clock.advance(hours=5)
    for i in range(10):
        session = store.get_session(f"s{i}")
        if session is not None:
            assert session.expires >= clock.now
    assert len(store) == 7


def test_touch_extends_live_session(store, clock):
    session = store.create_session("s1")
    clock.advance(hours=10)

    expires = store.touch("s1")

    assert expires == clock.now + timedelta(hours=36)
    assert session.expires == expires


def test_touch_unknown_id_does_not_store(store, clock):
    expires = store.touch("ghost")
    assert expires == clock.now + timedelta(hours=36)
    assert "ghost" not in store


def test_touch_does_not_revive_expired_session(store, clock):
    session = store.create_session("s1")
    clock.advance(hours=37)

    store.touch("s1")

    assert session.expires < clock.now
    assert store.get_session("s1") is None


def test_explicit_sweep_counts_evictions(store, clock):
    store.create_session("a")
    store.create_session("b")
    clock.advance(hours=40)
    store.create_session("c")

    assert store.sweep() == 2
    assert len(store) == 1


def test_snapshot_returns_copies(store):
    store.create_session("s1").data["items"] = [1, 2]
    copy = store.snapshot()[0]
    copy.data["items"].append(3)

    assert store.get_session("s1").data["items"] == [1, 2]


def test_reservation_is_released_when_the_block_exits(store):
    with store.reserve_id({}) as sid:
        assert store._is_taken(sid)
        store.create_session(sid)
    store.delete_session(sid)
    assert not store._is_taken(sid)


def test_reservation_is_released_on_error(store):
    with pytest.raises(RuntimeError):
        with store.reserve_id({}):
            raise RuntimeError("handler failed")
    assert not store._reserved


def test_get_or_create_keeps_existing_session(store):
    first = store.get_or_create("s1")
    first.data["user"] = "alice"

    assert store.get_or_create("s1") is first
    assert first.data == {"user": "alice"}


def test_get_or_create_replaces_expired_session(store, clock):
    old = store.create_session("s1")
    old.data["user"] = "alice"
    clock.advance(hours=37)

    fresh = store.get_or_create("s1")

    assert fresh is not old
    assert fresh.data == {}
    assert fresh.expires == clock.now + timedelta(hours=36)


def test_concurrent_get_or_create_yields_one_session(store):
    seen = []
    lock = threading.Lock()

    def worker():
        session = store.get_or_create("shared")
        session.data.setdefault("owner", threading.get_ident())
        with lock:
            seen.append(session)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(s) for s in seen}) == 1
    assert len(store) == 1


def test_custom_lifetime(clock):
    store = SessionStore(lifetime=timedelta(minutes=5), clock=clock)
    assert store.create_session("s").expires == clock.now + timedelta(minutes=5)
