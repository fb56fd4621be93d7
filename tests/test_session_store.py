"""
Tests for pending send intents
"""

from services.session_store import PendingSendStore, SendKind


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_put_peek_pop():
    store = PendingSendStore(ttl_seconds=60, clock=FakeClock())
    store.put(1, SendKind.TOKEN, chat_id=10)

    assert store.peek(1).kind is SendKind.TOKEN
    assert store.pop(1).chat_id == 10
    assert store.pop(1) is None


def test_put_replaces_previous_intent():
    store = PendingSendStore(ttl_seconds=60, clock=FakeClock())
    store.put(1, SendKind.TOKEN, chat_id=10)
    store.put(1, SendKind.HBAR, chat_id=10)

    assert store.pop(1).kind is SendKind.HBAR


def test_intent_expires():
    clock = FakeClock()
    store = PendingSendStore(ttl_seconds=60, clock=clock)
    store.put(1, SendKind.HBAR, chat_id=10)

    clock.now += 61
    assert store.peek(1) is None
    assert store.pop(1) is None


def test_purge_expired():
    clock = FakeClock()
    store = PendingSendStore(ttl_seconds=60, clock=clock)
    store.put(1, SendKind.HBAR, chat_id=10)
    clock.now += 30
    store.put(2, SendKind.TOKEN, chat_id=20)
    clock.now += 31

    assert store.purge_expired() == 1
    assert store.peek(2) is not None


def test_clear():
    store = PendingSendStore()
    store.put(1, SendKind.TOKEN, chat_id=10)
    store.clear(1)

    assert store.peek(1) is None
