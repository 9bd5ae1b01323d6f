from __future__ import annotations

import threading

import pytest

from relay_server.memory import ConversationNotFound, ConversationStore


def test_update_creates_then_accumulates():
    store = ConversationStore()

    first = store.update("u1", "I love python")
    assert first.message_count == 1
    assert first.topics == ["programming"]
    assert first.last_message == "I love python"
    assert first.timestamp is not None

    second = store.update("u1", "what's the weather, and how is your code?")
    assert second.message_count == 2
    # union of both messages, first-seen order, no duplicates
    assert second.topics == ["programming", "weather", "tutorial"]
    assert second.last_message == "what's the weather, and how is your code?"


def test_get_unknown_raises():
    store = ConversationStore()
    with pytest.raises(ConversationNotFound):
        store.get("nope")
    assert store.find("nope") is None


def test_get_returns_detached_copy():
    store = ConversationStore()
    store.update("u1", "python")
    ctx = store.get("u1")
    ctx.topics.append("mutated")
    ctx.message_count = 99
    fresh = store.get("u1")
    assert fresh.topics == ["programming"]
    assert fresh.message_count == 1


def test_snapshot_totals():
    store = ConversationStore()
    assert store.snapshot().conversation_count == 0
    store.update("a", "hi")
    store.update("a", "hi again")
    store.update("b", "yo")
    snap = store.snapshot()
    assert snap.conversation_count == 2
    assert snap.total_messages == 3


def test_eviction_drops_least_recently_updated():
    store = ConversationStore(max_conversations=2)
    store.update("a", "1")
    store.update("b", "1")
    store.update("a", "2")  # refresh a
    store.update("c", "1")  # evicts b
    assert "a" in store and "c" in store
    assert "b" not in store
    assert len(store) == 2


def test_unbounded_when_cap_disabled():
    store = ConversationStore(max_conversations=0)
    for i in range(50):
        store.update(f"u{i}", "hello")
    assert len(store) == 50


def test_concurrent_updates_do_not_lose_increments():
    store = ConversationStore()
    workers, per_worker = 8, 200

    def hammer():
        for _ in range(per_worker):
            store.update("shared", "python help")

    threads = [threading.Thread(target=hammer) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    ctx = store.get("shared")
    assert ctx.message_count == workers * per_worker
    assert ctx.topics == ["programming", "support"]
