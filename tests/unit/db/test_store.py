"""Tests for TransientStore: expiry, prefixes and atomic counters."""

from __future__ import annotations

import threading

from multichat.db.connection import Database
from multichat.db.schema import initialize
from multichat.db.store import TransientStore


# ------------------------------------------------------------------
# get / set / delete
# ------------------------------------------------------------------

def test_set_and_get_json_values(store):
    store.set("s", "text")
    store.set("d", {"a": [1, 2]})
    assert store.get("s") == "text"
    assert store.get("d") == {"a": [1, 2]}


def test_get_missing_returns_none(store):
    assert store.get("nope") is None


def test_set_overwrites(store):
    store.set("k", 1)
    store.set("k", 2)
    assert store.get("k") == 2


def test_value_expires_after_ttl(store, clock):
    store.set("k", "v", ttl=10)
    clock.advance(9.9)
    assert store.get("k") == "v"
    clock.advance(0.1)
    assert store.get("k") is None


def test_expired_row_removed_on_read(store, clock, tmp_db):
    store.set("k", "v", ttl=1)
    clock.advance(5)
    store.get("k")
    assert tmp_db.execute("SELECT COUNT(*) FROM transients").fetchone()[0] == 0


def test_no_ttl_never_expires(store, clock):
    store.set("k", "v")
    clock.advance(10 ** 9)
    assert store.get("k") == "v"
    assert store.expires_at("k") is None


def test_expires_at(store, clock):
    store.set("k", "v", ttl=60)
    assert store.expires_at("k") == clock.now + 60


def test_delete(store):
    store.set("k", "v")
    assert store.delete("k") is True
    assert store.delete("k") is False
    assert store.get("k") is None


# ------------------------------------------------------------------
# Prefix operations
# ------------------------------------------------------------------

def test_delete_prefix_only_matching(store):
    store.set("api_1", "a")
    store.set("api_2", "b")
    store.set("kb_en", "c")
    assert store.delete_prefix("api_") == 2
    assert store.get("kb_en") == "c"


def test_delete_prefix_treats_wildcards_literally(store):
    store.set("a_b", 1)
    store.set("axb", 2)
    assert store.delete_prefix("a_") == 1
    assert store.get("axb") == 2


def test_keys_excludes_expired(store, clock):
    store.set("p_live", 1, ttl=100)
    store.set("p_dead", 1, ttl=1)
    store.set("other", 1)
    clock.advance(2)
    assert store.keys("p_") == ["p_live"]


def test_purge_expired(store, clock):
    store.set("a", 1, ttl=1)
    store.set("b", 1, ttl=100)
    store.set("c", 1)
    clock.advance(10)
    assert store.purge_expired() == 1
    assert sorted(store.keys()) == ["b", "c"]


# ------------------------------------------------------------------
# hit()
# ------------------------------------------------------------------

def test_hit_first_request_opens_window(store):
    allowed, count, retry_after = store.hit("rl", limit=3, window=60)
    assert allowed is True
    assert count == 1
    assert retry_after == 60


def test_hit_counts_up_to_limit_then_rejects(store):
    results = [store.hit("rl", limit=3, window=60) for _ in range(4)]
    assert [r[0] for r in results] == [True, True, True, False]
    assert [r[1] for r in results] == [1, 2, 3, 3]


def test_hit_rejection_does_not_increment(store):
    for _ in range(10):
        store.hit("rl", limit=2, window=60)
    assert store.get("rl") == 2


def test_hit_window_does_not_slide(store, clock):
    store.hit("rl", limit=5, window=60)
    clock.advance(30)
    _, _, retry_after = store.hit("rl", limit=5, window=60)
    assert retry_after == 30


def test_hit_expired_counter_starts_fresh(store, clock):
    store.hit("rl", limit=1, window=60)
    assert store.hit("rl", limit=1, window=60)[0] is False
    clock.advance(60)
    allowed, count, _ = store.hit("rl", limit=1, window=60)
    assert allowed is True
    assert count == 1


def test_hit_keys_are_independent(store):
    store.hit("a", limit=1, window=60)
    assert store.hit("a", limit=1, window=60)[0] is False
    assert store.hit("b", limit=1, window=60)[0] is True


def test_hit_is_atomic_across_threads(tmp_path):
    db = Database(tmp_path / "race.db")
    conn = db.connect()
    initialize(conn)
    shared = TransientStore(conn)
    allowed: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(10):
            ok, _, _ = shared.hit("rl", limit=25, window=60)
            with lock:
                allowed.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert allowed.count(True) == 25
    assert shared.get("rl") == 25
    conn.close()


def test_hit_is_atomic_across_connections(tmp_path):
    path = tmp_path / "shared.db"
    conn_a = Database(path).connect()
    initialize(conn_a)
    conn_b = Database(path).connect()
    store_a = TransientStore(conn_a)
    store_b = TransientStore(conn_b)

    outcomes = [store_a.hit("rl", 3, 60)[0], store_b.hit("rl", 3, 60)[0],
                store_a.hit("rl", 3, 60)[0], store_b.hit("rl", 3, 60)[0]]

    assert outcomes == [True, True, True, False]
    conn_a.close()
    conn_b.close()
