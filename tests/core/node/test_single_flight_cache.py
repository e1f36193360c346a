from __future__ import annotations

import threading
import time

import pytest

from hieraedit.core.exceptions import CompilationError
from hieraedit.core.node import SingleFlightCache


def test_value_is_loaded_once():
    cache = SingleFlightCache("test")
    calls = []

    def load(register):
        calls.append(1)
        return "value"

    assert cache.get_or_load("k", load) == "value"
    assert cache.get_or_load("k", load) == "value"
    assert calls == [1]
    assert "k" in cache
    assert len(cache) == 1
    assert list(cache.items()) == [("k", "value")]


def test_concurrent_callers_share_one_load():
    cache = SingleFlightCache("test")
    started = threading.Event()
    release = threading.Event()
    calls = []
    results = []

    def load(register):
        calls.append(threading.get_ident())
        started.set()
        release.wait(5)
        return object()

    def worker():
        results.append(cache.get_or_load("k", load))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    threads[0].start()
    started.wait(5)
    for t in threads[1:]:
        t.start()
    release.set()
    for t in threads:
        t.join(5)

    assert len(calls) == 1
    assert len(results) == 4
    assert all(r is results[0] for r in results)


def test_reentrant_call_gets_the_placeholder():
    cache = SingleFlightCache("test")
    seen = []

    def load(register):
        placeholder = {"partial": True}
        register(placeholder)
        seen.append(cache.get_or_load("k", load))
        return placeholder

    value = cache.get_or_load("k", load)
    assert seen == [value]


def test_reentrant_call_without_placeholder_is_circular():
    cache = SingleFlightCache("test")

    def load(register):
        return cache.get_or_load("k", load)

    with pytest.raises(CompilationError, match="Circular reference"):
        cache.get_or_load("k", load)
    assert "k" not in cache


def test_failures_are_not_cached():
    cache = SingleFlightCache("test")
    attempts = []

    def failing(register):
        attempts.append(1)
        raise ValueError("boom")

    with pytest.raises(ValueError):
        cache.get_or_load("k", failing)
    assert cache.get("k") is None
    assert cache.get_or_load("k", lambda register: 42) == 42
    assert attempts == [1]


def test_waiters_receive_the_owner_failure():
    cache = SingleFlightCache("test")
    started = threading.Event()
    release = threading.Event()
    errors = []

    def load(register):
        started.set()
        release.wait(5)
        raise RuntimeError("nope")

    def owner():
        with pytest.raises(RuntimeError):
            cache.get_or_load("k", load)

    waiting = threading.Event()

    def waiter():
        waiting.set()
        try:
            cache.get_or_load("k", lambda register: "unused")
        except RuntimeError as exc:
            errors.append(str(exc))

    first = threading.Thread(target=owner)
    first.start()
    started.wait(5)
    second = threading.Thread(target=waiter)
    second.start()
    waiting.wait(5)
    time.sleep(0.2)
    release.set()
    first.join(5)
    second.join(5)

    assert errors == ["nope"]


def test_evict_and_clear():
    cache = SingleFlightCache("test")
    cache.get_or_load("a", lambda register: 1)
    cache.get_or_load("b", lambda register: 2)

    assert cache.evict("a") == 1
    assert cache.evict("a") is None
    assert sorted(cache.keys()) == ["b"]

    cache.clear()
    assert list(cache.values()) == []
