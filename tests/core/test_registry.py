"""Tests for the queue registry."""

import threading

import pytest

from twinqueue.core.queue_service import QueueNotFound, QueueRegistry


def test_get_or_create_calls_factory_once():
    registry = QueueRegistry()
    calls = []

    def factory():
        calls.append(1)
        return object()

    first = registry.get_or_create("q", factory)
    second = registry.get_or_create("q", factory)

    assert first is second
    assert len(calls) == 1
    assert "q" in registry
    assert len(registry) == 1


def test_get_missing_raises_queue_not_found():
    registry = QueueRegistry()
    with pytest.raises(QueueNotFound, match="'missing' does not exist"):
        registry.get("missing")
    assert registry.find("missing") is None


def test_register_keeps_first_instance():
    registry = QueueRegistry()
    first, second = object(), object()

    assert registry.register("q", first) is first
    assert registry.register("q", second) is first
    assert list(registry) == ["q"]


def test_concurrent_creation_yields_single_instance():
    registry = QueueRegistry()
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(registry.get_or_create("shared", object))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(r) for r in results}) == 1
