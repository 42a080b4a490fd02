"""In-memory queue service specifics."""

from __future__ import annotations

import threading
from unittest.mock import Mock

from twinqueue.core.queue_service import Clock, InMemoryQueueService, ManualClock


def test_instances_do_not_share_queues(clock) -> None:
    first = InMemoryQueueService(clock)
    second = InMemoryQueueService(clock)
    first.create_queue("queue", 1_000)

    assert not second.queue_exists("queue")


def test_visibility_timeout_with_mocked_clock() -> None:
    clock = Mock(spec=Clock)
    clock.now.side_effect = [0, 30_000]
    service = InMemoryQueueService(clock)
    url = service.create_queue("queue", 30_000)
    service.push(url, "message")

    response = service.pull(url)
    assert response.visible_at == 30_000
    assert service.pull(url).receipt_token == response.receipt_token


def test_concurrent_pulls_deliver_each_message_once(clock) -> None:
    service = InMemoryQueueService(clock)
    url = service.create_queue("queue", 60_000)
    total = 500
    for i in range(total):
        service.push(url, str(i))

    delivered: list[str] = []
    delivered_lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        while (message := service.pull(url)) is not None:
            with delivered_lock:
                delivered.append(message.receipt_token)
            assert service.delete(url, message)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(delivered) == total
    assert len(set(delivered)) == total
    assert service.pull(url) is None


def test_concurrent_redelivery_hands_message_to_one_caller(clock) -> None:
    service = InMemoryQueueService(clock)
    url = service.create_queue("queue", 1_000)
    service.push(url, "only")
    service.pull(url)
    clock.advance(1_000)

    results = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(16)

    def worker() -> None:
        barrier.wait()
        message = service.pull(url)
        with results_lock:
            results.append(message)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len([m for m in results if m is not None]) == 1


def test_first_delivery_is_stamped_while_holding_claimed_lock() -> None:
    class LockObservingClock(ManualClock):
        def __init__(self) -> None:
            super().__init__(start=0)
            self.state = None
            self.lock_held: list[bool] = []

        def now(self) -> int:
            self.lock_held.append(self.state.claimed_lock.locked())
            return super().now()

    clock = LockObservingClock()
    service = InMemoryQueueService(clock)
    url = service.create_queue("queue", 1_000)
    clock.state = service._registry.get(url)
    service.push(url, "first")
    service.push(url, "second")

    service.pull(url)
    service.pull(url)

    assert clock.lock_held
    assert all(clock.lock_held)
