import threading

import pytest

from photosio.queue import MemoryWorkQueue
from photosio.schemas import DerivationJob


def job(n=1):
    return DerivationJob(original_id=f"00000000-0000-4000-8000-{n:012d}")


def test_publish_consume_ack(queue):
    queue.publish(job())
    delivery = queue.consume(timeout=0)
    assert delivery.job == job()
    assert delivery.redelivered is False
    assert queue.unacked_count == 1
    queue.ack(delivery)
    assert queue.unacked_count == 0
    assert queue.consume(timeout=0) is None


def test_each_delivery_goes_to_one_consumer(queue):
    queue.publish(job())
    first = queue.consume(timeout=0)
    assert first is not None
    assert queue.consume(timeout=0) is None


def test_nack_requeue_redelivers(queue):
    queue.publish(job())
    queue.nack(queue.consume(timeout=0), requeue=True)
    again = queue.consume(timeout=0)
    assert again.job == job()
    assert again.redelivered is True


def test_nack_without_requeue_dead_letters(queue):
    queue.publish(job())
    queue.nack(queue.consume(timeout=0), requeue=False)
    assert queue.consume(timeout=0) is None
    assert queue.dead_letters == [job()]


def test_recover_returns_unacked(queue):
    queue.publish(job(1))
    queue.publish(job(2))
    queue.consume(timeout=0)
    assert queue.recover() == 1
    assert len(queue) == 2
    redelivered = [queue.consume(timeout=0) for _ in range(2)]
    assert {d.job.original_id for d in redelivered} == {job(1).original_id, job(2).original_id}


def test_ack_timeout_redelivers():
    now = [0.0]
    queue = MemoryWorkQueue(ack_timeout=30, clock=lambda: now[0])
    queue.publish(job())
    stale = queue.consume(timeout=0)
    assert queue.consume(timeout=0) is None
    now[0] = 31
    fresh = queue.consume(timeout=0)
    assert fresh.redelivered is True
    # the stale consumer lost its claim
    with pytest.raises(ValueError):
        queue.ack(stale)
    queue.ack(fresh)


def test_consume_waits_for_publish(queue):
    timer = threading.Timer(0.05, queue.publish, args=(job(),))
    timer.start()
    try:
        delivery = queue.consume(timeout=5)
    finally:
        timer.cancel()
    assert delivery is not None


def test_consume_times_out(queue):
    assert queue.consume(timeout=0.01) is None
