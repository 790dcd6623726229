import itertools
import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, Tuple

from photosio.schemas import DerivationJob

from .base import Delivery, WorkQueue

logger = logging.getLogger(__name__)


class MemoryWorkQueue(WorkQueue):
    """
    In-process queue with the same at-least-once behavior as the broker.

    Unacknowledged deliveries go back on the queue when nacked with requeue,
    when recover() is called (the consumer's connection went away), or when
    ack_timeout seconds pass without an ack.
    """

    def __init__(
        self,
        ack_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ack_timeout = ack_timeout
        self.clock = clock
        self.dead_letters: List[DerivationJob] = []
        self._ready: Deque[Tuple[DerivationJob, bool]] = deque()
        self._unacked: Dict[int, Tuple[DerivationJob, Optional[float]]] = {}
        self._tags = itertools.count(1)
        self._cond = threading.Condition()

    def __len__(self):
        with self._cond:
            return len(self._ready)

    @property
    def unacked_count(self) -> int:
        with self._cond:
            return len(self._unacked)

    def publish(self, job: DerivationJob) -> None:
        with self._cond:
            self._ready.append((job, False))
            self._cond.notify()

    def _expire(self):
        if self.ack_timeout is None:
            return
        now = self.clock()
        for tag, (job, deadline) in list(self._unacked.items()):
            if deadline is not None and deadline <= now:
                logger.warning("Ack timeout for %s, redelivering", job.original_id)
                del self._unacked[tag]
                self._ready.append((job, True))

    def consume(self, timeout: Optional[float] = None) -> Optional[Delivery]:
        with self._cond:
            self._expire()
            if not self._ready:
                if timeout is not None and timeout <= 0:
                    return None
                self._cond.wait(timeout)
                self._expire()
                if not self._ready:
                    return None
            job, redelivered = self._ready.popleft()
            tag = next(self._tags)
            deadline = None
            if self.ack_timeout is not None:
                deadline = self.clock() + self.ack_timeout
            self._unacked[tag] = (job, deadline)
            return Delivery(job=job, tag=tag, redelivered=redelivered)

    def ack(self, delivery: Delivery) -> None:
        with self._cond:
            if self._unacked.pop(delivery.tag, None) is None:
                raise ValueError(f"unknown delivery tag {delivery.tag}")

    def nack(self, delivery: Delivery, requeue: bool = True) -> None:
        with self._cond:
            entry = self._unacked.pop(delivery.tag, None)
            if entry is None:
                raise ValueError(f"unknown delivery tag {delivery.tag}")
            job, _ = entry
            if requeue:
                self._ready.append((job, True))
                self._cond.notify()
            else:
                self.dead_letters.append(job)

    def recover(self) -> int:
        """Return every unacknowledged delivery to the queue"""
        with self._cond:
            count = len(self._unacked)
            for tag in sorted(self._unacked):
                job, _ = self._unacked.pop(tag)
                self._ready.append((job, True))
            self._cond.notify_all()
            return count
