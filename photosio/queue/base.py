import abc
from dataclasses import dataclass
from typing import Any, Optional

from photosio.schemas import DerivationJob


@dataclass
class Delivery:
    """One delivery of a job.  The same job may be delivered more than once."""

    job: DerivationJob
    tag: Any
    redelivered: bool = False


class WorkQueue(abc.ABC):
    """
    At-least-once channel for derivation jobs.  A delivery stays owned by its
    consumer until it is acked or nacked; unacknowledged deliveries are handed
    out again.
    """

    def connect(self) -> None:
        pass

    def close(self) -> None:
        pass

    @abc.abstractmethod
    def publish(self, job: DerivationJob) -> None:
        ...

    @abc.abstractmethod
    def consume(self, timeout: Optional[float] = None) -> Optional[Delivery]:
        """Next delivery, or None if nothing arrived within timeout"""
        ...

    @abc.abstractmethod
    def ack(self, delivery: Delivery) -> None:
        ...

    @abc.abstractmethod
    def nack(self, delivery: Delivery, requeue: bool = True) -> None:
        """Give a delivery back.  Without requeue the job is dropped or dead-lettered."""
        ...

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
