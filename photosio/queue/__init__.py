"""
Work queue carrying derivation jobs from ingest to the thumbnail workers
"""
from photosio.settings import Settings

from .amqp import AmqpWorkQueue
from .base import Delivery, WorkQueue
from .memory import MemoryWorkQueue


def create_work_queue(settings: Settings) -> WorkQueue:
    """Broker-backed queue.  MemoryWorkQueue only works within one process."""
    return AmqpWorkQueue(
        settings.amqp_url,
        queue_name=settings.queue_name,
        dead_letter_exchange=settings.dead_letter_exchange,
        poll_timeout=settings.poll_timeout,
    )
