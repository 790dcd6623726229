"""RabbitMQ work queue."""
import logging
from typing import Iterator, Optional, Tuple
from uuid import uuid4

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError
from pydantic import ValidationError

from photosio.errors import QueueError
from photosio.schemas import DerivationJob

from .base import Delivery, WorkQueue

logger = logging.getLogger(__name__)


class AmqpWorkQueue(WorkQueue):
    """
    Durable RabbitMQ queue with persistent messages and publisher confirms.
    Consumers prefetch a single message and ack manually, so a worker that
    dies mid-job leaves the message to be redelivered by the broker.

    Not thread-safe: give every worker thread its own instance.
    """

    def __init__(
        self,
        url: str,
        queue_name: str = "photos",
        dead_letter_exchange: Optional[str] = None,
        poll_timeout: float = 1.0,
        connection_name: Optional[str] = None,
        heartbeat: int = 60,
        blocked_connection_timeout: int = 300,
    ):
        self.url = url
        self.queue_name = queue_name
        self.dead_letter_exchange = dead_letter_exchange
        self.poll_timeout = poll_timeout
        self.connection_name = connection_name or f"photosio-{uuid4().hex[:8]}"
        self.heartbeat = heartbeat
        self.blocked_connection_timeout = blocked_connection_timeout

        self._connection: Optional[pika.BlockingConnection] = None
        self._channel: Optional[BlockingChannel] = None
        self._consumer: Optional[Iterator[Tuple]] = None

    @property
    def _safe_url(self) -> str:
        return self.url.split("@")[-1]

    def connect(self) -> None:
        try:
            parameters = pika.URLParameters(self.url)
            parameters.client_properties = {"connection_name": self.connection_name}
            parameters.heartbeat = self.heartbeat
            parameters.blocked_connection_timeout = self.blocked_connection_timeout

            self._connection = pika.BlockingConnection(parameters)
            self._channel = self._connection.channel()
            arguments = {}
            if self.dead_letter_exchange:
                arguments["x-dead-letter-exchange"] = self.dead_letter_exchange
            self._channel.queue_declare(
                queue=self.queue_name, durable=True, arguments=arguments
            )
            self._channel.confirm_delivery()
            self._channel.basic_qos(prefetch_count=1)
            self._consumer = None
        except AMQPError as e:
            logger.error("Failed to connect to %s: %s", self._safe_url, e)
            raise QueueError(f"cannot connect to {self._safe_url}") from e
        logger.info("Connected to %s queue=%s", self._safe_url, self.queue_name)

    def close(self) -> None:
        if self._connection is not None and self._connection.is_open:
            try:
                if self._consumer is not None:
                    self._channel.cancel()
                self._connection.close()
            except AMQPError as e:
                logger.warning("Error closing connection to %s: %s", self._safe_url, e)
        self._connection = None
        self._channel = None
        self._consumer = None

    def _ensure_connected(self) -> None:
        if self._connection is None or not self._connection.is_open:
            if self._connection is not None:
                logger.warning("Connection lost, reconnecting to %s", self._safe_url)
            self.connect()

    def publish(self, job: DerivationJob) -> None:
        self._ensure_connected()
        try:
            self._channel.basic_publish(
                exchange="",
                routing_key=self.queue_name,
                body=job.to_message(),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # persistent
                    content_type="application/json",
                ),
                mandatory=True,
            )
        except AMQPError as e:
            logger.error("Failed to publish job for %s: %s", job.original_id, e)
            raise QueueError(f"publish to {self.queue_name} failed") from e
        logger.debug("Published job for %s", job.original_id)

    def consume(self, timeout: Optional[float] = None) -> Optional[Delivery]:
        """
        The inactivity timeout is fixed when the consumer starts; timeout
        applies only to the first call after connecting.
        """
        self._ensure_connected()
        try:
            if self._consumer is None:
                self._consumer = self._channel.consume(
                    self.queue_name,
                    auto_ack=False,
                    inactivity_timeout=self.poll_timeout if timeout is None else timeout,
                )
            method, properties, body = next(self._consumer)
        except AMQPError as e:
            self._consumer = None
            raise QueueError(f"consume from {self.queue_name} failed") from e
        if method is None:
            return None
        try:
            job = DerivationJob.from_message(body)
        except ValidationError:
            logger.error("Rejecting malformed message on %s: %r", self.queue_name, body)
            try:
                self._channel.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            except AMQPError as e:
                raise QueueError(f"reject on {self.queue_name} failed") from e
            return None
        return Delivery(job=job, tag=method.delivery_tag, redelivered=method.redelivered)

    def ack(self, delivery: Delivery) -> None:
        try:
            self._channel.basic_ack(delivery_tag=delivery.tag)
        except AMQPError as e:
            raise QueueError(f"ack of {delivery.job.original_id} failed") from e

    def nack(self, delivery: Delivery, requeue: bool = True) -> None:
        try:
            self._channel.basic_nack(delivery_tag=delivery.tag, requeue=requeue)
        except AMQPError as e:
            raise QueueError(f"nack of {delivery.job.original_id} failed") from e
