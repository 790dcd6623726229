"""
Thumbnail derivation worker.

Each delivery walks RECEIVED -> FETCHING -> TRANSFORMING -> PUBLISHING ->
ACKNOWLEDGED.  The ack is sent only after the thumbnail is stored, and the
thumbnail write replaces any earlier attempt under the same id, so a job that
is delivered again after a crash simply runs again from FETCHING.
"""
import enum
import logging
import tempfile
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from photosio.blobs import BlobStore
from photosio.errors import DerivationError, NotFound, SourceMissing
from photosio.queue import Delivery, WorkQueue
from photosio.schemas import DerivationJob, DerivedFrom, Namespace

from .transform import resize_stream

logger = logging.getLogger(__name__)

THUMBNAIL_CONTENT_TYPE = "image/jpeg"


class JobState(str, enum.Enum):
    RECEIVED = "received"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    PUBLISHING = "publishing"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"


@dataclass
class JobOutcome:
    job: DerivationJob
    state: JobState
    failed_at: Optional[JobState] = None
    error: Optional[Exception] = None
    requeued: bool = False


class DerivationWorker:
    def __init__(
        self,
        store: BlobStore,
        queue: WorkQueue,
        width: int = 100,
        height: int = 100,
        spool_size: int = 4 * 1024 * 1024,
    ):
        self.store = store
        self.queue = queue
        self.width = width
        self.height = height
        self.spool_size = spool_size

    def process(self, delivery: Delivery) -> JobOutcome:
        job = delivery.job
        state = JobState.RECEIVED
        if delivery.redelivered:
            logger.info("Redelivered job for %s", job.original_id)
        try:
            with tempfile.SpooledTemporaryFile(max_size=self.spool_size) as spool:
                state = JobState.FETCHING
                try:
                    record, chunks = self.store.read(Namespace.ORIGINALS, job.original_id)
                    for chunk in chunks:
                        spool.write(chunk)
                except NotFound as e:
                    raise SourceMissing(job.original_id) from e
                spool.seek(0)

                state = JobState.TRANSFORMING
                thumbnail = resize_stream(spool, self.width, self.height)

            state = JobState.PUBLISHING
            link = DerivedFrom(original_id=job.original_id)
            try:
                self.store.write(
                    Namespace.DERIVED,
                    THUMBNAIL_CONTENT_TYPE,
                    record.metadata,
                    [thumbnail],
                    blob_id=link.derived_id,
                    derived_from=link,
                )
            except NotFound as e:
                raise SourceMissing(job.original_id) from e
        except DerivationError as e:
            # retrying cannot help; let the broker drop or dead-letter it
            logger.error("Dropping job for %s in %s: %s", job.original_id, state.value, e)
            self.queue.nack(delivery, requeue=False)
            return JobOutcome(job, JobState.FAILED, failed_at=state, error=e)
        except Exception as e:
            logger.exception("Job for %s failed in %s, requeueing", job.original_id, state.value)
            self.queue.nack(delivery, requeue=True)
            return JobOutcome(job, JobState.FAILED, failed_at=state, error=e, requeued=True)

        self.queue.ack(delivery)
        logger.info("Derived thumbnail for %s", job.original_id)
        return JobOutcome(job, JobState.ACKNOWLEDGED)

    def run_once(self, timeout: Optional[float] = None) -> Optional[JobOutcome]:
        delivery = self.queue.consume(timeout)
        if delivery is None:
            return None
        return self.process(delivery)

    def run(
        self,
        poll_timeout: float = 1.0,
        max_jobs: Optional[int] = None,
        stop_when_idle: bool = False,
        stop_event: Optional[threading.Event] = None,
    ) -> int:
        """Pull jobs until told to stop.  Returns the number of jobs handled."""
        handled = 0
        while max_jobs is None or handled < max_jobs:
            if stop_event is not None and stop_event.is_set():
                break
            outcome = self.run_once(poll_timeout)
            if outcome is None:
                if stop_when_idle:
                    break
                continue
            handled += 1
        return handled


def run_workers(
    concurrency: int,
    build_worker: Callable[[], DerivationWorker],
    poll_timeout: float = 1.0,
    stop_when_idle: bool = False,
    stop_event: Optional[threading.Event] = None,
) -> int:
    """
    Run workers on separate threads.  build_worker is called once per thread
    so that each worker gets its own queue connection.
    """
    counts: List[int] = [0] * concurrency
    errors: List[BaseException] = []

    def target(i: int):
        worker = build_worker()
        try:
            with worker.queue:
                counts[i] = worker.run(
                    poll_timeout=poll_timeout,
                    stop_when_idle=stop_when_idle,
                    stop_event=stop_event,
                )
        except Exception as e:
            logger.exception("Worker %d stopped", i)
            errors.append(e)

    threads = [
        threading.Thread(target=target, args=(i,), name=f"derivation-worker-{i}")
        for i in range(concurrency)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return sum(counts)
