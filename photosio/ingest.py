import logging
from typing import Any, Dict, Iterable, Union

from photosio.blobs import BlobStore
from photosio.errors import EnqueueError, QueueError
from photosio.queue import WorkQueue
from photosio.schemas import BlobMetadata, DerivationJob, Namespace

logger = logging.getLogger(__name__)


class IngestService:
    """
    Store a new original, then schedule its thumbnail.

    The job is only published once the original's write has returned, so a
    worker never sees a job for an incomplete original.  If publishing fails
    the original stays stored; EnqueueError carries its id so the caller can
    still report it.
    """

    def __init__(self, store: BlobStore, queue: WorkQueue):
        self.store = store
        self.queue = queue

    def ingest(
        self,
        stream: Iterable[bytes],
        content_type: str,
        metadata: Union[BlobMetadata, Dict[str, Any]],
    ) -> str:
        if not isinstance(metadata, BlobMetadata):
            metadata = BlobMetadata.model_validate(metadata)
        blob_id = self.store.write(Namespace.ORIGINALS, content_type, metadata, stream)
        try:
            self.queue.publish(DerivationJob(original_id=blob_id))
        except QueueError as e:
            logger.error("Stored %s but could not enqueue its derivation: %s", blob_id, e)
            raise EnqueueError(blob_id, str(e)) from e
        logger.info("Ingested %s (business %s)", blob_id, metadata.business_id)
        return blob_id
