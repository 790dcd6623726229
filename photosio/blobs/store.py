import abc
import logging
from typing import Iterable, Iterator, Optional, Tuple

from photosio.errors import NotFound
from photosio.identifiers import new_blob_id, normalize_blob_id
from photosio.schemas import BlobMetadata, BlobRecord, DerivedFrom, Namespace

from .chunking import rechunk

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 512


class BlobStore(abc.ABC):
    """
    Chunked binary storage partitioned into namespaces that share one id space.

    Backends implement the underscore methods.  Writes are atomic: a reader
    sees either the complete blob or nothing, and rewriting an id replaces the
    prior blob as a whole.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def write(
        self,
        namespace: Namespace,
        content_type: str,
        metadata: BlobMetadata,
        stream: Iterable[bytes],
        blob_id: Optional[str] = None,
        derived_from: Optional[DerivedFrom] = None,
    ) -> str:
        namespace = Namespace(namespace)
        if blob_id is None:
            blob_id = new_blob_id()
        else:
            normalized = normalize_blob_id(blob_id)
            if normalized is None:
                raise ValueError(f"malformed blob id {blob_id!r}")
            blob_id = normalized
        link = None
        if derived_from is not None:
            link = self._check_link(namespace, blob_id, derived_from)
        self._write(
            namespace,
            blob_id,
            content_type,
            metadata,
            rechunk(stream, self.chunk_size),
            link,
        )
        logger.debug("Stored %s/%s", namespace.value, blob_id)
        return blob_id

    def _check_link(
        self, namespace: Namespace, blob_id: str, derived_from: DerivedFrom
    ) -> str:
        if namespace is not Namespace.DERIVED:
            raise ValueError("derived_from is only valid in the derived namespace")
        original_id = normalize_blob_id(derived_from.original_id)
        if original_id != blob_id:
            raise ValueError(
                f"derived blob {blob_id} must share its original's id {original_id}"
            )
        if not self.exists(Namespace.ORIGINALS, original_id):
            raise NotFound(Namespace.ORIGINALS.value, original_id)
        return original_id

    def exists(self, namespace: Namespace, blob_id: str) -> bool:
        blob_id = normalize_blob_id(blob_id)
        if blob_id is None:
            return False
        return self._exists(Namespace(namespace), blob_id)

    def stat(self, namespace: Namespace, blob_id: str) -> BlobRecord:
        normalized = normalize_blob_id(blob_id)
        if normalized is None:
            raise NotFound(Namespace(namespace).value, blob_id)
        record = self._stat(Namespace(namespace), normalized)
        if record is None:
            raise NotFound(Namespace(namespace).value, normalized)
        return record

    def read(
        self, namespace: Namespace, blob_id: str
    ) -> Tuple[BlobRecord, Iterator[bytes]]:
        """
        Record and lazy single-pass chunk iterator of one version of the blob,
        resolved together.  An overwrite that lands while the chunks are being
        streamed does not change what this reader sees.  NotFound is raised
        here, not on first iteration.
        """
        namespace = Namespace(namespace)
        normalized = normalize_blob_id(blob_id)
        found = None
        if normalized is not None:
            found = self._open(namespace, normalized)
        if found is None:
            raise NotFound(namespace.value, normalized or blob_id)
        return found

    def open_read(self, namespace: Namespace, blob_id: str) -> Iterator[bytes]:
        return self.read(namespace, blob_id)[1]

    def sweep(self, grace: Optional[float] = None) -> int:
        """
        Remove stored chunks that no blob references any longer and return how
        many objects went.  Backends that replace blobs inside a transaction
        leave nothing behind.
        """
        return 0

    @abc.abstractmethod
    def _write(
        self,
        namespace: Namespace,
        blob_id: str,
        content_type: str,
        metadata: BlobMetadata,
        chunks: Iterator[bytes],
        derived_from: Optional[str],
    ) -> None:
        ...

    @abc.abstractmethod
    def _exists(self, namespace: Namespace, blob_id: str) -> bool:
        ...

    @abc.abstractmethod
    def _stat(self, namespace: Namespace, blob_id: str) -> Optional[BlobRecord]:
        ...

    @abc.abstractmethod
    def _open(
        self, namespace: Namespace, blob_id: str
    ) -> Optional[Tuple[BlobRecord, Iterator[bytes]]]:
        """Resolve the header now and pin it for the returned chunks, or None"""
        ...
