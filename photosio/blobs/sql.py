"""
Blob storage in a relational database, laid out like GridFS: one header row
per blob and one row per chunk.  Every write is a single transaction, which is
what keeps partially written blobs invisible to readers.
"""
import logging
from typing import Iterator, Optional, Tuple

from sqlalchemy import delete, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from photosio.errors import StoreReadError, StoreWriteError
from photosio.schemas import BlobMetadata, BlobRecord, Namespace

from .models import BlobChunk, BlobFile
from .store import DEFAULT_CHUNK_SIZE, BlobStore

logger = logging.getLogger(__name__)


def to_record(f: BlobFile) -> BlobRecord:
    return BlobRecord(
        id=f.blob_id,
        namespace=f.namespace,
        length=f.length,
        content_type=f.content_type,
        chunk_size=f.chunk_size,
        created=f.created,
        metadata=BlobMetadata(business_id=f.business_id, caption=f.caption),
        derived_from=f.derived_from,
    )


class SqlBlobStore(BlobStore):
    def __init__(
        self,
        session_factory: sessionmaker,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        read_batch: int = 16,
    ):
        super().__init__(chunk_size)
        self.session_factory = session_factory
        self.read_batch = read_batch

    def _header_id(self, db: Session, namespace: Namespace, blob_id: str):
        return (
            db.query(BlobFile.id)
            .filter(BlobFile.namespace == namespace.value)
            .filter(BlobFile.blob_id == blob_id)
            .scalar()
        )

    def _write(
        self,
        namespace: Namespace,
        blob_id: str,
        content_type: str,
        metadata: BlobMetadata,
        chunks: Iterator[bytes],
        derived_from: Optional[str],
    ) -> None:
        db: Session = self.session_factory()
        try:
            previous_id = self._header_id(db, namespace, blob_id)
            if previous_id is not None:
                logger.info("Replacing %s/%s", namespace.value, blob_id)
                db.execute(delete(BlobChunk).where(BlobChunk.file_id == previous_id))
                db.execute(delete(BlobFile).where(BlobFile.id == previous_id))
            header = BlobFile(
                blob_id=blob_id,
                namespace=namespace.value,
                length=0,
                content_type=content_type,
                chunk_size=self.chunk_size,
                business_id=metadata.business_id,
                caption=metadata.caption,
                derived_from=derived_from,
            )
            db.add(header)
            db.flush()
            length = 0
            for n, chunk in enumerate(chunks):
                # Core inserts keep chunks out of the session's identity map
                db.execute(insert(BlobChunk).values(file_id=header.id, n=n, data=chunk))
                length += len(chunk)
            header.length = length
            db.commit()
        except (SQLAlchemyError, OSError) as e:
            db.rollback()
            raise StoreWriteError(f"failed to write {namespace.value}/{blob_id}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _exists(self, namespace: Namespace, blob_id: str) -> bool:
        db: Session = self.session_factory()
        try:
            return self._header_id(db, namespace, blob_id) is not None
        except SQLAlchemyError as e:
            raise StoreReadError(f"failed to look up {namespace.value}/{blob_id}") from e
        finally:
            db.close()

    def _stat(self, namespace: Namespace, blob_id: str) -> Optional[BlobRecord]:
        db: Session = self.session_factory()
        try:
            f = (
                db.query(BlobFile)
                .filter(BlobFile.namespace == namespace.value)
                .filter(BlobFile.blob_id == blob_id)
                .first()
            )
            return to_record(f) if f is not None else None
        except SQLAlchemyError as e:
            raise StoreReadError(f"failed to look up {namespace.value}/{blob_id}") from e
        finally:
            db.close()

    def _open(
        self, namespace: Namespace, blob_id: str
    ) -> Optional[Tuple[BlobRecord, Iterator[bytes]]]:
        rows = self._rows(namespace, blob_id)
        first = next(rows, None)
        if first is None:
            return None
        f, data = first
        return to_record(f), self._chunks(data, rows)

    def _rows(
        self, namespace: Namespace, blob_id: str
    ) -> Iterator[Tuple[BlobFile, Optional[bytes]]]:
        """
        Header and chunks come from one statement, so they always belong to
        the same version of the blob even if it is replaced mid-stream.
        """
        db: Session = self.session_factory()
        try:
            yield from (
                db.query(BlobFile, BlobChunk.data)
                .outerjoin(BlobChunk, BlobChunk.file_id == BlobFile.id)
                .filter(BlobFile.namespace == namespace.value)
                .filter(BlobFile.blob_id == blob_id)
                .order_by(BlobChunk.n)
                .yield_per(self.read_batch)
            )
        except SQLAlchemyError as e:
            raise StoreReadError(f"failed to read {namespace.value}/{blob_id}") from e
        finally:
            db.close()

    @staticmethod
    def _chunks(
        first: Optional[bytes], rows: Iterator[Tuple[BlobFile, Optional[bytes]]]
    ) -> Iterator[bytes]:
        # data is None only on the single row of an empty blob
        if first is not None:
            yield first
        for _, data in rows:
            yield data
