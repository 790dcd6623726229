"""
Blob storage on MinIO or any S3-compatible node.

Object layout for a blob with id X in namespace N:

    <prefix>/N/X/header.json          record header, written last
    <prefix>/N/X/<upload>/00000000    chunk 0 of one write attempt
    <prefix>/N/X/<upload>/00000001    ...

S3 replaces a single object atomically, so the header is the commit point:
readers only ever follow the header to a complete set of chunks.  Each write
uses a fresh upload token, so a retry never overwrites chunks a reader may be
streaming.  Chunks of a superseded upload stay in place for a grace period
and are swept afterwards, which lets readers that resolved the old header
finish.
"""
import datetime
import io
import json
import logging
import posixpath
import uuid
from typing import Iterator, Optional, Tuple

import minio
from minio.error import MinioException, S3Error

from photosio.errors import StoreReadError, StoreWriteError
from photosio.schemas import BlobMetadata, BlobRecord, Namespace

from .store import DEFAULT_CHUNK_SIZE, BlobStore

logger = logging.getLogger(__name__)

HEADER_NAME = "header.json"
MISSING_CODES = ("NoSuchKey", "NoSuchBucket", "NoSuchObject")
# longer than any single read or write is expected to take
DEFAULT_SWEEP_GRACE = 3600.0


def is_missing(e: MinioException) -> bool:
    return isinstance(e, S3Error) and e.code in MISSING_CODES


class StoredHeader(BlobRecord):
    upload: str
    chunk_count: int

    def to_record(self) -> BlobRecord:
        return BlobRecord(**self.model_dump(exclude={"upload", "chunk_count"}))


class MinioBlobStore(BlobStore):
    def __init__(
        self,
        client: minio.Minio,
        bucket: str,
        prefix: str = "",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        sweep_grace: float = DEFAULT_SWEEP_GRACE,
    ):
        super().__init__(chunk_size)
        self.client = client
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.sweep_grace = sweep_grace

    def ensure_bucket(self):
        if not self.client.bucket_exists(bucket_name=self.bucket):
            self.client.make_bucket(bucket_name=self.bucket)

    def _blob_key(self, namespace: Namespace, blob_id: str, *parts: str) -> str:
        return posixpath.join(self.prefix, namespace.value, blob_id, *parts)

    def _chunk_key(self, namespace: Namespace, blob_id: str, upload: str, n: int):
        return self._blob_key(namespace, blob_id, upload, f"{n:08d}")

    def _get(self, object_name: str) -> bytes:
        response = self.client.get_object(bucket_name=self.bucket, object_name=object_name)
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    def _load_header(self, namespace: Namespace, blob_id: str) -> Optional[StoredHeader]:
        key = self._blob_key(namespace, blob_id, HEADER_NAME)
        try:
            body = self._get(key)
        except MinioException as e:
            if is_missing(e):
                return None
            raise StoreReadError(f"failed to read {key}") from e
        except OSError as e:
            raise StoreReadError(f"failed to read {key}") from e
        try:
            return StoredHeader.model_validate(json.loads(body))
        except ValueError as e:
            raise StoreReadError(f"corrupt header {key}") from e

    def _remove_upload(self, namespace: Namespace, blob_id: str, upload: str):
        """Best-effort removal of every chunk written by one upload"""
        prefix = self._blob_key(namespace, blob_id, upload, "")
        try:
            for obj in self.client.list_objects(
                bucket_name=self.bucket, prefix=prefix, recursive=True
            ):
                self.client.remove_object(
                    bucket_name=self.bucket, object_name=obj.object_name
                )
        except MinioException as e:
            logger.warning("Could not remove chunks under %s: %s", prefix, e)

    def _write(
        self,
        namespace: Namespace,
        blob_id: str,
        content_type: str,
        metadata: BlobMetadata,
        chunks: Iterator[bytes],
        derived_from: Optional[str],
    ) -> None:
        upload = uuid.uuid4().hex
        try:
            count = 0
            length = 0
            for n, chunk in enumerate(chunks):
                self.client.put_object(
                    bucket_name=self.bucket,
                    object_name=self._chunk_key(namespace, blob_id, upload, n),
                    data=io.BytesIO(chunk),
                    length=len(chunk),
                )
                count += 1
                length += len(chunk)
            header = StoredHeader(
                id=blob_id,
                namespace=namespace,
                length=length,
                content_type=content_type,
                chunk_size=self.chunk_size,
                created=datetime.datetime.utcnow(),
                metadata=metadata,
                derived_from=derived_from,
                upload=upload,
                chunk_count=count,
            )
            body = header.model_dump_json().encode("utf-8")
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=self._blob_key(namespace, blob_id, HEADER_NAME),
                data=io.BytesIO(body),
                length=len(body),
                content_type="application/json",
            )
        except (MinioException, OSError) as e:
            self._remove_upload(namespace, blob_id, upload)
            raise StoreWriteError(f"failed to write {namespace.value}/{blob_id}") from e
        except Exception:
            self._remove_upload(namespace, blob_id, upload)
            raise
        try:
            self._sweep_blob(namespace, blob_id, upload, self._cutoff(self.sweep_grace))
        except (MinioException, OSError) as e:
            logger.warning("Could not sweep %s/%s: %s", namespace.value, blob_id, e)

    def _cutoff(self, grace: Optional[float]) -> datetime.datetime:
        if grace is None:
            grace = self.sweep_grace
        now = datetime.datetime.now(datetime.timezone.utc)
        return now - datetime.timedelta(seconds=grace)

    def _sweep_blob(
        self,
        namespace: Namespace,
        blob_id: str,
        keep: Optional[str],
        cutoff: datetime.datetime,
    ) -> int:
        """Remove chunks of uploads other than keep that are older than cutoff"""
        base = self._blob_key(namespace, blob_id, "")
        removed = 0
        for obj in self.client.list_objects(
            bucket_name=self.bucket, prefix=base, recursive=True
        ):
            upload = obj.object_name[len(base) :].split("/")[0]
            if upload in (HEADER_NAME, keep):
                continue
            if obj.last_modified is not None and obj.last_modified > cutoff:
                continue
            self.client.remove_object(bucket_name=self.bucket, object_name=obj.object_name)
            removed += 1
        if removed:
            logger.info("Swept %d objects of %s/%s", removed, namespace.value, blob_id)
        return removed

    def sweep(self, grace: Optional[float] = None) -> int:
        """
        Remove chunks that no header references, from superseded uploads and
        from writers that died before cleaning up.  Only objects older than
        grace seconds are touched, so a write still in progress keeps its
        chunks.
        """
        cutoff = self._cutoff(grace)
        removed = 0
        try:
            for namespace in Namespace:
                root = self._blob_key(namespace, "")
                for entry in self.client.list_objects(
                    bucket_name=self.bucket, prefix=root, recursive=False
                ):
                    blob_id = entry.object_name[len(root) :].strip("/")
                    if not blob_id:
                        continue
                    header = self._load_header(namespace, blob_id)
                    keep = header.upload if header is not None else None
                    removed += self._sweep_blob(namespace, blob_id, keep, cutoff)
        except (MinioException, OSError) as e:
            raise StoreWriteError("sweep failed") from e
        return removed

    def _exists(self, namespace: Namespace, blob_id: str) -> bool:
        key = self._blob_key(namespace, blob_id, HEADER_NAME)
        try:
            self.client.stat_object(bucket_name=self.bucket, object_name=key)
        except MinioException as e:
            if is_missing(e):
                return False
            raise StoreReadError(f"failed to look up {key}") from e
        except OSError as e:
            raise StoreReadError(f"failed to look up {key}") from e
        return True

    def _stat(self, namespace: Namespace, blob_id: str) -> Optional[BlobRecord]:
        header = self._load_header(namespace, blob_id)
        if header is None:
            return None
        return header.to_record()

    def _open(
        self, namespace: Namespace, blob_id: str
    ) -> Optional[Tuple[BlobRecord, Iterator[bytes]]]:
        header = self._load_header(namespace, blob_id)
        if header is None:
            return None
        return header.to_record(), self._iter_chunks(header)

    def _iter_chunks(self, header: StoredHeader) -> Iterator[bytes]:
        for n in range(header.chunk_count):
            key = self._chunk_key(header.namespace, header.id, header.upload, n)
            try:
                data = self._get(key)
            except (MinioException, OSError) as e:
                raise StoreReadError(f"failed to read {key}") from e
            yield data
