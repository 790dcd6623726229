from dataclasses import dataclass
from typing import Iterator

from photosio.blobs import BlobStore
from photosio.schemas import BlobRecord, Namespace


@dataclass
class RetrievedBlob:
    record: BlobRecord
    chunks: Iterator[bytes]


class RetrievalService:
    def __init__(self, store: BlobStore):
        self.store = store

    def exists(self, namespace: Namespace, blob_id: str) -> bool:
        return self.store.exists(namespace, blob_id)

    def retrieve(self, namespace: Namespace, blob_id: str) -> RetrievedBlob:
        """
        Resolve the blob before handing off its chunks, so a missing blob
        is a NotFound here and never an error halfway through a response.
        A thumbnail that has not been derived yet is a NotFound too.  The
        record and the chunks describe the same version of the blob.
        """
        record, chunks = self.store.read(namespace, blob_id)
        return RetrievedBlob(record=record, chunks=chunks)
