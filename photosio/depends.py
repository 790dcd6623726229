"""
FastAPI endpoint dependencies
"""
from functools import lru_cache

from fastapi import Depends

from photosio import blobs, queue
from photosio.ingest import IngestService
from photosio.retrieval import RetrievalService

from . import settings


@lru_cache()
def get_blob_store() -> blobs.BlobStore:
    return blobs.create_blob_store(settings.settings)


def get_work_queue():
    work_queue = queue.create_work_queue(settings.settings)
    work_queue.connect()
    try:
        yield work_queue
    finally:
        work_queue.close()


def get_ingest_service(
    store: blobs.BlobStore = Depends(get_blob_store),
    work_queue: queue.WorkQueue = Depends(get_work_queue),
) -> IngestService:
    return IngestService(store, work_queue)


def get_retrieval_service(
    store: blobs.BlobStore = Depends(get_blob_store),
) -> RetrievalService:
    return RetrievalService(store)
