"""
Chunked blob storage.  Originals and derived thumbnails live in separate
namespaces of the same store and share an identifier.
"""
import minio

from photosio import database
from photosio.settings import Settings

from .s3 import MinioBlobStore
from .sql import SqlBlobStore
from .store import BlobStore


def create_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_backend == "sql":
        engine = database.make_engine(settings.database_uri)
        database.Base.metadata.create_all(engine)
        return SqlBlobStore(
            database.make_session_factory(engine), chunk_size=settings.chunk_size
        )
    if settings.blob_backend == "minio":
        client = minio.Minio(
            endpoint=settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
        )
        store = MinioBlobStore(
            client,
            settings.minio_bucket,
            prefix=settings.minio_prefix,
            chunk_size=settings.chunk_size,
            sweep_grace=settings.minio_sweep_grace,
        )
        store.ensure_bucket()
        return store
    raise ValueError(f"{settings.blob_backend} blob backend unsupported")
